"""Utility functions related to environment configuration."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Final, Literal, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from auth_facade.core.store import KeyValueStore

logger = logging.getLogger("auth-facade.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")

StoreKind = Literal["disk", "memory", "none"]
_STORE_KINDS: Final[Tuple[str, ...]] = ("disk", "memory", "none")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def log_emails_enabled() -> bool:
    """Return True if ``AUTH_LOG_EMAILS`` asks for unmasked email addresses."""
    return _truthy(os.getenv("AUTH_LOG_EMAILS"))


def get_email_link_store_kind() -> StoreKind:
    """
    Return the storage flavour selected by ``AUTH_EMAIL_LINK_STORE``.

    ``none`` selects the storage-free service where callers pass the email
    alongside the link. Defaults to ``disk``.
    """
    raw = (os.getenv("AUTH_EMAIL_LINK_STORE") or "disk").strip().lower()
    if raw not in _STORE_KINDS:
        raise ValueError(
            f"AUTH_EMAIL_LINK_STORE must be one of {', '.join(_STORE_KINDS)}; got {raw!r}"
        )
    return raw  # type: ignore[return-value]


def build_store_from_env() -> KeyValueStore | None:
    """Instantiate the key-value store configured via environment variables."""
    from auth_facade.core.store import DiskKeyValueStore, InMemoryKeyValueStore

    kind = get_email_link_store_kind()
    if kind == "none":
        logger.info("Email-link storage disabled - callers must supply the email on completion")
        return None
    if kind == "memory":
        logger.info("Using in-memory email-link storage")
        return InMemoryKeyValueStore()
    store = DiskKeyValueStore()
    logger.info("Using on-disk email-link storage at %s", store.base_dir)
    return store


def get_http_base_path() -> str:
    """Return the mount prefix for the HTTP routes (``AUTH_HTTP_BASE_PATH``)."""
    path = (os.getenv("AUTH_HTTP_BASE_PATH") or "/auth").strip()
    return "/" + path.strip("/") if path.strip("/") else ""


def get_correlation_header() -> str:
    return os.getenv("AUTH_CORRELATION_HEADER") or "X-Correlation-ID"
