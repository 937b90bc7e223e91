"""Logging helpers: secret masking and process-level configuration."""

from __future__ import annotations

import logging
import os

from auth_facade.utils.environment import log_emails_enabled

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Return *value* with everything but the first ``keep_chars`` hidden."""
    if not value:
        return ""
    if len(value) <= keep_chars:
        return "*" * len(value)
    return value[:keep_chars] + "*" * (len(value) - keep_chars)


def mask_email(email: str | None) -> str:
    """Mask the local part of an email address (``a***@example.com``).

    Returned unmasked when ``AUTH_LOG_EMAILS`` is truthy.
    """
    if not email:
        return ""
    if log_emails_enabled():
        return email
    local, sep, domain = email.partition("@")
    if not sep:
        return mask_sensitive(email, 1)
    return f"{local[:1]}***@{domain}"


def configure_logging(level: str | int | None = None) -> None:
    """Configure the ``auth-facade`` logger hierarchy.

    ``level`` defaults to ``AUTH_LOG_LEVEL`` (``INFO`` when unset).
    """
    resolved = level or os.getenv("AUTH_LOG_LEVEL", "INFO")
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.strip().upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    logger = logging.getLogger("auth-facade")
    logger.setLevel(resolved)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(handler)
