"""Structured logging helpers for the authentication core.

This module purposefully restricts **which** contextual attributes are attached
to log records in order to avoid accidentally leaking secrets.  All helpers
ONLY inject the following *non-sensitive* fields:

- ``operation``      – Sign-in operation being performed (``send_link``…)
- ``user_id``        – Identifier of the cached user (first 6 chars kept)
- ``correlation_id`` – Request correlation identifier set by the HTTP layer

Email addresses, passwords and sign-in links are never attached.

Usage
-----
>>> from auth_facade.core.log_utils import get_auth_logger
>>> log = get_auth_logger(
...     base_logger_name="auth-facade.core.service",
...     operation="send_link",
...     user_id="3f2b9c1d8e7a4b6c",
... )
>>> log.info("Sending sign-in link")
INFO auth-facade.core.service operation=send_link user_id=3f2b9c ...

The adapter is a thin wrapper around :class:`logging.LoggerAdapter`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


class _AuthLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted auth context into log records."""

    extra_keys = ("operation", "user_id", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if k == "user_id" and extra and extra.get("user_id"):
                extra_clean[k] = str(extra["user_id"])[:6]
            elif extra and k in extra and extra[k] is not None:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # merge but do not overwrite call-site provided extras
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_auth_logger(
    *,
    base_logger_name: str = "auth-facade.core",
    operation: str | None = None,
    user_id: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with auth context."""
    logger = logging.getLogger(base_logger_name)
    return _AuthLoggerAdapter(
        logger,
        {
            "operation": operation,
            "user_id": user_id,
            "correlation_id": correlation_id,
        },
    )
