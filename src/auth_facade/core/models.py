"""Typed, immutable records describing the signed-in principal."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AuthenticationStatus(str, Enum):
    """How the provider currently classifies a :class:`User`."""

    UNKNOWN = "unknown"
    UNAUTHENTICATED = "unauthenticated"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


def _new_uid() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class User:
    """Snapshot of the authenticated (or anonymous) principal.

    A bare ``User()`` is the "nobody signed in" value: it carries a freshly
    generated ``uid`` and is never confused with ``None``.
    """

    uid: str = field(default_factory=_new_uid)
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    status: AuthenticationStatus = AuthenticationStatus.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthenticationStatus.AUTHENTICATED

    @property
    def is_anonymous(self) -> bool:
        return self.status is AuthenticationStatus.ANONYMOUS

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable view of the user."""
        return {
            "uid": self.uid,
            "email": self.email,
            "display_name": self.display_name,
            "photo_url": self.photo_url,
            "status": self.status.value,
        }
