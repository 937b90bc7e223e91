"""Exception types raised by the authentication core.

Every domain exception wraps the error that triggered it (``cause``) so web
or CLI layers can inspect the root cause, and exposes a stable ``code`` that
can be turned into HTTP responses or user-friendly messages.
"""

from __future__ import annotations

import traceback
from typing import ClassVar


class AuthenticationError(RuntimeError):
    """Base class for every failure surfaced by the sign-in operations."""

    code: ClassVar[str] = "authentication_failed"
    default_message: ClassVar[str] = "Authentication operation failed."

    def __init__(
        self,
        cause: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(message or self.default_message)
        self.cause: BaseException | None = cause

    @property
    def trace(self) -> str:
        """Formatted traceback of ``cause`` as captured when it was raised."""
        if self.cause is None:
            return ""
        return "".join(traceback.format_exception(self.cause))

    def to_payload(self) -> dict[str, str]:
        """Return a JSON-serialisable payload **without secrets**."""
        payload = {"error": self.code, "message": str(self)}
        if self.cause is not None:
            payload["cause"] = type(self.cause).__name__
        return payload


class SendSignInLinkError(AuthenticationError):
    code = "send_sign_in_link_failed"
    default_message = "Could not send the sign-in link."


class InvalidSignInLinkError(AuthenticationError):
    """The link is invalid or expired, or the pending email is unusable."""

    code = "invalid_sign_in_link"
    default_message = "The sign-in link is invalid or has expired."


class PendingEmailCleanupError(InvalidSignInLinkError):
    """Sign-in succeeded at the provider but the pending email was not cleared.

    The session is **not** rolled back; callers should treat the user as
    signed in and surface a warning.
    """

    code = "pending_email_cleanup_failed"
    default_message = "Signed in, but the pending sign-in email could not be cleared."


class UserNotFoundError(AuthenticationError):
    code = "user_not_found"
    default_message = "No user exists for this email address."


class PasswordSignInError(AuthenticationError):
    code = "password_sign_in_failed"
    default_message = "Email and password sign-in failed."


class GoogleSignInError(AuthenticationError):
    code = "google_sign_in_failed"
    default_message = "Google sign-in failed."


class AnonymousSignInError(AuthenticationError):
    code = "anonymous_sign_in_failed"
    default_message = "Anonymous sign-in failed."


class LogoutError(AuthenticationError):
    code = "logout_failed"
    default_message = "Sign-out failed."


class DeleteAccountError(AuthenticationError):
    code = "delete_account_failed"
    default_message = "Account deletion failed."


# --------------------------------------------------------------------------- #
# storage                                                                     #
# --------------------------------------------------------------------------- #


class StorageError(RuntimeError):
    """Base class for failures raised by a key-value store."""

    def __init__(self, key: str, message: str | None = None) -> None:
        super().__init__(message or f"storage operation failed for key {key!r}")
        self.key = key


class StorageReadError(StorageError):
    pass


class StorageWriteError(StorageError):
    pass


class StorageDeleteError(StorageError):
    pass


class StorageKeyNotFoundError(StorageError):
    def __init__(self, key: str, message: str | None = None) -> None:
        super().__init__(key, message or f"no value stored under key {key!r}")


class StorageTypeError(StorageError):
    """The stored value exists but is not of the requested type."""
