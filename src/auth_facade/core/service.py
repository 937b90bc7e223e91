"""Sign-in services – the façade applications talk to.

A service owns the :class:`~auth_facade.core.user_state.UserStateCache` fed by
the provider and exposes every sign-in operation with one error policy:

* if the provider raises the operation's own exception type (or a type the
  flow explicitly lets through, such as :class:`UserNotFoundError` during
  link completion) it propagates unchanged;
* any other ``Exception`` is wrapped in the operation's type, keeping the
  original as ``cause``.

Two shapes exist, chosen at construction time:

:class:`AuthService`
    No storage. Callers pass the email *and* the link to
    :meth:`~AuthService.sign_in_with_email_link`.
:class:`EmailLinkAuthService`
    Persists the email under :data:`~auth_facade.core.store.PENDING_EMAIL_KEY`
    when the link is sent and reads it back when the link is completed.

Use :func:`build_auth_service` to pick the right one.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import AsyncIterator, Iterator

from auth_facade.core.errors import (
    AnonymousSignInError,
    AuthenticationError,
    DeleteAccountError,
    GoogleSignInError,
    InvalidSignInLinkError,
    LogoutError,
    PasswordSignInError,
    PendingEmailCleanupError,
    SendSignInLinkError,
    StorageKeyNotFoundError,
    UserNotFoundError,
)
from auth_facade.core.log_utils import get_auth_logger
from auth_facade.core.models import User
from auth_facade.core.provider import AuthProvider
from auth_facade.core.store import PENDING_EMAIL_KEY, KeyValueStore
from auth_facade.core.user_state import UserStateCache
from auth_facade.utils.logging import mask_email

_LOGGER_NAME = "auth-facade.core.service"


@contextmanager
def translate_errors(
    error_type: type[AuthenticationError],
    *passthrough: type[AuthenticationError],
) -> Iterator[None]:
    """Re-raise ``error_type``/``passthrough`` as-is, wrap everything else."""
    try:
        yield
    except (error_type, *passthrough):
        raise
    except Exception as exc:
        get_auth_logger(base_logger_name=_LOGGER_NAME).warning(
            "Translating %s into %s", type(exc).__name__, error_type.__name__, exc_info=True
        )
        raise error_type(exc) from exc


# --------------------------------------------------------------------------- #
# Shared behaviour                                                            #
# --------------------------------------------------------------------------- #
class BaseAuthService:
    """User-state cache plus every operation that does not touch storage."""

    def __init__(self, provider: AuthProvider) -> None:
        self.provider = provider
        # Subscribes exactly once for the lifetime of the service.
        self._user_state = UserStateCache(provider.user_changes())

    # ------------------------------------------------------------------ #
    # User state                                                         #
    # ------------------------------------------------------------------ #
    def user_changes(self) -> AsyncIterator[User]:
        """Async iterator of the current user followed by every change."""
        return self._user_state.stream()

    @property
    def current_user(self) -> User:
        """Latest cached user; a default unauthenticated ``User`` before any change."""
        return self._user_state.value

    def _log(self, operation: str):
        return get_auth_logger(
            base_logger_name=_LOGGER_NAME,
            operation=operation,
            user_id=self.current_user.uid,
        )

    # ------------------------------------------------------------------ #
    # Lifecycle                                                          #
    # ------------------------------------------------------------------ #
    async def aclose(self) -> None:
        """Stop listening to the provider; the last user stays readable."""
        await self._user_state.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Email link                                                         #
    # ------------------------------------------------------------------ #
    async def is_sign_in_with_email_link(self, email_link: str) -> bool:
        """Return the provider's verdict on *email_link*.

        Provider errors are **not** translated.
        """
        return await self.provider.is_sign_in_with_email_link(email_link=email_link)

    async def _complete_email_link(self, email: str, email_link: str) -> None:
        with translate_errors(InvalidSignInLinkError, UserNotFoundError):
            await self.provider.sign_in_with_email_link(email=email, email_link=email_link)

    # ------------------------------------------------------------------ #
    # Simple delegations                                                 #
    # ------------------------------------------------------------------ #
    async def sign_in_with_email_and_password(self, email: str, password: str) -> None:
        """Raises :class:`PasswordSignInError` on failure."""
        with translate_errors(PasswordSignInError):
            await self.provider.sign_in_with_email_and_password(email=email, password=password)
        self._log("password_sign_in").info("Password sign-in for %s", mask_email(email))

    async def sign_in_with_google(self) -> None:
        """Raises :class:`GoogleSignInError` on failure."""
        with translate_errors(GoogleSignInError):
            await self.provider.sign_in_with_google()

    async def sign_in_anonymously(self) -> None:
        """Raises :class:`AnonymousSignInError` on failure."""
        with translate_errors(AnonymousSignInError):
            await self.provider.sign_in_anonymously()

    async def sign_out(self) -> None:
        """Raises :class:`LogoutError` on failure."""
        with translate_errors(LogoutError):
            await self.provider.sign_out()

    async def delete_account(self) -> None:
        """Raises :class:`DeleteAccountError` on failure."""
        with translate_errors(DeleteAccountError):
            await self.provider.delete_account()
        self._log("delete_account").info("Account deleted")


# --------------------------------------------------------------------------- #
# Storage-free variant                                                        #
# --------------------------------------------------------------------------- #
class AuthService(BaseAuthService):
    """Service for deployments without key-value storage."""

    async def send_sign_in_link_to_email(self, email: str) -> None:
        """Raises :class:`SendSignInLinkError` on failure."""
        with translate_errors(SendSignInLinkError):
            await self.provider.send_sign_in_link_to_email(email=email)
        self._log("send_link").info("Sign-in link sent to %s", mask_email(email))

    async def sign_in_with_email_link(self, *, email: str, email_link: str) -> None:
        """Complete a passwordless sign-in with a caller-supplied *email*.

        Raises :class:`InvalidSignInLinkError` or :class:`UserNotFoundError`.
        """
        await self._complete_email_link(email, email_link)
        self._log("complete_link").info("Email-link sign-in for %s", mask_email(email))


# --------------------------------------------------------------------------- #
# Storage-backed variant                                                      #
# --------------------------------------------------------------------------- #
class EmailLinkAuthService(BaseAuthService):
    """Service that remembers the email between sending and completing a link."""

    def __init__(self, provider: AuthProvider, store: KeyValueStore) -> None:
        super().__init__(provider)
        self.store = store

    async def send_sign_in_link_to_email(self, email: str) -> None:
        """Send a sign-in link and remember *email* as the pending address.

        The store is only written after the provider accepted the request; a
        previous pending email is overwritten.

        Raises :class:`SendSignInLinkError` on failure.
        """
        with translate_errors(SendSignInLinkError):
            await self.provider.send_sign_in_link_to_email(email=email)
            await self.store.write_string(PENDING_EMAIL_KEY, email)
        self._log("send_link").info("Sign-in link sent to %s", mask_email(email))

    async def sign_in_with_email_link(self, *, email_link: str) -> None:
        """Complete a passwordless sign-in using the stored pending email.

        Steps run strictly in order: read the pending email, complete the
        sign-in at the provider, delete the pending email. Any email embedded
        in *email_link* is ignored.

        Raises
        ------
        InvalidSignInLinkError
            No pending email, storage failure while reading it, or the
            provider rejected the link. The pending email is kept.
        UserNotFoundError
            Raised by the provider; the pending email is kept.
        PendingEmailCleanupError
            The sign-in **succeeded** but the pending email could not be
            deleted.
        """
        log = self._log("complete_link")
        try:
            email = await self.store.read_string(PENDING_EMAIL_KEY)
        except Exception as exc:
            log.warning("Could not read pending sign-in email: %s", exc, exc_info=True)
            raise InvalidSignInLinkError(exc) from exc
        if not email:
            missing = StorageKeyNotFoundError(PENDING_EMAIL_KEY)
            log.info("No pending sign-in email stored")
            raise InvalidSignInLinkError(missing) from missing

        await self._complete_email_link(email, email_link)

        try:
            await self.store.delete(PENDING_EMAIL_KEY)
        except Exception as exc:
            log.warning(
                "Signed in %s but could not clear pending email: %s",
                mask_email(email),
                exc,
                exc_info=True,
            )
            raise PendingEmailCleanupError(exc) from exc
        log.info("Email-link sign-in for %s", mask_email(email))


def build_auth_service(
    provider: AuthProvider, store: KeyValueStore | None = None
) -> AuthService | EmailLinkAuthService:
    """Return the service shape matching the configured storage capability."""
    if store is None:
        return AuthService(provider)
    return EmailLinkAuthService(provider, store)
