"""Capability contract for the underlying authentication provider.

Concrete providers (Firebase, Supabase, an in-house identity service, a test
double…) implement :class:`AuthProvider`; the services in
:mod:`auth_facade.core.service` only ever talk to this protocol.

A provider may raise the matching domain exception from
:mod:`auth_facade.core.errors` (e.g. :class:`InvalidSignInLinkError`) to pass
its own diagnostic detail through unchanged; any other exception is wrapped by
the service.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable

from auth_facade.core.models import User


@runtime_checkable
class AuthProvider(Protocol):
    """Sign-in primitives plus a continuous user-change notification."""

    # ----- notifications --------------------------------------------------- #
    def user_changes(self) -> AsyncIterator[User]:
        """Return an async iterator emitting the current user on every change.

        The iterator is expected to run for the lifetime of the process.
        """
        ...

    # ----- passwordless email link ----------------------------------------- #
    async def send_sign_in_link_to_email(self, *, email: str) -> None: ...
    async def is_sign_in_with_email_link(self, *, email_link: str) -> bool: ...
    async def sign_in_with_email_link(self, *, email: str, email_link: str) -> None: ...

    # ----- other flows ----------------------------------------------------- #
    async def sign_in_with_email_and_password(self, *, email: str, password: str) -> None: ...
    async def sign_in_with_google(self) -> None: ...
    async def sign_in_anonymously(self) -> None: ...
    async def sign_out(self) -> None: ...
    async def delete_account(self) -> None: ...
