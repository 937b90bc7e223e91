"""Unit tests for the passwordless email-link flow.

Coverage:
* Storage-backed send: persist only after provider success
* Storage-backed completion: read → provider → delete ordering
* Missing / unreadable pending email
* Provider exceptions kept verbatim, pending email preserved
* Cleanup failure after a successful sign-in
* Storage-free variant
* Link validity check is a pure pass-through
"""

from __future__ import annotations

import pytest

from auth_facade.core.errors import (
    InvalidSignInLinkError,
    PendingEmailCleanupError,
    SendSignInLinkError,
    StorageDeleteError,
    StorageKeyNotFoundError,
    StorageReadError,
    StorageWriteError,
    UserNotFoundError,
)
from auth_facade.core.service import AuthService, EmailLinkAuthService, build_auth_service
from auth_facade.core.store import PENDING_EMAIL_KEY, InMemoryKeyValueStore

pytestmark = pytest.mark.anyio

EMAIL = "a@example.com"
LINK = "https://example.com/__/auth/action?mode=signIn&oobCode=XYZ"


# --------------------------------------------------------------------------- #
# Construction                                                                #
# --------------------------------------------------------------------------- #
async def test_build_picks_shape_from_storage(provider, store_factory) -> None:
    with_store = build_auth_service(provider, store_factory())
    without_store = build_auth_service(provider)
    assert isinstance(with_store, EmailLinkAuthService)
    assert isinstance(without_store, AuthService)
    await with_store.aclose()
    await without_store.aclose()


# --------------------------------------------------------------------------- #
# send_sign_in_link_to_email (storage-backed)                                 #
# --------------------------------------------------------------------------- #
async def test_send_link_persists_email(provider, store_factory) -> None:
    store = store_factory()
    async with EmailLinkAuthService(provider, store) as svc:
        await svc.send_sign_in_link_to_email(EMAIL)

    provider.send_sign_in_link_to_email.assert_awaited_once_with(email=EMAIL)
    store.write_string.assert_awaited_once_with(PENDING_EMAIL_KEY, EMAIL)


async def test_send_link_provider_error_propagates_without_storage(
    provider, store_factory
) -> None:
    store = store_factory()
    original = SendSignInLinkError(ValueError("quota exceeded"))
    provider.send_sign_in_link_to_email.side_effect = original

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(SendSignInLinkError) as excinfo:
            await svc.send_sign_in_link_to_email(EMAIL)

    assert excinfo.value is original
    store.write_string.assert_not_awaited()
    store.read_string.assert_not_awaited()
    store.delete.assert_not_awaited()


async def test_send_link_generic_provider_error_is_wrapped(provider, store_factory) -> None:
    store = store_factory()
    boom = ConnectionError("network down")
    provider.send_sign_in_link_to_email.side_effect = boom

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(SendSignInLinkError) as excinfo:
            await svc.send_sign_in_link_to_email(EMAIL)

    assert excinfo.value.cause is boom
    assert excinfo.value.__cause__ is boom
    store.write_string.assert_not_awaited()


async def test_send_link_storage_failure_is_wrapped(provider, store_factory) -> None:
    store = store_factory()
    write_error = StorageWriteError(PENDING_EMAIL_KEY)
    store.write_string.side_effect = write_error

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(SendSignInLinkError) as excinfo:
            await svc.send_sign_in_link_to_email(EMAIL)

    assert excinfo.value.cause is write_error
    provider.send_sign_in_link_to_email.assert_awaited_once_with(email=EMAIL)


async def test_second_send_overwrites_pending_email(provider) -> None:
    store = InMemoryKeyValueStore()
    async with EmailLinkAuthService(provider, store) as svc:
        await svc.send_sign_in_link_to_email("first@example.com")
        await svc.send_sign_in_link_to_email(EMAIL)

    assert await store.read_string(PENDING_EMAIL_KEY) == EMAIL


# --------------------------------------------------------------------------- #
# sign_in_with_email_link (storage-backed)                                    #
# --------------------------------------------------------------------------- #
async def test_complete_link_reads_signs_in_then_deletes(provider, store_factory) -> None:
    store = store_factory(pending_email=EMAIL)
    events: list[str] = []
    store.read_string.side_effect = lambda key: events.append("read") or EMAIL
    provider.sign_in_with_email_link.side_effect = lambda **kw: events.append("sign_in")
    store.delete.side_effect = lambda key: events.append("delete")

    async with EmailLinkAuthService(provider, store) as svc:
        await svc.sign_in_with_email_link(email_link=LINK)

    assert events == ["read", "sign_in", "delete"]
    store.read_string.assert_awaited_once_with(PENDING_EMAIL_KEY)
    provider.sign_in_with_email_link.assert_awaited_once_with(email=EMAIL, email_link=LINK)
    store.delete.assert_awaited_once_with(PENDING_EMAIL_KEY)


@pytest.mark.parametrize("pending", [None, ""], ids=["absent", "empty"])
async def test_complete_link_without_pending_email(provider, store_factory, pending) -> None:
    store = store_factory(pending_email=pending)

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(InvalidSignInLinkError) as excinfo:
            await svc.sign_in_with_email_link(email_link=LINK)

    assert not isinstance(excinfo.value, PendingEmailCleanupError)
    assert isinstance(excinfo.value.cause, StorageKeyNotFoundError)
    assert excinfo.value.cause.key == PENDING_EMAIL_KEY
    provider.sign_in_with_email_link.assert_not_awaited()
    store.delete.assert_not_awaited()


async def test_complete_link_store_raising_not_found(provider, store_factory) -> None:
    store = store_factory()
    missing = StorageKeyNotFoundError(PENDING_EMAIL_KEY)
    store.read_string.side_effect = missing

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(InvalidSignInLinkError) as excinfo:
            await svc.sign_in_with_email_link(email_link=LINK)

    assert excinfo.value.cause is missing
    provider.sign_in_with_email_link.assert_not_awaited()


async def test_complete_link_read_failure(provider, store_factory) -> None:
    store = store_factory()
    read_error = StorageReadError(PENDING_EMAIL_KEY)
    store.read_string.side_effect = read_error

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(InvalidSignInLinkError) as excinfo:
            await svc.sign_in_with_email_link(email_link=LINK)

    assert excinfo.value.cause is read_error
    provider.sign_in_with_email_link.assert_not_awaited()


@pytest.mark.parametrize(
    "provider_error",
    [
        InvalidSignInLinkError(ValueError("expired")),
        UserNotFoundError(LookupError("no such user")),
    ],
    ids=["invalid-link", "user-not-found"],
)
async def test_complete_link_provider_error_kept_and_email_preserved(
    provider, store_factory, provider_error
) -> None:
    store = store_factory(pending_email=EMAIL)
    provider.sign_in_with_email_link.side_effect = provider_error

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(type(provider_error)) as excinfo:
            await svc.sign_in_with_email_link(email_link=LINK)

    assert excinfo.value is provider_error
    store.delete.assert_not_awaited()


async def test_complete_link_generic_provider_error_is_wrapped(provider, store_factory) -> None:
    store = store_factory(pending_email=EMAIL)
    boom = TimeoutError("provider timed out")
    provider.sign_in_with_email_link.side_effect = boom

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(InvalidSignInLinkError) as excinfo:
            await svc.sign_in_with_email_link(email_link=LINK)

    assert excinfo.value.cause is boom
    assert not isinstance(excinfo.value, PendingEmailCleanupError)
    store.delete.assert_not_awaited()


async def test_complete_link_cleanup_failure_reports_error(provider, store_factory) -> None:
    store = store_factory(pending_email=EMAIL)
    delete_error = StorageDeleteError(PENDING_EMAIL_KEY)
    store.delete.side_effect = delete_error

    async with EmailLinkAuthService(provider, store) as svc:
        with pytest.raises(InvalidSignInLinkError) as excinfo:
            await svc.sign_in_with_email_link(email_link=LINK)

    assert isinstance(excinfo.value, PendingEmailCleanupError)
    assert excinfo.value.cause is delete_error
    provider.sign_in_with_email_link.assert_awaited_once_with(email=EMAIL, email_link=LINK)
    provider.sign_out.assert_not_awaited()


async def test_complete_link_uses_stored_email_not_link_email(provider) -> None:
    store = InMemoryKeyValueStore()
    link = "https://example.com/finish?email=b%40example.com&oobCode=XYZ"

    async with EmailLinkAuthService(provider, store) as svc:
        await svc.send_sign_in_link_to_email(EMAIL)
        await svc.sign_in_with_email_link(email_link=link)

    provider.sign_in_with_email_link.assert_awaited_once_with(email=EMAIL, email_link=link)
    assert await store.read_string(PENDING_EMAIL_KEY) is None


# --------------------------------------------------------------------------- #
# Storage-free variant                                                        #
# --------------------------------------------------------------------------- #
async def test_storage_free_completion_uses_caller_email(provider) -> None:
    async with AuthService(provider) as svc:
        await svc.send_sign_in_link_to_email(EMAIL)
        await svc.sign_in_with_email_link(email=EMAIL, email_link=LINK)

    provider.send_sign_in_link_to_email.assert_awaited_once_with(email=EMAIL)
    provider.sign_in_with_email_link.assert_awaited_once_with(email=EMAIL, email_link=LINK)


@pytest.mark.parametrize(
    ("provider_error", "expected"),
    [
        (InvalidSignInLinkError(ValueError("expired")), InvalidSignInLinkError),
        (UserNotFoundError(LookupError("nobody")), UserNotFoundError),
        (RuntimeError("unexpected"), InvalidSignInLinkError),
    ],
    ids=["invalid-link", "user-not-found", "generic"],
)
async def test_storage_free_completion_error_policy(provider, provider_error, expected) -> None:
    provider.sign_in_with_email_link.side_effect = provider_error

    async with AuthService(provider) as svc:
        with pytest.raises(expected) as excinfo:
            await svc.sign_in_with_email_link(email=EMAIL, email_link=LINK)

    if isinstance(provider_error, expected):
        assert excinfo.value is provider_error
    else:
        assert excinfo.value.cause is provider_error


# --------------------------------------------------------------------------- #
# is_sign_in_with_email_link                                                  #
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize("verdict", [True, False])
async def test_link_check_returns_provider_verdict(provider, store_factory, verdict) -> None:
    provider.is_sign_in_with_email_link.return_value = verdict

    async with build_auth_service(provider, store_factory()) as svc:
        assert await svc.is_sign_in_with_email_link(LINK) is verdict

    provider.is_sign_in_with_email_link.assert_awaited_once_with(email_link=LINK)


async def test_link_check_errors_are_not_translated(provider) -> None:
    boom = ValueError("malformed link")
    provider.is_sign_in_with_email_link.side_effect = boom

    async with AuthService(provider) as svc:
        with pytest.raises(ValueError) as excinfo:
            await svc.is_sign_in_with_email_link("not a link")

    assert excinfo.value is boom
