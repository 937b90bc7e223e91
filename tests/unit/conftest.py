"""Shared test doubles for the authentication core."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable
from unittest.mock import AsyncMock, MagicMock

import anyio
import pytest

from auth_facade.core.models import User

_END = object()


class FakeProvider:
    """Provider double: AsyncMock operations + a queue-driven user stream."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self.user_changes = MagicMock(side_effect=self._changes)
        self.send_sign_in_link_to_email = AsyncMock(return_value=None)
        self.is_sign_in_with_email_link = AsyncMock(return_value=True)
        self.sign_in_with_email_link = AsyncMock(return_value=None)
        self.sign_in_with_email_and_password = AsyncMock(return_value=None)
        self.sign_in_with_google = AsyncMock(return_value=None)
        self.sign_in_anonymously = AsyncMock(return_value=None)
        self.sign_out = AsyncMock(return_value=None)
        self.delete_account = AsyncMock(return_value=None)

    async def _changes(self) -> AsyncIterator[User]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    # ----- driving the stream ---------------------------------------------- #
    def emit(self, user: User) -> None:
        self._queue.put_nowait(user)

    def finish(self) -> None:
        self._queue.put_nowait(_END)

    def fail(self, exc: Exception) -> None:
        self._queue.put_nowait(exc)


def make_store(pending_email: str | None = None) -> MagicMock:
    """Return a KeyValueStore double whose read returns *pending_email*."""
    store = MagicMock()
    store.read_string = AsyncMock(return_value=pending_email)
    store.write_string = AsyncMock(return_value=None)
    store.delete = AsyncMock(return_value=None)
    return store


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the event loop until *predicate* holds."""
    with anyio.fail_after(timeout):
        while not predicate():
            await anyio.sleep(0)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store_factory() -> Callable[..., MagicMock]:
    return make_store


@pytest.fixture
def settle() -> Callable[..., object]:
    return wait_until


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
