"""Latest-value cache of the current :class:`~auth_facade.core.models.User`.

:class:`UserStateCache` bridges the provider's push-only notification stream
into a replay-on-subscribe broadcast:

* the cache always holds exactly one ``User`` (seeded at construction);
* a single pump task consumes the provider stream and replaces the value;
* every subscriber gets the current value first, then each later change in
  emission order, independently of other subscribers.

All state is owned by one asyncio event loop. The value cell is swapped by
plain reference assignment from the pump task only, so reads never block.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterable, AsyncIterator, Final

from auth_facade.core.models import User

_LOG = logging.getLogger("auth-facade.core.user_state")

_CLOSED: Final = object()


class UserStateCache:
    """Single-slot ``User`` state with fan-out to any number of subscribers."""

    def __init__(self, source: AsyncIterable[User], *, seed: User | None = None) -> None:
        self._value: User = seed if seed is not None else User()
        self._subscribers: list[asyncio.Queue] = []
        self._closed = False
        self._error: Exception | None = None
        # Raises RuntimeError outside a running event loop.
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._pump(source), name="auth-facade-user-state")

    @property
    def value(self) -> User:
        """Latest cached user; never blocks, never fails."""
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    async def stream(self) -> AsyncIterator[User]:
        """Yield the current user, then every subsequent change.

        Each subscriber owns an unbounded queue so no change is ever dropped;
        a subscriber that stops iterating without closing its iterator keeps
        accumulating users until it is closed or garbage-collected.
        """
        queue: asyncio.Queue = asyncio.Queue()
        queue.put_nowait(self._value)
        if self._closed:
            queue.put_nowait(_CLOSED)
        self._subscribers.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    if self._error is not None:
                        raise self._error
                    return
                yield item
        finally:
            self._subscribers.remove(queue)

    async def aclose(self) -> None:
        """Stop consuming the provider stream and end all subscriptions."""
        if not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        # A task cancelled before its first step never runs its finally block.
        self._finish()

    # ---------------- internal helpers --------------------------------- #
    def _publish(self, user: User) -> None:
        self._value = user
        for queue in self._subscribers:
            queue.put_nowait(user)
        _LOG.debug(
            "User changed uid=%s**** status=%s subscribers=%d",
            user.uid[:6],
            user.status.value,
            len(self._subscribers),
        )

    async def _pump(self, source: AsyncIterable[User]) -> None:
        try:
            async for user in source:
                self._publish(user)
        except Exception as exc:
            # Forwarded untranslated to subscribers; the provider owns this failure.
            _LOG.error("Provider user stream failed: %s", exc, exc_info=True)
            self._error = exc
        finally:
            self._finish()

    def _finish(self) -> None:
        if self._closed:
            return
        self._closed = True
        for queue in self._subscribers:
            queue.put_nowait(_CLOSED)
        _LOG.debug("Provider user stream closed")
