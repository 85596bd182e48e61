"""
Cooperative cancellation for backend calls.

A ``CancellationToken`` is created per request by the caller and handed to
every operation that may block. Operations check it on entry and race their
awaitable against it, so a cancel surfaces as ``RequestAborted`` straight
away instead of after the backend answers or times out.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from maas_mcp.errors import RequestAborted

T = TypeVar("T")


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def cancel_after(self, seconds: float) -> asyncio.TimerHandle:
        """Schedule a cancel on the running loop (deadline semantics)."""
        loop = asyncio.get_running_loop()
        return loop.call_later(seconds, self.cancel, f"deadline of {seconds}s exceeded")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestAborted(self._message())

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        On cancel the inner task is cancelled and ``RequestAborted`` raised.
        """
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, Exception):  # noqa: BLE001
            pass
        raise RequestAborted(self._message())

    async def sleep(self, seconds: float) -> None:
        """Sleep that wakes up with ``RequestAborted`` when cancelled."""
        await self.guard(asyncio.sleep(seconds))

    def _message(self) -> str:
        if self.reason:
            return f"Request was aborted by the client ({self.reason})"
        return "Request was aborted by the client"
