from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from chain_client.app.domain.errors import Cancelled

T = TypeVar("T")


class CancelToken:
    """
    One-shot cancellation signal shared between a caller and an in-flight call.

    Timeouts are expressed by firing the token from a timer (`cancel_after`);
    nothing in the binding layer keeps its own clock.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def cancel_after(self, seconds: float) -> "CancelToken":
        if seconds <= 0:
            raise ValueError("seconds must be positive")
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(seconds, self.cancel)
        return self

    async def wait(self) -> None:
        await self._event.wait()


async def run_cancellable(awaitable: Awaitable[T], cancel: CancelToken | None) -> T:
    """
    Await `awaitable` unless `cancel` fires first.

    On trip the outstanding transport request is abandoned (its task is
    cancelled) and Cancelled is raised.
    """
    if cancel is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    if cancel.cancelled:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise Cancelled("cancelled before the request was sent")

    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise Cancelled("cancellation token fired while waiting for the transport")
