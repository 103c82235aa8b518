from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from chain_client.app.domain.errors import ChainClientError, as_transport_failure
from chain_client.app.domain.models import EventRecord, LogQuery, RawLog
from chain_client.app.domain.ports.out import EvmEventDecoder, LogSubscription

logger = logging.getLogger(__name__)

Resubscribe = Callable[[LogQuery], Awaitable[LogSubscription]]


class StreamState(str, Enum):
    STREAMING = "streaming"
    DRAINING = "draining"
    END = "end"
    FAILED = "failed"


class EventStream:
    """
    Lazy, in-order sequence of decoded events for one event and filter.

    Lifecycle:
      STREAMING  - backfill or live logs are delivered; `next()` blocks
      DRAINING   - the source completed; buffered logs are handed out without blocking
      END        - exhausted, `next()` returns None
      FAILED     - a transport or decode error is latched and re-raised by `next()`

    The stream owns its subscription: it is released exactly once, on END,
    on FAILED, or on `close()` (whichever comes first). Single consumer only.

    Usage:
        async with await contract.watch("Transfer", {"from": alice}) as stream:
            async for record in stream:
                ...
    """

    def __init__(
        self,
        *,
        subscription: LogSubscription,
        decoder: EvmEventDecoder,
        event_name: str,
        resubscribe: Resubscribe | None = None,
        resume_after: tuple[int, int] | None = None,
    ) -> None:
        self._subscription = subscription
        self._decoder = decoder
        self._event_name = event_name
        self._resubscribe = resubscribe
        self._resume_after = resume_after

        self._state = StreamState.STREAMING
        self._error: ChainClientError | None = None
        self._stashed_error: BaseException | None = None
        self._closed = asyncio.Event()
        self._released = False
        self._last_position: tuple[int, int] | None = resume_after

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def event_name(self) -> str:
        return self._event_name

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def error(self) -> ChainClientError | None:
        return self._error

    @property
    def last_position(self) -> tuple[int, int] | None:
        """(block_number, log_index) of the last delivered event."""
        return self._last_position

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    async def next(self) -> EventRecord | None:
        """Return the next event, None when there are no more, or raise the latched error."""
        while True:
            if self._closed.is_set():
                return None
            if self._error is not None:
                raise self._error
            if self._state is StreamState.END:
                return None

            if self._state is StreamState.DRAINING:
                try:
                    raw = self._subscription.logs.get_nowait()
                except asyncio.QueueEmpty:
                    logger.debug("Event stream %s drained", self._event_name)
                    self._state = StreamState.END
                    await self._release()
                    return None
            else:
                kind, payload = await self._receive()
                if kind == "closed":
                    return None
                if kind == "done":
                    self._state = StreamState.DRAINING
                    continue
                if kind == "error":
                    await self._fail(as_transport_failure(payload, context="log source"))
                    raise self._error  # type: ignore[misc]
                raw = payload

            record = await self._emit(raw)
            if record is not None:
                return record

    async def _receive(self) -> tuple[str, object]:
        sub = self._subscription

        # Already-buffered logs go out before errors or completion.
        if not sub.logs.empty():
            return "log", sub.logs.get_nowait()
        if self._stashed_error is not None:
            err, self._stashed_error = self._stashed_error, None
            return "error", err
        if not sub.errors.empty():
            return "error", sub.errors.get_nowait()
        if sub.done.is_set():
            return "done", None

        waiters = {
            asyncio.ensure_future(sub.logs.get()): "log",
            asyncio.ensure_future(sub.errors.get()): "error",
            asyncio.ensure_future(sub.done.wait()): "done",
            asyncio.ensure_future(self._closed.wait()): "closed",
        }
        try:
            finished, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for fut in waiters:
                if not fut.done():
                    fut.cancel()

        outcome = {waiters[f]: f.result() for f in finished if not f.cancelled()}
        if "closed" in outcome:
            return "closed", None
        if "log" in outcome:
            if "error" in outcome:
                self._stashed_error = outcome["error"]
            return "log", outcome["log"]
        if "error" in outcome:
            return "error", outcome["error"]
        return "done", None

    async def _emit(self, raw: RawLog) -> EventRecord | None:
        if raw.removed:
            logger.debug("Skipping removed log %s", raw.position)
            return None
        if self._resume_after is not None and raw.position <= self._resume_after:
            return None
        try:
            record = self._decoder.decode(raw)
        except ChainClientError as exc:
            await self._fail(exc)
            raise
        self._last_position = raw.position
        return record

    async def _fail(self, exc: ChainClientError) -> None:
        logger.warning("Event stream %s failed: %s", self._event_name, exc)
        self._error = exc
        self._state = StreamState.FAILED
        await self._release()

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the subscription. Idempotent; wakes a pending `next()`."""
        self._closed.set()
        await self._release()

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            await self._subscription.unsubscribe()
        except Exception:
            logger.warning("Failed to release log subscription for %s", self._event_name, exc_info=True)
        else:
            logger.debug("Released log subscription for %s", self._event_name)

    async def restart(self) -> "EventStream":
        """
        Resubscribe after a failure (or at any point), resuming from the last
        delivered block, or from the first scanned block when nothing was
        delivered yet. Events already delivered are skipped.
        """
        if self._resubscribe is None or self._subscription.query is None:
            raise RuntimeError("This event stream cannot be restarted")
        await self.close()

        query = self._subscription.query
        if self._last_position is not None:
            resume_from = self._last_position[0]
        elif query.from_block is None:
            # live watch that delivered nothing: rescan from where polling began
            resume_from = self._subscription.start_block
        else:
            resume_from = query.from_block
        if resume_from != query.from_block:
            query = LogQuery(
                address=query.address,
                topics=query.topics,
                from_block=resume_from,
                to_block=query.to_block,
            )
        logger.info("Restarting event stream %s from block %s", self._event_name, query.from_block)
        subscription = await self._resubscribe(query)
        return EventStream(
            subscription=subscription,
            decoder=self._decoder,
            event_name=self._event_name,
            resubscribe=self._resubscribe,
            resume_after=self._last_position,
        )

    # ------------------------------------------------------------------
    # Protocols
    # ------------------------------------------------------------------

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> EventRecord:
        record = await self.next()
        if record is None:
            raise StopAsyncIteration
        return record

    async def __aenter__(self) -> "EventStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
