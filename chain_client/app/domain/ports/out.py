from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Protocol

from chain_client.app.domain.models import (
    BlockReference,
    CreationReceipt,
    EventRecord,
    LogQuery,
    RawLog,
    TxHandle,
    UnsignedTransaction,
)


class ContractReader(Protocol):
    """
    Port for read-only contract execution (eth_call).

    Implementations return the raw return bytes, raise ContractReverted with
    the revert payload when execution aborts, and TransportFailure for any
    other node / network problem.
    """

    async def read(
        self,
        *,
        to: str,
        data: bytes,
        block: BlockReference = "latest",
        sender: str | None = None,
    ) -> bytes:
        ...


class TransactionWriter(Protocol):
    """
    Port for state-changing transactions.

    `sig_context` is opaque to the binding layer (a local account, a remote
    signer handle, ...) and only interpreted by the implementation.
    """

    async def submit(self, tx: UnsignedTransaction, *, sig_context: Any) -> TxHandle:
        ...

    async def submit_creation(self, tx: UnsignedTransaction, *, sig_context: Any) -> CreationReceipt:
        """Submit a contract-creation transaction (tx.to is None) and report the new address."""
        ...


@dataclass
class LogSubscription:
    """
    Handle returned by a LogSource.

    - `logs`: raw logs in delivery order (block-ascending, log-index-ascending),
    - `errors`: transport errors; the first one is terminal for the consumer,
    - `done`: set once the source has pushed its last log (bounded ranges only),
    - `unsubscribe`: releases the underlying transport resources,
    - `start_block`: first block the source actually scans, once resolved.
    """

    logs: asyncio.Queue[RawLog]
    errors: asyncio.Queue[BaseException]
    done: asyncio.Event
    unsubscribe: Callable[[], Awaitable[None]]
    query: LogQuery | None = field(default=None)
    start_block: int | None = field(default=None)


class LogSource(Protocol):
    """
    Port for event logs: historical backfill over a block range, optionally
    followed by live tailing (query.to_block is None).
    """

    async def subscribe(self, query: LogQuery) -> LogSubscription:
        ...


class EvmEventDecoder(Protocol):
    def decode(self, raw: RawLog) -> EventRecord:
        """
        Decode a raw log (topics + data) into a typed EventRecord.

        Raises CodecMalformed when the log does not parse against the event.
        """
        ...


class ContractEventsIndexer(Protocol):
    """
    Port for persisting decoded contract events into the staging layer.

    Implementations must be idempotent per (chain_id, block_number, log_index).
    """

    async def store_events(
        self,
        *,
        chain_id: int,
        records: Iterable[EventRecord],
    ) -> int:
        ...
