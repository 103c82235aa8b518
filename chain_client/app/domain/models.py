from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from chain_client.app.domain.cancellation import CancelToken

# Opaque handle issued by the write transport (a transaction hash for web3).
TxHandle = Any

BlockReference = int | Literal["latest", "earliest", "pending", "safe", "finalized"]

# One positional slot of a log filter: any / exact value / OR-set.
TopicSlot = bytes | list[bytes] | None


@dataclass(frozen=True)
class RawLog:
    """A log entry as delivered by the log source, byte-level."""

    address: str
    topics: tuple[bytes, ...]
    data: bytes
    block_number: int
    log_index: int
    transaction_hash: bytes
    block_hash: bytes | None = None
    transaction_index: int | None = None
    removed: bool = False

    @property
    def position(self) -> tuple[int, int]:
        return self.block_number, self.log_index


@dataclass(frozen=True)
class EventRecord:
    """A decoded event; the raw log is kept alongside for observability."""

    event: str
    args: Mapping[str, Any]
    raw: RawLog

    def __getitem__(self, name: str) -> Any:
        return self.args[name]

    @property
    def block_number(self) -> int:
        return self.raw.block_number

    @property
    def log_index(self) -> int:
        return self.raw.log_index

    @property
    def transaction_hash(self) -> bytes:
        return self.raw.transaction_hash


@dataclass(frozen=True)
class CallContext:
    block: BlockReference = "latest"
    cancel: CancelToken | None = None
    sender: str | None = None


@dataclass(frozen=True)
class UnsignedTransaction:
    """
    A transaction before signing. `to` is None for contract creation.

    `gas_limit` None lets the writer estimate it.
    """

    to: str | None
    data: bytes = b""
    value: int = 0
    gas_limit: int | None = None

    @property
    def is_creation(self) -> bool:
        return self.to is None


@dataclass(frozen=True)
class CreationReceipt:
    tx_handle: TxHandle
    contract_address: str


@dataclass(frozen=True)
class LogQuery:
    address: str
    topics: list[TopicSlot] = field(default_factory=list)
    from_block: int | None = None
    # None means "keep following the chain head".
    to_block: int | None = None

    @property
    def is_live(self) -> bool:
        return self.to_block is None
