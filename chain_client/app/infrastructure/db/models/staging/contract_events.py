from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Integer,
    Index,
    PrimaryKeyConstraint,
    String,
)
from sqlalchemy.dialects.postgresql import BYTEA, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from chain_client.app.infrastructure.db.db_base import BaseDB


class ContractEventsDB(BaseDB):
    """
    Staging table of decoded contract events.

    One row per log entry, identified within the canonical chain by
    (chain_id, block_number, log_index). The decoded arguments are stored as
    JSONB next to the raw topics / data so rows can be re-decoded later.
    """

    __tablename__ = "contract_events"
    __table_args__ = (
        PrimaryKeyConstraint("chain_id", "block_number", "log_index"),

        # contract + event + block range
        Index(
            "ix_contract_events_chain_address_event_block",
            "chain_id",
            "address",
            "event_name",
            "block_number",
        ),

        Index(
            "ix_contract_events_chain_txhash",
            "chain_id",
            "transaction_hash",
        ),

        {"schema": "staging"},
    )

    """Chain identifier (e.g., 1 = Ethereum mainnet)."""
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)

    """Number of the block in which the log was emitted."""
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)

    """Index of the log within the block."""
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    """Hash of the transaction that emitted the log (bytea)."""
    transaction_hash: Mapped[bytes] = mapped_column(BYTEA, nullable=False)

    """Address of the emitting contract (bytea, 20 bytes)."""
    address: Mapped[bytes] = mapped_column(BYTEA, nullable=False)

    """Event name as declared in the contract ABI."""
    event_name: Mapped[str] = mapped_column(String(128), nullable=False)

    """topic0 (NULL for anonymous events)."""
    topic0: Mapped[bytes | None] = mapped_column(BYTEA, nullable=True)

    """Decoded arguments; integers are stored as decimal strings, bytes as 0x hex."""
    args: Mapped[dict] = mapped_column(JSONB, nullable=False)

    """Raw event data payload (bytea)."""
    data: Mapped[bytes] = mapped_column(BYTEA, nullable=False)
