from __future__ import annotations

import json
import logging
from typing import Any, Final, Iterable, Mapping

from eth_utils import to_canonical_address
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from chain_client.app.domain.models import EventRecord

logger = logging.getLogger(__name__)

_DEFAULT_BATCH_SIZE: Final[int] = 500


_INSERT_CONTRACT_EVENTS_SQL = text(
    """
    INSERT INTO staging.contract_events (
        chain_id,
        block_number,
        log_index,
        transaction_hash,
        address,
        event_name,
        topic0,
        args,
        data
    )
    VALUES (
        :chain_id,
        :block_number,
        :log_index,
        :transaction_hash,
        :address,
        :event_name,
        :topic0,
        CAST(:args AS JSONB),
        :data
    )
    ON CONFLICT (chain_id, block_number, log_index) DO NOTHING;
    """
)


def to_json_value(value: Any) -> Any:
    """Decoded ABI value -> JSON-safe value (ints as strings, bytes as 0x hex)."""
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    raise TypeError(f"Cannot serialize {type(value).__name__} to JSON")


def event_row(chain_id: int, record: EventRecord) -> dict[str, Any]:
    raw = record.raw
    return {
        "chain_id": chain_id,
        "block_number": raw.block_number,
        "log_index": raw.log_index,
        "transaction_hash": raw.transaction_hash,
        "address": to_canonical_address(raw.address),
        "event_name": record.event,
        "topic0": raw.topics[0] if raw.topics else None,
        "args": json.dumps(to_json_value(record.args)),
        "data": raw.data,
    }


class SqlAlchemyContractEventsIndexer:
    """
    PostgreSQL/SQLAlchemy implementation of ContractEventsIndexer.

    Inserts decoded events into staging.contract_events in batches with
    ON CONFLICT DO NOTHING, so re-running a block range is harmless.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._engine = engine
        self._batch_size = batch_size

    async def store_events(
        self,
        *,
        chain_id: int,
        records: Iterable[EventRecord],
    ) -> int:
        rows = [event_row(chain_id, r) for r in records]
        if not rows:
            return 0

        inserted = 0
        async with self._engine.begin() as conn:
            for start in range(0, len(rows), self._batch_size):
                payload = rows[start : start + self._batch_size]
                result = await conn.execute(_INSERT_CONTRACT_EVENTS_SQL, payload)
                rowcount = getattr(result, "rowcount", None)
                inserted += rowcount if isinstance(rowcount, int) and rowcount > 0 else 0

                logger.debug(
                    "Batch stored: chain_id=%s, rows=%s, inserted_rowcount=%s",
                    chain_id,
                    len(payload),
                    rowcount,
                )

        logger.info("Stored contract events: chain_id=%s, rows=%s, inserted=%s", chain_id, len(rows), inserted)
        return inserted
