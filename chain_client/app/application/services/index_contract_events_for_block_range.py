from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final, Sequence

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.domain.models import EventRecord
from chain_client.app.domain.ports.out import ContractEventsIndexer

logger = logging.getLogger(__name__)

_DEFAULT_FLUSH_SIZE: Final[int] = 1_000


@dataclass(frozen=True)
class BlockRange:
    from_block: int
    to_block: int

    def validate(self) -> None:
        if self.from_block < 0 or self.to_block < 0:
            raise ValueError("Block numbers must be non-negative")
        if self.from_block > self.to_block:
            raise ValueError("from_block must be <= to_block")


async def index_contract_events_for_block_range(
    *,
    contract: BoundContract,
    indexer: ContractEventsIndexer,
    chain_id: int,
    block_range: BlockRange,
    events: Sequence[str] | None = None,
    flush_size: int = _DEFAULT_FLUSH_SIZE,
) -> int:
    """
    Application-level use case for backfilling a contract's events into staging.

    Streams every requested event (all non-anonymous events by default) over
    the block range and hands decoded records to the indexer port in chunks.
    Returns the number of records handed over.
    """
    block_range.validate()
    if flush_size <= 0:
        raise ValueError("flush_size must be positive")

    if events is not None:
        names = list(events)
    else:
        # anonymous events have no topic0 to filter on
        names = sorted(n for n, spec in contract.schema.events.items() if not spec.anonymous)

    total = 0
    for name in names:
        pending: list[EventRecord] = []
        async with await contract.filter_historical(
            name,
            from_block=block_range.from_block,
            to_block=block_range.to_block,
        ) as stream:
            async for record in stream:
                pending.append(record)
                if len(pending) >= flush_size:
                    await indexer.store_events(chain_id=chain_id, records=pending)
                    total += len(pending)
                    pending = []
        if pending:
            await indexer.store_events(chain_id=chain_id, records=pending)
            total += len(pending)

        logger.info(
            "Indexed %s events: contract=%s, blocks=[%s, %s], running_total=%s",
            name,
            contract.address,
            block_range.from_block,
            block_range.to_block,
            total,
        )
    return total
