from __future__ import annotations

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.application.services.block_bounds import resolve_block_bounds
from chain_client.app.application.services.index_contract_events_for_block_range import (
    BlockRange,
    index_contract_events_for_block_range,
)
from chain_client.app.config import settings
from chain_client.app.domain.ports.out import ContractEventsIndexer
from chain_client.app.infrastructure.db.engine import create_app_async_engine
from chain_client.app.infrastructure.factories.contract_events_indexer_factory import contract_events_indexer_factory
from chain_client.app.infrastructure.factories.transport_factory import transports_factory
from chain_client.app.infrastructure.registry import load_registry_schema


async def index_contract_events_task(
    *,
    chain_id: int,
    contract: str,
    address: str,
    from_block: int | str,
    to_block: int | str,
    backend: str = "sqlalchemy",
    transport: str = "web3",
) -> None:
    """
    Backfills decoded events of one registry contract into staging.contract_events.

    from_block / to_block can be:
    - int (a specific block number),
    - "earliest" (block 0),
    - "latest" (the current chain head).
    """
    transports = transports_factory(transport, settings)
    head = await transports.chain_head()
    resolved_from_block, resolved_to_block = resolve_block_bounds(
        from_block=from_block,
        to_block=to_block,
        head=head,
    )

    bound = BoundContract(
        address,
        load_registry_schema(contract),
        reader=transports.reader,
        log_source=transports.log_source,
    )

    engine = create_app_async_engine()
    try:
        indexer: ContractEventsIndexer = contract_events_indexer_factory(
            backend=backend,
            engine=engine,
        )

        await index_contract_events_for_block_range(
            contract=bound,
            indexer=indexer,
            chain_id=chain_id,
            block_range=BlockRange(
                from_block=resolved_from_block,
                to_block=resolved_to_block,
            ),
        )
    finally:
        await engine.dispose()
