from __future__ import annotations

import logging

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.config import settings
from chain_client.app.infrastructure.factories.transport_factory import transports_factory
from chain_client.app.infrastructure.registry import load_registry_schema

logger = logging.getLogger(__name__)


async def watch_contract_events_task(
    *,
    chain_id: int,
    contract: str,
    address: str,
    event: str,
    from_block: int | str | None = None,
    transport: str = "web3",
) -> None:
    """Tails one event of a registry contract and logs every decoded record until interrupted."""
    transports = transports_factory(transport, settings)
    bound = BoundContract(
        address,
        load_registry_schema(contract),
        log_source=transports.log_source,
    )

    start = None
    if isinstance(from_block, int):
        start = from_block
    elif isinstance(from_block, str) and from_block.strip().isdigit():
        start = int(from_block.strip())

    logger.info("Watching %s.%s at %s on chain %s", contract, event, bound.address, chain_id)
    async with await bound.watch(event, from_block=start) as stream:
        async for record in stream:
            logger.info(
                "%s block=%s log_index=%s args=%s",
                record.event,
                record.block_number,
                record.log_index,
                dict(record.args),
            )
