from __future__ import annotations

from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine

from chain_client.app.domain.ports.out import ContractEventsIndexer
from chain_client.app.infrastructure.adapters.staging.contract_events_indexer import (
    SqlAlchemyContractEventsIndexer,
)


ContractEventsIndexerFactory = Callable[[AsyncEngine], ContractEventsIndexer]

_CONTRACT_EVENTS_INDEXER_REGISTRY: Dict[str, ContractEventsIndexerFactory] = {
    "sqlalchemy": lambda engine: SqlAlchemyContractEventsIndexer(engine=engine),
}


def contract_events_indexer_factory(
    backend: str,
    engine: AsyncEngine,
) -> ContractEventsIndexer:
    try:
        factory = _CONTRACT_EVENTS_INDEXER_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported contract events indexer backend: {backend!r}")
    return factory(engine)
