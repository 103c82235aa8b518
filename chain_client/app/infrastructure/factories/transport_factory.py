from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

from chain_client.app.config import Settings
from chain_client.app.domain.ports.out import ContractReader, LogSource, TransactionWriter
from chain_client.app.infrastructure.adapters.web3_transport import (
    Web3ContractReader,
    Web3LogSource,
    Web3TransactionWriter,
    create_async_web3,
)


@dataclass(frozen=True)
class Transports:
    reader: ContractReader
    writer: TransactionWriter
    log_source: LogSource
    chain_head: Callable[[], Awaitable[int]]


def _web3_transports(settings: Settings) -> Transports:
    w3 = create_async_web3(settings.rpc_url, timeout=settings.request_timeout)
    reader = Web3ContractReader(w3=w3)
    return Transports(
        reader=reader,
        writer=Web3TransactionWriter(
            w3=w3,
            chain_id=settings.chain_id,
            confirm=settings.confirm_transactions,
        ),
        log_source=Web3LogSource(
            w3=w3,
            poll_interval=settings.log_poll_interval,
            block_batch_size=settings.log_block_batch_size,
            queue_size=settings.log_queue_size,
        ),
        chain_head=reader.block_number,
    )


TransportsFactory = Callable[[Settings], Transports]

_TRANSPORTS_REGISTRY: Dict[str, TransportsFactory] = {
    "web3": _web3_transports,
}


def transports_factory(backend: str, settings: Settings) -> Transports:
    try:
        factory = _TRANSPORTS_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported transport backend: {backend!r}")
    return factory(settings)
