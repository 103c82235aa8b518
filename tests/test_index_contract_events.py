import pytest

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.application.services.index_contract_events_for_block_range import (
    BlockRange,
    index_contract_events_for_block_range,
)

from fakes import TOKEN_ADDRESS, FakeLogSource, make_log, word


class FakeIndexer:
    def __init__(self):
        self.batches = []

    async def store_events(self, *, chain_id, records):
        self.batches.append((chain_id, list(records)))
        return len(self.batches[-1][1])


@pytest.fixture
def history(erc20_schema):
    transfer = erc20_schema.event("Transfer").topic0
    redeemed = erc20_schema.event("Redeemed").topic0
    redeem_data = word(0x0A) + word(5) + word(0x60) + word(0)
    return [
        make_log([transfer, word(1), word(2)], word(10), block_number=5, log_index=0),
        make_log([redeemed, word(3)], redeem_data, block_number=6, log_index=0),
        make_log([transfer, word(2), word(3)], word(20), block_number=7, log_index=1),
        make_log([transfer, word(3), word(4)], word(30), block_number=50, log_index=0),
    ]


@pytest.mark.asyncio
async def test_indexes_every_event_in_range(erc20_schema, history):
    contract = BoundContract(TOKEN_ADDRESS, erc20_schema, log_source=FakeLogSource(history))
    indexer = FakeIndexer()

    total = await index_contract_events_for_block_range(
        contract=contract,
        indexer=indexer,
        chain_id=1,
        block_range=BlockRange(from_block=0, to_block=10),
    )

    assert total == 3
    names = [r.event for _, batch in indexer.batches for r in batch]
    assert names == ["Redeemed", "Transfer", "Transfer"]
    assert all(chain_id == 1 for chain_id, _ in indexer.batches)


@pytest.mark.asyncio
async def test_flushes_in_chunks(erc20_schema, history):
    contract = BoundContract(TOKEN_ADDRESS, erc20_schema, log_source=FakeLogSource(history))
    indexer = FakeIndexer()

    total = await index_contract_events_for_block_range(
        contract=contract,
        indexer=indexer,
        chain_id=1,
        block_range=BlockRange(from_block=0, to_block=100),
        events=["Transfer"],
        flush_size=2,
    )

    assert total == 3
    assert [len(batch) for _, batch in indexer.batches] == [2, 1]


@pytest.mark.asyncio
async def test_releases_every_subscription(erc20_schema, history):
    source = FakeLogSource(history)
    contract = BoundContract(TOKEN_ADDRESS, erc20_schema, log_source=source)

    await index_contract_events_for_block_range(
        contract=contract,
        indexer=FakeIndexer(),
        chain_id=1,
        block_range=BlockRange(from_block=0, to_block=10),
    )

    assert len(source.subscriptions) == 2
    assert all(sub.unsubscribe_calls == 1 for sub in source.subscriptions)


@pytest.mark.asyncio
async def test_invalid_range(erc20_schema):
    contract = BoundContract(TOKEN_ADDRESS, erc20_schema, log_source=FakeLogSource([]))
    with pytest.raises(ValueError):
        await index_contract_events_for_block_range(
            contract=contract,
            indexer=FakeIndexer(),
            chain_id=1,
            block_range=BlockRange(from_block=10, to_block=1),
        )
