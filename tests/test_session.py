import pytest

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.application.contracts.session import ContractSession
from chain_client.app.domain.cancellation import CancelToken
from chain_client.app.domain.errors import Cancelled
from chain_client.app.domain.models import CallContext

from fakes import TOKEN_ADDRESS, FakeReader, FakeWriter, word

RECIPIENT = "0x0000000000000000000000000000000000000002"


@pytest.fixture
def session(erc20_schema):
    contract = BoundContract(TOKEN_ADDRESS, erc20_schema, reader=FakeReader(word(9)), writer=FakeWriter())
    return ContractSession(contract, call_context=CallContext(block=100), sig_context="default", gas_limit=50_000)


@pytest.mark.asyncio
async def test_session_call_context(session):
    assert await session.call("balanceOf", RECIPIENT) == (9,)
    assert session.contract._reader.calls[0]["block"] == 100

    await session.call("balanceOf", RECIPIENT, context=CallContext(block=7))
    assert session.contract._reader.calls[1]["block"] == 7


@pytest.mark.asyncio
async def test_session_signing_defaults_and_overrides(session):
    writer = session.contract._writer

    await session.transact("transfer", RECIPIENT, 1)
    await session.transact("transfer", RECIPIENT, 1, sig_context="other", gas_limit=21_000)

    (first, first_sig), (second, second_sig) = writer.submitted
    assert (first_sig, first.gas_limit) == ("default", 50_000)
    assert (second_sig, second.gas_limit) == ("other", 21_000)


@pytest.mark.asyncio
async def test_session_without_signer(session):
    bare = ContractSession(session.contract)
    with pytest.raises(ValueError):
        await bare.transfer(1)

    signed = bare.with_sig_context("late")
    await signed.transfer(1)
    assert session.contract._writer.submitted[-1][1] == "late"


@pytest.mark.asyncio
async def test_session_transfer_overrides(session):
    writer = session.contract._writer

    await session.transfer(3)
    await session.transfer(4, gas_limit=30_000, sig_context="other")

    (first, first_sig), (second, second_sig) = writer.submitted
    assert (first_sig, first.gas_limit, first.value, first.data) == ("default", 50_000, 3, b"")
    assert (second_sig, second.gas_limit, second.value) == ("other", 30_000, 4)


@pytest.mark.asyncio
async def test_session_transfer_context_override(session):
    cancel = CancelToken()
    cancel.cancel()

    with pytest.raises(Cancelled):
        await session.transfer(1, context=CallContext(cancel=cancel))
    assert session.contract._writer.submitted == []
