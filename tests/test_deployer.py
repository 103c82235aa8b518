import pytest
from eth_abi import encode as eth_abi_encode
from eth_utils import to_checksum_address

from chain_client.app.application.contracts.deployer import build_creation_data, deploy_contract
from chain_client.app.domain.errors import ArityMismatch, SigRejected, TypeMismatch

from fakes import FakeReader, FakeWriter

BYTECODE = bytes.fromhex("6080604052")


def test_creation_data_is_bytecode_plus_encoded_args(erc20_schema):
    data = build_creation_data(erc20_schema, BYTECODE, ("Token", 1000))
    assert data == BYTECODE + eth_abi_encode(["string", "uint256"], ["Token", 1000])


def test_hex_bytecode_is_accepted(erc20_schema):
    assert build_creation_data(erc20_schema, "0x6080604052", ("T", 1)).startswith(BYTECODE)


def test_constructor_arity(erc20_schema):
    with pytest.raises(ArityMismatch) as exc_info:
        build_creation_data(erc20_schema, BYTECODE, ("Token",))
    assert exc_info.value.expected == 2


@pytest.mark.parametrize("bytecode", [b"", "", "0xzz", 123])
def test_bad_bytecode(erc20_schema, bytecode):
    with pytest.raises(TypeMismatch):
        build_creation_data(erc20_schema, bytecode, ("Token", 1))


@pytest.mark.asyncio
async def test_deploy_binds_new_address(erc20_schema):
    writer = FakeWriter(created_at="0x00000000000000000000000000000000000000c0")
    reader = FakeReader()

    deployment = await deploy_contract(
        erc20_schema, BYTECODE, "Token", 1000, writer=writer, sig_context="deployer", reader=reader
    )

    tx, sig = writer.created[0]
    assert tx.to is None
    assert tx.is_creation
    assert sig == "deployer"
    assert deployment.address == to_checksum_address("0x00000000000000000000000000000000000000c0")
    assert deployment.tx_handle == b"\x22" * 32
    assert deployment.contract.schema is erc20_schema


@pytest.mark.asyncio
async def test_deploy_propagates_signing_rejection(erc20_schema):
    writer = FakeWriter()
    writer.error = SigRejected("hardware wallet declined")

    with pytest.raises(SigRejected):
        await deploy_contract(erc20_schema, BYTECODE, "Token", 1, writer=writer, sig_context=None)
