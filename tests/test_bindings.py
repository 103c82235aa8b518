import pytest
from eth_abi import encode as eth_abi_encode

from chain_client.app.application.bindings.compliance_service import (
    DEFAULT_ADMIN_ROLE,
    ST_CONTROL_ROLE,
    ComplianceService,
    parse_role,
)
from chain_client.app.application.bindings.security_token import Document, SecurityToken
from chain_client.app.domain.errors import CodecRange, TypeMismatch
from chain_client.app.infrastructure.registry import load_registry_bytecode

from fakes import TOKEN_ADDRESS, FakeLogSource, FakeReader, FakeWriter, word

HOLDER = "0x0000000000000000000000000000000000000001"
COMPLIANCE = "0x00000000000000000000000000000000000000cc"


@pytest.mark.asyncio
async def test_token_balance_of():
    reader = FakeReader(word(1000))
    token = SecurityToken.bind(TOKEN_ADDRESS, reader=reader)

    assert await token.balance_of(HOLDER) == 1000
    assert reader.calls[0]["data"] == bytes.fromhex("70a08231") + word(1)


@pytest.mark.asyncio
async def test_token_get_document():
    name = b"prospectus".ljust(32, b"\x00")
    doc_hash = b"\x07" * 32
    payload = eth_abi_encode(
        ["bytes32", "(bytes32,uint256,string)"],
        [name, (doc_hash, 1_700_000_000, "ipfs://doc")],
    )
    token = SecurityToken.bind(TOKEN_ADDRESS, reader=FakeReader(payload))

    document = await token.get_document(0)

    assert document == Document(name=name, doc_hash=doc_hash, last_modified=1_700_000_000, uri="ipfs://doc")


@pytest.mark.asyncio
async def test_token_issue_rejects_zero_recipient():
    writer = FakeWriter()
    token = SecurityToken.bind(TOKEN_ADDRESS, writer=writer)

    with pytest.raises(TypeMismatch):
        await token.issue("0x0000000000000000000000000000000000000000", 1, sig_context="issuer")
    assert writer.submitted == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call",
    [
        lambda token, bad: token.transfer_from(bad, HOLDER, 1, sig_context="spender"),
        lambda token, bad: token.transfer_from(HOLDER, bad, 1, sig_context="spender"),
        lambda token, bad: token.approve(bad, 1, sig_context="owner"),
        lambda token, bad: token.increase_allowance(bad, 1, sig_context="owner"),
        lambda token, bad: token.decrease_allowance(bad, 1, sig_context="owner"),
        lambda token, bad: token.allowance(bad, HOLDER),
        lambda token, bad: token.allowance(HOLDER, bad),
    ],
)
@pytest.mark.parametrize("bad", ["0x0000000000000000000000000000000000000000", "0x1234", "holder"])
async def test_token_allowance_methods_validate_addresses(call, bad):
    reader = FakeReader(word(0))
    writer = FakeWriter()
    token = SecurityToken.bind(TOKEN_ADDRESS, reader=reader, writer=writer)

    with pytest.raises(TypeMismatch):
        await call(token, bad)
    assert writer.submitted == []
    assert reader.calls == []


@pytest.mark.asyncio
async def test_token_transfer_from_checksums_addresses():
    writer = FakeWriter()
    token = SecurityToken.bind(TOKEN_ADDRESS, writer=writer)

    await token.transfer_from(HOLDER, COMPLIANCE, 7, sig_context="spender")

    tx, _ = writer.submitted[0]
    assert tx.data[4:] == eth_abi_encode(["address", "address", "uint256"], [HOLDER, COMPLIANCE, 7])


@pytest.mark.asyncio
async def test_token_redeem_encodes_reason():
    writer = FakeWriter()
    token = SecurityToken.bind(TOKEN_ADDRESS, writer=writer)

    await token.redeem(HOLDER, 5, "buyback", sig_context="controller")

    tx, _ = writer.submitted[0]
    assert tx.data[4:] == eth_abi_encode(["address", "uint256", "string"], [HOLDER, 5, "buyback"])


@pytest.mark.asyncio
async def test_token_deploy_scales_initial_supply():
    writer = FakeWriter()

    token, handle = await SecurityToken.deploy(
        name="Acme Shares",
        symbol="ACME",
        initial_supply="1000.5",
        compliance=COMPLIANCE,
        writer=writer,
        sig_context="deployer",
    )

    tx, _ = writer.created[0]
    bytecode = bytes.fromhex(load_registry_bytecode("SecurityToken")[2:])
    assert tx.data.startswith(bytecode)
    assert tx.data[len(bytecode):] == eth_abi_encode(
        ["string", "string", "uint256", "address"],
        ["Acme Shares", "ACME", 1_000_500_000_000_000_000_000, COMPLIANCE],
    )
    assert handle == b"\x22" * 32
    assert token.address.lower() == writer.created_at


@pytest.mark.asyncio
async def test_token_deploy_rejects_fractional_base_units():
    with pytest.raises(CodecRange):
        await SecurityToken.deploy(
            name="A",
            symbol="A",
            initial_supply="0.5",
            compliance=COMPLIANCE,
            writer=FakeWriter(),
            sig_context="deployer",
            decimals=0,
        )


def test_parse_role():
    assert parse_role("ST_CONTROL_ROLE") == ST_CONTROL_ROLE
    assert parse_role("0x" + "00" * 32) == DEFAULT_ADMIN_ROLE
    assert parse_role(bytes(32)) == DEFAULT_ADMIN_ROLE
    with pytest.raises(TypeMismatch):
        parse_role("0x1234")
    with pytest.raises(TypeMismatch):
        parse_role("NOT_A_ROLE")
    with pytest.raises(TypeMismatch):
        parse_role(7)


@pytest.mark.asyncio
async def test_compliance_has_role():
    reader = FakeReader(word(1))
    compliance = ComplianceService.bind(COMPLIANCE, reader=reader)

    assert await compliance.has_role("ST_CONTROL_ROLE", HOLDER) is True
    assert reader.calls[0]["data"] == bytes.fromhex("91d14854") + ST_CONTROL_ROLE + word(1)


@pytest.mark.asyncio
async def test_compliance_validation_result():
    payload = eth_abi_encode(["bool", "string"], [False, "wallet not registered"])
    compliance = ComplianceService.bind(COMPLIANCE, reader=FakeReader(payload))

    result = await compliance.validate_transfer(HOLDER, COMPLIANCE, 10)

    assert not result.ok
    assert result.reason == "wallet not registered"


@pytest.mark.asyncio
async def test_compliance_deploy_has_no_constructor_args():
    writer = FakeWriter()

    await ComplianceService.deploy(writer=writer, sig_context="deployer")

    tx, _ = writer.created[0]
    assert tx.data == bytes.fromhex(load_registry_bytecode("ComplianceService")[2:])


@pytest.mark.asyncio
async def test_watch_role_granted_filters_on_role():
    source = FakeLogSource()
    compliance = ComplianceService.bind(COMPLIANCE, log_source=source)

    stream = await compliance.watch_role_granted(role="ST_CONTROL_ROLE")

    assert source.last.query.topics == [
        bytes.fromhex("2f8788117e7eff1d82e926ec794901d17c78024a50270940304540a733656f0d"),
        ST_CONTROL_ROLE,
        None,
        None,
    ]
    await stream.close()
