import json

import pytest

from chain_client.app.domain.errors import SchemaInvalid, UnknownEvent, UnknownMethod
from chain_client.app.domain.schema import Mutability, load_schema, parse_schema, parse_schema_json
from chain_client.app.infrastructure.registry import load_registry_schema

from fakes import ERC20_ABI


def test_transfer_selector(erc20_schema):
    spec = erc20_schema.method("transfer")
    assert spec.signature == "transfer(address,uint256)"
    assert spec.selector.hex() == "a9059cbb"


def test_transfer_topic(erc20_schema):
    event = erc20_schema.event("Transfer")
    assert event.signature == "Transfer(address,address,uint256)"
    assert event.topic0.hex() == "ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def test_balance_of_selector(erc20_schema):
    assert erc20_schema.method("balanceOf").selector.hex() == "70a08231"


def test_method_metadata(erc20_schema):
    spec = erc20_schema.method("balanceOf")
    assert spec.mutability is Mutability.VIEW
    assert spec.mutability.is_read_only
    assert [p.name for p in spec.inputs] == ["account"]
    assert erc20_schema.method("transfer").mutability is Mutability.NONPAYABLE


def test_constructor_and_receive_are_recorded(erc20_schema):
    assert [p.type.canonical for p in erc20_schema.constructor.inputs] == ["string", "uint256"]
    assert erc20_schema.has_receive
    assert not erc20_schema.has_fallback


def test_errors_are_registered(erc20_schema):
    error = erc20_schema.errors["InsufficientBalance"]
    assert error.signature == "InsufficientBalance(uint256,uint256)"
    assert erc20_schema.error_by_selector(error.selector) is error


def test_event_by_topic(erc20_schema):
    event = erc20_schema.event("Transfer")
    assert erc20_schema.event_by_topic(event.topic0) is event
    assert erc20_schema.event_by_topic(b"\x00" * 32) is None


def test_unknown_names(erc20_schema):
    with pytest.raises(UnknownMethod):
        erc20_schema.method("mint")
    with pytest.raises(UnknownEvent):
        erc20_schema.event("Minted")


def test_unknown_method_is_a_lookup_error(erc20_schema):
    with pytest.raises(LookupError):
        erc20_schema.method("mint")


def test_duplicate_function_names_are_rejected():
    entry = {"type": "function", "name": "f", "inputs": [], "outputs": []}
    overload = {"type": "function", "name": "f", "inputs": [{"name": "x", "type": "uint256"}], "outputs": []}
    with pytest.raises(SchemaInvalid):
        parse_schema([entry, overload])


def test_function_and_event_may_share_a_name():
    schema = parse_schema(
        [
            {"type": "function", "name": "Ping", "inputs": [], "outputs": []},
            {"type": "event", "name": "Ping", "inputs": []},
        ]
    )
    assert schema.method("Ping").signature == "Ping()"
    assert schema.event("Ping").signature == "Ping()"


def test_too_many_indexed_fields():
    fields = [{"name": f"a{i}", "type": "uint256", "indexed": True} for i in range(4)]
    with pytest.raises(SchemaInvalid):
        parse_schema([{"type": "event", "name": "E", "inputs": fields}])
    schema = parse_schema([{"type": "event", "name": "E", "inputs": fields, "anonymous": True}])
    assert schema.event("E").anonymous


def test_unknown_entry_type():
    with pytest.raises(SchemaInvalid):
        parse_schema([{"type": "modifier", "name": "onlyOwner"}])


def test_unknown_type_token():
    with pytest.raises(SchemaInvalid):
        parse_schema([{"type": "function", "name": "f", "inputs": [{"name": "x", "type": "uint7"}]}])


def test_entry_type_defaults_to_function():
    schema = parse_schema([{"name": "f", "inputs": [], "outputs": []}])
    assert schema.method("f").signature == "f()"


def test_legacy_constant_flag():
    schema = parse_schema([{"type": "function", "name": "f", "constant": True, "inputs": [], "outputs": []}])
    assert schema.method("f").mutability is Mutability.VIEW


def test_parse_schema_json_accepts_artifacts():
    schema = parse_schema_json(json.dumps({"abi": ERC20_ABI}))
    assert "transfer" in schema.methods
    with pytest.raises(SchemaInvalid):
        parse_schema_json("{not json")
    with pytest.raises(SchemaInvalid):
        parse_schema_json(json.dumps({"bytecode": "0x"}))


def test_load_schema(tmp_path):
    path = tmp_path / "Token.json"
    path.write_text(json.dumps(ERC20_ABI), encoding="utf-8")
    assert load_schema(path).method("balanceOf").selector.hex() == "70a08231"
    with pytest.raises(FileNotFoundError):
        load_schema(tmp_path / "Missing.json")


def test_registry_security_token_schema():
    schema = load_registry_schema("SecurityToken")
    assert schema.method("transfer").selector.hex() == "a9059cbb"
    assert [p.type.canonical for p in schema.constructor.inputs] == ["string", "string", "uint256", "address"]
    assert schema.method("getDocument").output_types[1].canonical == "(bytes32,uint64,string)"
    assert schema.event("Redeemed").signature == "Redeemed(address,address,uint256,string)"


def test_registry_compliance_schema():
    schema = load_registry_schema("ComplianceService")
    assert schema.constructor.inputs == ()
    assert schema.method("hasRole").signature == "hasRole(bytes32,address)"
    assert schema.method("hasRole").selector.hex() == "91d14854"
    assert schema.event("RoleGranted").topic0.hex() == "2f8788117e7eff1d82e926ec794901d17c78024a50270940304540a733656f0d"
