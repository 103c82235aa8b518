import pytest
from eth_abi import encode as eth_abi_encode

from chain_client.app.domain.errors import CodecMalformed
from chain_client.app.domain.schema import parse_schema
from chain_client.app.infrastructure.decoders.event_decoder import AbiEventDecoder

from fakes import make_log, word


def test_decode_transfer(erc20_schema):
    event = erc20_schema.event("Transfer")
    raw = make_log([event.topic0, word(0x0A), word(0x0B)], word(42))

    record = AbiEventDecoder(event).decode(raw)

    assert record.event == "Transfer"
    assert int(record["from"], 16) == 0x0A
    assert int(record["to"], 16) == 0x0B
    assert record["value"] == 42
    assert record.raw is raw
    assert list(record.args) == ["from", "to", "value"]


def test_declaration_order_mixes_indexed_and_data(erc20_schema):
    event = erc20_schema.event("Redeemed")
    data = eth_abi_encode(["address", "uint256", "string"], ["0x" + "00" * 19 + "01", 7, "buyback"])
    raw = make_log([event.topic0, word(0x0B)], data)

    record = AbiEventDecoder(event).decode(raw)

    assert list(record.args) == ["redeemer", "account", "amount", "reason"]
    assert int(record["redeemer"], 16) == 1
    assert int(record["account"], 16) == 0x0B
    assert record["amount"] == 7
    assert record["reason"] == "buyback"


def test_topic0_mismatch(erc20_schema):
    event = erc20_schema.event("Transfer")
    raw = make_log([b"\x01" * 32, word(1), word(2)], word(42))
    with pytest.raises(CodecMalformed):
        AbiEventDecoder(event).decode(raw)


def test_wrong_topic_count(erc20_schema):
    event = erc20_schema.event("Transfer")
    raw = make_log([event.topic0, word(1)], word(42))
    with pytest.raises(CodecMalformed):
        AbiEventDecoder(event).decode(raw)


def test_truncated_data(erc20_schema):
    event = erc20_schema.event("Transfer")
    raw = make_log([event.topic0, word(1), word(2)], b"\x00" * 10)
    with pytest.raises(CodecMalformed):
        AbiEventDecoder(event).decode(raw)


def test_indexed_string_keeps_hash():
    schema = parse_schema(
        [
            {
                "type": "event",
                "name": "Tagged",
                "inputs": [
                    {"name": "tag", "type": "string", "indexed": True},
                    {"name": "", "type": "uint256", "indexed": False},
                ],
            }
        ]
    )
    event = schema.event("Tagged")
    raw = make_log([event.topic0, b"\x05" * 32], word(9))

    record = AbiEventDecoder(event).decode(raw)

    assert record["tag"] == b"\x05" * 32
    assert record["arg1"] == 9


def test_anonymous_event_starts_at_first_topic():
    schema = parse_schema(
        [
            {
                "type": "event",
                "name": "Note",
                "anonymous": True,
                "inputs": [{"name": "who", "type": "address", "indexed": True}],
            }
        ]
    )
    decoder = AbiEventDecoder(schema.event("Note"))
    assert decoder.topic0 is None
    record = decoder.decode(make_log([word(0x0A)]))
    assert int(record["who"], 16) == 0x0A
