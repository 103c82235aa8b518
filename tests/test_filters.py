import pytest

from chain_client.app.application.contracts.filters import AnyOf, build_topic_filter
from chain_client.app.domain.errors import TypeMismatch
from chain_client.app.domain.schema import parse_schema

from fakes import word

ADDR_AA = "0x00000000000000000000000000000000000000aa"
ADDR_BB = "0x00000000000000000000000000000000000000bb"


def test_or_set_and_unconstrained_position(erc20_schema):
    event = erc20_schema.event("Transfer")
    topics = build_topic_filter(event, {"from": [ADDR_AA, ADDR_BB], "to": None})
    assert topics == [event.topic0, [word(0xAA), word(0xBB)], None]


def test_no_filters_keeps_one_slot_per_indexed_field(erc20_schema):
    event = erc20_schema.event("Transfer")
    assert build_topic_filter(event) == [event.topic0, None, None]


def test_single_value_in_second_position(erc20_schema):
    event = erc20_schema.event("Transfer")
    assert build_topic_filter(event, {"to": ADDR_BB}) == [event.topic0, None, word(0xBB)]


def test_any_of(erc20_schema):
    event = erc20_schema.event("Redeemed")
    topics = build_topic_filter(event, {"account": AnyOf(ADDR_AA)})
    assert topics == [event.topic0, [word(0xAA)]]


def test_non_indexed_field_cannot_be_filtered(erc20_schema):
    with pytest.raises(TypeMismatch):
        build_topic_filter(erc20_schema.event("Transfer"), {"value": 1})


def test_unknown_field(erc20_schema):
    with pytest.raises(TypeMismatch):
        build_topic_filter(erc20_schema.event("Transfer"), {"sender": ADDR_AA})


def test_empty_any_of():
    with pytest.raises(ValueError):
        AnyOf()


def test_list_is_a_single_value_for_array_fields():
    schema = parse_schema(
        [{"type": "event", "name": "Batch", "inputs": [{"name": "ids", "type": "uint256[]", "indexed": True}]}]
    )
    event = schema.event("Batch")
    single = build_topic_filter(event, {"ids": [1, 2]})
    assert isinstance(single[1], bytes)
    either = build_topic_filter(event, {"ids": AnyOf([1], [2])})
    assert isinstance(either[1], list) and len(either[1]) == 2


def test_anonymous_event_has_no_topic0():
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
    assert build_topic_filter(schema.event("Note"), {"who": ADDR_AA}) == [word(0xAA)]
