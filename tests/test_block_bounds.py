import pytest

from chain_client.app.application.services.block_bounds import parse_block_selector, resolve_block_bounds


@pytest.mark.parametrize(
    ("value", "expected"),
    [(5, 5), ("12", 12), (" Latest ", "latest"), ("earliest", "earliest")],
)
def test_parse_block_selector(value, expected):
    assert parse_block_selector(value) == expected


def test_tags_resolve_against_head():
    assert resolve_block_bounds(from_block="earliest", to_block="latest", head=900) == (0, 900)
    assert resolve_block_bounds(from_block="", to_block="", head=900) == (0, 900)
    assert resolve_block_bounds(from_block="100", to_block=200, head=900) == (100, 200)


def test_unsupported_tags():
    with pytest.raises(ValueError):
        resolve_block_bounds(from_block="latest", to_block="latest", head=1)
    with pytest.raises(ValueError):
        resolve_block_bounds(from_block=0, to_block="pending", head=1)
