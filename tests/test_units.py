from decimal import Decimal

import pytest
from eth_utils import to_checksum_address

from chain_client.app.domain.errors import CodecRange, TypeMismatch
from chain_client.app.domain.units import from_base_units, to_base_units, validate_address


@pytest.mark.parametrize(
    ("amount", "decimals", "expected"),
    [
        (1, 18, 10**18),
        ("1.5", 18, 15 * 10**17),
        (Decimal("0.000001"), 6, 1),
        ("1000000000000000000000", 18, 10**39),
        ("42", 0, 42),
    ],
)
def test_to_base_units(amount, decimals, expected):
    assert to_base_units(amount, decimals) == expected


def test_too_many_decimals():
    with pytest.raises(CodecRange):
        to_base_units("0.0000001", 6)


def test_negative_amount():
    with pytest.raises(CodecRange):
        to_base_units(-1)


@pytest.mark.parametrize("amount", [1.5, True, "abc", "NaN"])
def test_rejected_amounts(amount):
    with pytest.raises(TypeMismatch):
        to_base_units(amount)


def test_from_base_units():
    assert from_base_units(15 * 10**17) == Decimal("1.5")
    assert from_base_units(1, 6) == Decimal("0.000001")


def test_validate_address():
    assert validate_address("0x00000000000000000000000000000000000000ff") == to_checksum_address("0x00000000000000000000000000000000000000ff")
    with pytest.raises(TypeMismatch):
        validate_address("0x0000000000000000000000000000000000000000")
    with pytest.raises(TypeMismatch):
        validate_address("not-an-address")
