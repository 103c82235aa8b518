from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Final

from eth_utils import is_address, to_checksum_address

from chain_client.app.domain.errors import CodecRange, TypeMismatch

ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"
DEFAULT_DECIMALS: Final[int] = 18


def to_base_units(amount: int | str | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Convert a human amount ("1.5", Decimal("1.5"), 2) to integer base units.

    Raises CodecRange when the amount is negative or has more fractional
    digits than `decimals` allows.
    """
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    if isinstance(amount, bool) or isinstance(amount, float):
        raise TypeMismatch(f"Amount must be int, str or Decimal, got {type(amount).__name__}")
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise TypeMismatch(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise TypeMismatch(f"Invalid amount: {amount!r}")
    if value < 0:
        raise CodecRange(f"Amount must be non-negative, got {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 128
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise CodecRange(f"Amount {amount!r} has more than {decimals} decimal places")
        return int(scaled)


def from_base_units(value: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeMismatch(f"Base units must be int, got {type(value).__name__}")
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    with localcontext() as ctx:
        ctx.prec = 128
        return Decimal(value).scaleb(-decimals)


def validate_address(address: str, *, field: str = "address") -> str:
    """Return the checksummed address; reject malformed and zero addresses."""
    if not isinstance(address, str) or not is_address(address):
        raise TypeMismatch(f"Invalid {field}: {address!r}")
    if int(address, 16) == 0:
        raise TypeMismatch(f"Invalid {field}: zero address")
    return to_checksum_address(address)
