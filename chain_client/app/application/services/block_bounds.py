from __future__ import annotations

from typing import Literal

BlockSelector = int | str
_EARLIEST: Literal["earliest"] = "earliest"
_LATEST: Literal["latest"] = "latest"


def parse_block_selector(value: BlockSelector) -> BlockSelector:
    """CLI text -> int when numeric, else the lower-cased tag."""
    if isinstance(value, int):
        return value
    text = value.strip().lower()
    if text.isdigit():
        return int(text)
    return text


def resolve_block_bounds(
    *,
    from_block: BlockSelector,
    to_block: BlockSelector,
    head: int,
) -> tuple[int, int]:
    """
    Resolve from_block / to_block into concrete block numbers against the chain head.

    - ints are returned as-is,
    - "earliest" / ""  -> 0,
    - "latest" / ""    -> head.
    """
    from_block = parse_block_selector(from_block)
    to_block = parse_block_selector(to_block)

    if isinstance(from_block, int):
        fb = from_block
    elif from_block in ("", _EARLIEST):
        fb = 0
    else:
        raise ValueError(f"Unsupported from_block value: {from_block!r}")

    if isinstance(to_block, int):
        tb = to_block
    elif to_block in ("", _LATEST):
        tb = head
    else:
        raise ValueError(f"Unsupported to_block value: {to_block!r}")

    return fb, tb
