from __future__ import annotations

from typing import Any, Mapping, Sequence

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError, EncodingError, ValueOutOfBounds
from eth_utils import is_address, is_hex, keccak, to_bytes, to_canonical_address, to_checksum_address

from chain_client.app.domain.abi_types import (
    WORD_SIZE,
    AbiType,
    AddressType,
    ArrayType,
    BoolType,
    BytesType,
    FixedArrayType,
    FixedBytesType,
    IntType,
    StringType,
    TupleType,
    UIntType,
)
from chain_client.app.domain.errors import ArityMismatch, CodecMalformed, CodecRange, TypeMismatch


def _type_strings(types: Sequence[AbiType]) -> list[str]:
    return [t.canonical for t in types]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode_abi(types: Sequence[AbiType], values: Sequence[Any]) -> bytes:
    """
    Encode `values` as the tuple `types` using the head/tail layout.

    Values are checked and normalized against `types` first (so callers get
    TypeMismatch / CodecRange / ArityMismatch), then eth_abi lays out the
    bytes.
    """
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise TypeMismatch(f"Expected a sequence of {len(types)} value(s), got {type(values).__name__}")
    if len(types) != len(values):
        raise ArityMismatch("tuple(" + ",".join(t.canonical for t in types) + ")", len(types), len(values))

    normalized = [_normalize(t, v) for t, v in zip(types, values)]
    try:
        return abi_encode(_type_strings(types), normalized)
    except ValueOutOfBounds as exc:
        raise CodecRange(str(exc)) from exc
    except EncodingError as exc:
        raise TypeMismatch(str(exc)) from exc


def encode_single(typ: AbiType, value: Any) -> bytes:
    """Encode one value as a 1-tuple (what a single return value looks like)."""
    return encode_abi([typ], [value])


def _pad_right(data: bytes) -> bytes:
    remainder = len(data) % WORD_SIZE
    if remainder == 0:
        return data
    return data + b"\x00" * (WORD_SIZE - remainder)


def _as_bytes(typ: AbiType, value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str) and is_hex(value) and value.startswith(("0x", "0X")):
        return to_bytes(hexstr=value)
    raise TypeMismatch(f"{typ.canonical} expects bytes or a 0x-prefixed hex string, got {type(value).__name__}")


def _as_address(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)) and len(value) == 20:
        return to_checksum_address(bytes(value))
    if isinstance(value, str) and is_address(value):
        return to_checksum_address(to_canonical_address(value))
    raise TypeMismatch(f"address expects a 20-byte value or a hex address, got {value!r}")


def _as_sequence(typ: AbiType, value: Any) -> Sequence[Any]:
    if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
        raise TypeMismatch(f"{typ.canonical} expects a sequence, got {type(value).__name__}")
    return value


def _tuple_items(typ: TupleType, value: Any) -> Sequence[Any]:
    if isinstance(value, Mapping):
        if not typ.names or not all(typ.names):
            raise TypeMismatch(f"{typ.canonical} has unnamed components; pass a sequence")
        missing = [n for n in typ.names if n not in value]
        if missing:
            raise TypeMismatch(f"{typ.canonical} is missing component(s) {missing}")
        return [value[n] for n in typ.names]
    items = _as_sequence(typ, value)
    if len(items) != len(typ.components):
        raise ArityMismatch(typ.canonical, len(typ.components), len(items))
    return items


def _normalize(typ: AbiType, value: Any) -> Any:
    """Caller value -> the exact Python value eth_abi's strict encoder expects for `typ`."""
    if isinstance(typ, UIntType):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeMismatch(f"{typ.canonical} expects int, got {type(value).__name__}")
        if value < 0 or value >= 1 << typ.bits:
            raise CodecRange(f"Value {value} out of range for {typ.canonical}")
        return value

    if isinstance(typ, IntType):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeMismatch(f"{typ.canonical} expects int, got {type(value).__name__}")
        bound = 1 << (typ.bits - 1)
        if not -bound <= value < bound:
            raise CodecRange(f"Value {value} out of range for {typ.canonical}")
        return value

    if isinstance(typ, BoolType):
        if not isinstance(value, bool):
            raise TypeMismatch(f"bool expects bool, got {type(value).__name__}")
        return value

    if isinstance(typ, AddressType):
        return _as_address(value)

    if isinstance(typ, FixedBytesType):
        raw = _as_bytes(typ, value)
        if len(raw) > typ.size:
            raise CodecRange(f"{len(raw)} bytes do not fit {typ.canonical}")
        return raw.ljust(typ.size, b"\x00")

    if isinstance(typ, StringType):
        if not isinstance(value, str):
            raise TypeMismatch(f"string expects str, got {type(value).__name__}")
        return value

    if isinstance(typ, BytesType):
        return _as_bytes(typ, value)

    if isinstance(typ, TupleType):
        return tuple(_normalize(t, v) for t, v in zip(typ.components, _tuple_items(typ, value)))

    if isinstance(typ, ArrayType):
        return [_normalize(typ.item, v) for v in _as_sequence(typ, value)]

    if isinstance(typ, FixedArrayType):
        items = _as_sequence(typ, value)
        if len(items) != typ.length:
            raise ArityMismatch(typ.canonical, typ.length, len(items))
        return [_normalize(typ.item, v) for v in items]

    raise TypeMismatch(f"Unsupported ABI type {typ!r}")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode_abi(types: Sequence[AbiType], data: bytes) -> tuple[Any, ...]:
    """
    Decode `data` as the tuple `types`.

    Truncated input, offsets outside the buffer, lengths overrunning the
    buffer and dirty padding raise CodecMalformed.
    """
    if len(types) == 0:
        return ()
    try:
        values = abi_decode(_type_strings(types), bytes(data), strict=True)
    except (DecodingError, UnicodeDecodeError, OverflowError) as exc:
        raise CodecMalformed(f"Cannot decode ({','.join(_type_strings(types))}): {exc}") from exc
    return tuple(_from_abi(t, v) for t, v in zip(types, values))


def decode_single(typ: AbiType, data: bytes) -> Any:
    return decode_abi([typ], data)[0]


def decode_word(typ: AbiType, word: bytes) -> Any:
    """Decode a single 32-byte word holding a value type (also used for topics)."""
    if not typ.is_value_type:
        raise CodecMalformed(f"{typ.canonical} is not a single-word type")
    if len(word) != WORD_SIZE:
        raise CodecMalformed(f"Expected a 32-byte word for {typ.canonical}, got {len(word)} bytes")
    return decode_single(typ, word)


def _from_abi(typ: AbiType, value: Any) -> Any:
    """eth_abi output -> the values this package hands out (checksummed addresses, tuples)."""
    if isinstance(typ, AddressType):
        return to_checksum_address(value)
    if isinstance(typ, (FixedBytesType, BytesType)):
        return bytes(value)
    if isinstance(typ, TupleType):
        return tuple(_from_abi(t, v) for t, v in zip(typ.components, value))
    if isinstance(typ, (ArrayType, FixedArrayType)):
        return tuple(_from_abi(typ.item, v) for v in value)
    return value


# ---------------------------------------------------------------------------
# Calls and topics
# ---------------------------------------------------------------------------

def encode_call(selector: bytes, types: Sequence[AbiType], args: Sequence[Any]) -> bytes:
    """4-byte selector followed by the encoded argument tuple."""
    return bytes(selector) + encode_abi(types, args)


def encode_topic(typ: AbiType, value: Any) -> bytes:
    """
    Encode an indexed event value into its 32-byte topic slot.

    Value types are stored verbatim; bytes/string/arrays/tuples are stored as
    keccak256 of their in-place encoding.
    """
    if typ.is_value_type:
        return encode_single(typ, value)
    if isinstance(typ, StringType):
        return keccak(_normalize(typ, value).encode("utf-8"))
    if isinstance(typ, BytesType):
        return keccak(_as_bytes(typ, value))
    return keccak(_topic_preimage(typ, value))


def _topic_preimage(typ: AbiType, value: Any) -> bytes:
    # in-place encoding: no offsets or lengths, every element padded to a word
    if typ.is_value_type:
        return encode_single(typ, value)
    if isinstance(typ, StringType):
        return _pad_right(_normalize(typ, value).encode("utf-8"))
    if isinstance(typ, BytesType):
        return _pad_right(_as_bytes(typ, value))
    if isinstance(typ, TupleType):
        items = _tuple_items(typ, value)
        return b"".join(_topic_preimage(t, v) for t, v in zip(typ.components, items))
    if isinstance(typ, (ArrayType, FixedArrayType)):
        items = _as_sequence(typ, value)
        if isinstance(typ, FixedArrayType) and len(items) != typ.length:
            raise ArityMismatch(typ.canonical, typ.length, len(items))
        return b"".join(_topic_preimage(typ.item, v) for v in items)
    raise TypeMismatch(f"Unsupported ABI type {typ!r}")


def decode_topic(typ: AbiType, topic: bytes) -> Any:
    """
    Decode an indexed field from its topic.

    Hashed (reference-type) fields cannot be recovered; their 32-byte hash is
    returned as bytes.
    """
    topic = bytes(topic)
    if len(topic) != WORD_SIZE:
        raise CodecMalformed(f"Expected 32 bytes (topic), got len={len(topic)}")
    if typ.is_value_type:
        return decode_word(typ, topic)
    return topic
