from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from chain_client.app.domain.abi_types import StringType, UIntType
from chain_client.app.domain.errors import CodecMalformed
from chain_client.app.domain.schema import ContractSchema
from chain_client.app.infrastructure.codec.abi_codec import decode_abi

# keccak("Error(string)")[:4] and keccak("Panic(uint256)")[:4]
ERROR_STRING_SELECTOR: Final[bytes] = bytes.fromhex("08c379a0")
PANIC_SELECTOR: Final[bytes] = bytes.fromhex("4e487b71")

_PANIC_CODES: Final[dict[int, str]] = {
    0x00: "generic compiler panic",
    0x01: "assertion failed",
    0x11: "arithmetic overflow or underflow",
    0x12: "division or modulo by zero",
    0x21: "invalid enum value",
    0x22: "invalid storage byte array encoding",
    0x31: "pop on empty array",
    0x32: "array index out of bounds",
    0x41: "out of memory",
    0x51: "call to zero-initialized internal function",
}


@dataclass(frozen=True)
class RevertReason:
    """Decoded revert payload: `Error`, `Panic` or a custom error registered in a schema."""

    name: str
    args: tuple[Any, ...]

    @property
    def message(self) -> str:
        if self.name == "Error" and self.args:
            return str(self.args[0])
        if self.name == "Panic" and self.args:
            code = int(self.args[0])
            return f"panic 0x{code:02x}: {_PANIC_CODES.get(code, 'unknown panic code')}"
        rendered = ", ".join(repr(a) for a in self.args)
        return f"{self.name}({rendered})"


def decode_revert(data: bytes, schema: ContractSchema | None = None) -> RevertReason | None:
    """
    Decode a revert payload.

    Returns None when the payload is empty or its selector is unknown; raises
    CodecMalformed when a known selector is followed by bytes that do not parse.
    """
    data = bytes(data)
    if len(data) < 4:
        return None

    selector, body = data[:4], data[4:]
    if selector == ERROR_STRING_SELECTOR:
        return RevertReason("Error", decode_abi([StringType()], body))
    if selector == PANIC_SELECTOR:
        return RevertReason("Panic", decode_abi([UIntType(256)], body))

    if schema is not None:
        spec = schema.error_by_selector(selector)
        if spec is not None:
            return RevertReason(spec.name, decode_abi(spec.input_types, body))
    return None


def revert_reason(data: bytes, schema: ContractSchema | None = None) -> str | None:
    """Human-readable revert message, or None when the payload cannot be decoded."""
    try:
        decoded = decode_revert(data, schema)
    except CodecMalformed:
        return None
    return decoded.message if decoded is not None else None
