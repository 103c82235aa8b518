import pytest
from eth_abi import encode as eth_abi_encode

from chain_client.app.domain.errors import CodecMalformed
from chain_client.app.infrastructure.codec.revert import (
    ERROR_STRING_SELECTOR,
    PANIC_SELECTOR,
    decode_revert,
    revert_reason,
)


def error_string(message: str) -> bytes:
    return ERROR_STRING_SELECTOR + eth_abi_encode(["string"], [message])


def test_error_string():
    decoded = decode_revert(error_string("insufficient balance"))
    assert decoded.name == "Error"
    assert decoded.message == "insufficient balance"


def test_panic_code():
    data = PANIC_SELECTOR + eth_abi_encode(["uint256"], [0x11])
    assert revert_reason(data) == "panic 0x11: arithmetic overflow or underflow"


def test_custom_error_needs_schema(erc20_schema):
    error = erc20_schema.errors["InsufficientBalance"]
    data = error.selector + eth_abi_encode(["uint256", "uint256"], [5, 10])
    assert decode_revert(data) is None
    decoded = decode_revert(data, erc20_schema)
    assert decoded.name == "InsufficientBalance"
    assert decoded.args == (5, 10)
    assert decoded.message == "InsufficientBalance(5, 10)"


def test_empty_and_unknown_payloads():
    assert decode_revert(b"") is None
    assert revert_reason(b"\x01\x02\x03\x04") is None


def test_malformed_body():
    data = ERROR_STRING_SELECTOR + b"\x00" * 5
    with pytest.raises(CodecMalformed):
        decode_revert(data)
    assert revert_reason(data) is None
