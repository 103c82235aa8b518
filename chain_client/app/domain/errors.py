from __future__ import annotations

from typing import Any


class ChainClientError(Exception):
    """Base class for every error raised by the contract binding layer."""


class SchemaInvalid(ChainClientError, ValueError):
    """The contract schema document (ABI JSON) could not be parsed."""


class UnknownMethod(ChainClientError, LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Method {name!r} not found in contract schema")
        self.name = name


class UnknownEvent(ChainClientError, LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Event {name!r} not found in contract schema")
        self.name = name


class ArityMismatch(ChainClientError, TypeError):
    def __init__(self, target: str, expected: int, got: int) -> None:
        super().__init__(f"{target} expects {expected} argument(s), got {got}")
        self.target = target
        self.expected = expected
        self.got = got


class TypeMismatch(ChainClientError, TypeError):
    """A caller-supplied value does not fit the declared ABI type."""


class CodecRange(ChainClientError, ValueError):
    """A value is out of range for its declared width."""


class CodecMalformed(ChainClientError, ValueError):
    """Bytes do not parse against the expected ABI type."""


class ContractReverted(ChainClientError):
    """
    Execution reverted on chain.

    `data` keeps the revert payload verbatim (possibly empty). `reason` is
    filled by whoever raised it when the payload could be decoded; callers can
    always run `codec.revert.revert_reason(exc.data)` themselves.
    """

    def __init__(self, data: bytes = b"", reason: str | None = None) -> None:
        self.data = bytes(data)
        self.reason = reason
        super().__init__(
            f"execution reverted: {reason}" if reason else f"execution reverted (data=0x{self.data.hex()})"
        )


class TransportFailure(ChainClientError):
    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class SubscriptionLost(TransportFailure):
    """A live log subscription dropped; latched as terminal on the stream."""


class SigRejected(ChainClientError):
    """The signing context declined to sign the transaction."""


class Cancelled(ChainClientError):
    """The caller's cancellation token fired before the transport answered."""


class MissingTransport(ChainClientError):
    def __init__(self, capability: str, operation: str) -> None:
        super().__init__(f"{operation} requires a {capability} but the contract was bound without one")
        self.capability = capability
        self.operation = operation


def as_transport_failure(exc: BaseException, *, context: Any = None) -> ChainClientError:
    """Return `exc` unchanged if it already belongs to the taxonomy, else wrap it."""
    if isinstance(exc, ChainClientError):
        return exc
    prefix = f"{context}: " if context else ""
    return TransportFailure(f"{prefix}{type(exc).__name__}: {exc}", cause=exc)
