from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from eth_utils import keccak

from chain_client.app.domain.abi_types import AbiType, canonical_signature, type_from_param
from chain_client.app.domain.errors import SchemaInvalid, UnknownEvent, UnknownMethod


class Mutability(str, Enum):
    PURE = "pure"
    VIEW = "view"
    NONPAYABLE = "nonpayable"
    PAYABLE = "payable"

    @property
    def is_read_only(self) -> bool:
        return self in (Mutability.PURE, Mutability.VIEW)


@dataclass(frozen=True)
class Param:
    name: str
    type: AbiType
    indexed: bool = False


@dataclass(frozen=True)
class MethodSpec:
    name: str
    inputs: tuple[Param, ...]
    outputs: tuple[Param, ...]
    mutability: Mutability
    signature: str
    selector: bytes

    @property
    def input_types(self) -> tuple[AbiType, ...]:
        return tuple(p.type for p in self.inputs)

    @property
    def output_types(self) -> tuple[AbiType, ...]:
        return tuple(p.type for p in self.outputs)


@dataclass(frozen=True)
class EventSpec:
    name: str
    fields: tuple[Param, ...]
    signature: str
    topic0: bytes
    anonymous: bool = False

    @property
    def indexed(self) -> tuple[Param, ...]:
        return tuple(p for p in self.fields if p.indexed)

    @property
    def non_indexed(self) -> tuple[Param, ...]:
        return tuple(p for p in self.fields if not p.indexed)


@dataclass(frozen=True)
class ErrorSpec:
    name: str
    inputs: tuple[Param, ...]
    signature: str
    selector: bytes

    @property
    def input_types(self) -> tuple[AbiType, ...]:
        return tuple(p.type for p in self.inputs)


@dataclass(frozen=True)
class ConstructorSpec:
    inputs: tuple[Param, ...] = ()
    mutability: Mutability = Mutability.NONPAYABLE

    @property
    def input_types(self) -> tuple[AbiType, ...]:
        return tuple(p.type for p in self.inputs)


@dataclass(frozen=True)
class ContractSchema:
    """
    Immutable description of a contract's public surface.

    Built once from an ABI document; safe to share between bound instances
    and tasks.
    """

    methods: Mapping[str, MethodSpec]
    events: Mapping[str, EventSpec]
    errors: Mapping[str, ErrorSpec] = field(default_factory=lambda: MappingProxyType({}))
    constructor: ConstructorSpec = field(default_factory=ConstructorSpec)
    has_fallback: bool = False
    has_receive: bool = False

    def method(self, name: str) -> MethodSpec:
        try:
            return self.methods[name]
        except KeyError:
            raise UnknownMethod(name) from None

    def event(self, name: str) -> EventSpec:
        try:
            return self.events[name]
        except KeyError:
            raise UnknownEvent(name) from None

    def event_by_topic(self, topic0: bytes) -> EventSpec | None:
        for spec in self.events.values():
            if not spec.anonymous and spec.topic0 == topic0:
                return spec
        return None

    def error_by_selector(self, selector: bytes) -> ErrorSpec | None:
        for spec in self.errors.values():
            if spec.selector == selector:
                return spec
        return None


def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 over the canonical signature."""
    return keccak(text=signature)[:4]


def event_topic(signature: str) -> bytes:
    """Full 32-byte keccak256 over the canonical event signature."""
    return keccak(text=signature)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_MAX_INDEXED = 3
_MAX_INDEXED_ANONYMOUS = 4


def _params(entry: Mapping[str, Any], key: str, *, allow_indexed: bool = False) -> tuple[Param, ...]:
    raw = entry.get(key, [])
    if raw is None:
        raw = []
    if not isinstance(raw, list):
        raise SchemaInvalid(f"{entry.get('name')!r}: {key!r} must be a list")
    out: list[Param] = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise SchemaInvalid(f"{entry.get('name')!r}: invalid {key} entry")
        out.append(
            Param(
                name=str(item.get("name") or ""),
                type=type_from_param(item),
                indexed=bool(item.get("indexed")) if allow_indexed else False,
            )
        )
    return tuple(out)


def _mutability(entry: Mapping[str, Any]) -> Mutability:
    raw = entry.get("stateMutability")
    if raw is None:
        # Pre-0.4.16 ABI documents only carry `constant` / `payable`.
        if entry.get("constant"):
            return Mutability.VIEW
        if entry.get("payable"):
            return Mutability.PAYABLE
        return Mutability.NONPAYABLE
    try:
        return Mutability(raw)
    except ValueError:
        raise SchemaInvalid(f"{entry.get('name')!r}: unknown stateMutability {raw!r}") from None


def _name(entry: Mapping[str, Any]) -> str:
    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise SchemaInvalid(f"{entry.get('type')} entry without a name")
    return name.strip()


def parse_schema(abi: Sequence[Mapping[str, Any]]) -> ContractSchema:
    """
    Parse an ABI document (list of entries) into a ContractSchema.

    Raises SchemaInvalid on unknown entry or type tokens, malformed nesting
    and duplicated function, event or error names.
    """
    if not isinstance(abi, Sequence) or isinstance(abi, (str, bytes)):
        raise SchemaInvalid("ABI document must be a list of entries")

    methods: dict[str, MethodSpec] = {}
    events: dict[str, EventSpec] = {}
    errors: dict[str, ErrorSpec] = {}
    constructor = ConstructorSpec()
    seen_constructor = False
    has_fallback = False
    has_receive = False

    for entry in abi:
        if not isinstance(entry, Mapping):
            raise SchemaInvalid(f"ABI entry must be an object, got {type(entry).__name__}")
        kind = entry.get("type", "function")

        if kind == "function":
            name = _name(entry)
            if name in methods:
                raise SchemaInvalid(f"Duplicate function name {name!r} (overloads are not supported)")
            inputs = _params(entry, "inputs")
            signature = canonical_signature(name, [p.type for p in inputs])
            methods[name] = MethodSpec(
                name=name,
                inputs=inputs,
                outputs=_params(entry, "outputs"),
                mutability=_mutability(entry),
                signature=signature,
                selector=function_selector(signature),
            )

        elif kind == "event":
            name = _name(entry)
            if name in events:
                raise SchemaInvalid(f"Duplicate event name {name!r}")
            fields_ = _params(entry, "inputs", allow_indexed=True)
            anonymous = bool(entry.get("anonymous"))
            limit = _MAX_INDEXED_ANONYMOUS if anonymous else _MAX_INDEXED
            if sum(1 for f in fields_ if f.indexed) > limit:
                raise SchemaInvalid(f"Event {name!r} has more than {limit} indexed fields")
            signature = canonical_signature(name, [p.type for p in fields_])
            events[name] = EventSpec(
                name=name,
                fields=fields_,
                signature=signature,
                topic0=event_topic(signature),
                anonymous=anonymous,
            )

        elif kind == "error":
            name = _name(entry)
            if name in errors:
                raise SchemaInvalid(f"Duplicate error name {name!r}")
            inputs = _params(entry, "inputs")
            signature = canonical_signature(name, [p.type for p in inputs])
            errors[name] = ErrorSpec(
                name=name,
                inputs=inputs,
                signature=signature,
                selector=function_selector(signature),
            )

        elif kind == "constructor":
            if seen_constructor:
                raise SchemaInvalid("ABI declares more than one constructor")
            seen_constructor = True
            constructor = ConstructorSpec(inputs=_params(entry, "inputs"), mutability=_mutability(entry))

        elif kind == "fallback":
            has_fallback = True

        elif kind == "receive":
            has_receive = True

        else:
            raise SchemaInvalid(f"Unknown ABI entry type {kind!r}")

    return ContractSchema(
        methods=MappingProxyType(methods),
        events=MappingProxyType(events),
        errors=MappingProxyType(errors),
        constructor=constructor,
        has_fallback=has_fallback,
        has_receive=has_receive,
    )


def parse_schema_json(raw: str | bytes) -> ContractSchema:
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise SchemaInvalid(f"ABI document is not valid JSON: {exc}") from exc
    return parse_schema(_unwrap_artifact(data, source="<string>"))


def load_schema(abi_path: Path) -> ContractSchema:
    """
    Load an ABI from a JSON file.

    Common formats:
    - [ ... ] (ABI list)
    - { "abi": [ ... ] } (compiler / framework artifact)
    """
    if not abi_path.exists():
        raise FileNotFoundError(f"ABI file not found: {abi_path}")
    try:
        data = json.loads(abi_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise SchemaInvalid(f"ABI file {abi_path} is not valid JSON: {exc}") from exc
    return parse_schema(_unwrap_artifact(data, source=str(abi_path)))


def _unwrap_artifact(data: Any, *, source: str) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("abi"), list):
        return data["abi"]
    raise SchemaInvalid(f"Unsupported ABI JSON format in {source}. Expected list or dict with 'abi' list.")
