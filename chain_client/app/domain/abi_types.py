from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from chain_client.app.domain.errors import SchemaInvalid

WORD_SIZE = 32


class AbiType:
    """
    Base for the supported calling-convention types.

    Every concrete type knows its canonical name (used in signatures), whether
    it is dynamically sized, and how many bytes it takes in the head of an
    enclosing tuple.
    """

    @property
    def canonical(self) -> str:
        raise NotImplementedError

    @property
    def is_dynamic(self) -> bool:
        return False

    @property
    def head_size(self) -> int:
        return WORD_SIZE

    @property
    def is_value_type(self) -> bool:
        """True for types that fit a single word (and so a topic) verbatim."""
        return False

    def __str__(self) -> str:
        return self.canonical


@dataclass(frozen=True)
class UIntType(AbiType):
    bits: int = 256

    @property
    def canonical(self) -> str:
        return f"uint{self.bits}"

    @property
    def is_value_type(self) -> bool:
        return True


@dataclass(frozen=True)
class IntType(AbiType):
    bits: int = 256

    @property
    def canonical(self) -> str:
        return f"int{self.bits}"

    @property
    def is_value_type(self) -> bool:
        return True


@dataclass(frozen=True)
class BoolType(AbiType):
    @property
    def canonical(self) -> str:
        return "bool"

    @property
    def is_value_type(self) -> bool:
        return True


@dataclass(frozen=True)
class AddressType(AbiType):
    @property
    def canonical(self) -> str:
        return "address"

    @property
    def is_value_type(self) -> bool:
        return True


@dataclass(frozen=True)
class FixedBytesType(AbiType):
    size: int = 32

    @property
    def canonical(self) -> str:
        return f"bytes{self.size}"

    @property
    def is_value_type(self) -> bool:
        return True


@dataclass(frozen=True)
class BytesType(AbiType):
    @property
    def canonical(self) -> str:
        return "bytes"

    @property
    def is_dynamic(self) -> bool:
        return True


@dataclass(frozen=True)
class StringType(AbiType):
    @property
    def canonical(self) -> str:
        return "string"

    @property
    def is_dynamic(self) -> bool:
        return True


@dataclass(frozen=True)
class TupleType(AbiType):
    components: tuple[AbiType, ...] = ()
    # Component names from the ABI document; compare=False keeps type identity structural.
    names: tuple[str, ...] = field(default=(), compare=False)

    @property
    def canonical(self) -> str:
        return "(" + ",".join(c.canonical for c in self.components) + ")"

    @property
    def is_dynamic(self) -> bool:
        return any(c.is_dynamic for c in self.components)

    @property
    def head_size(self) -> int:
        if self.is_dynamic:
            return WORD_SIZE
        return sum(c.head_size for c in self.components)


@dataclass(frozen=True)
class ArrayType(AbiType):
    item: AbiType = field(default_factory=UIntType)

    @property
    def canonical(self) -> str:
        return f"{self.item.canonical}[]"

    @property
    def is_dynamic(self) -> bool:
        return True


@dataclass(frozen=True)
class FixedArrayType(AbiType):
    item: AbiType = field(default_factory=UIntType)
    length: int = 1

    @property
    def canonical(self) -> str:
        return f"{self.item.canonical}[{self.length}]"

    @property
    def is_dynamic(self) -> bool:
        return self.item.is_dynamic

    @property
    def head_size(self) -> int:
        if self.is_dynamic:
            return WORD_SIZE
        return self.item.head_size * self.length


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_ELEMENTARY_RE = re.compile(r"^(uint|int|bytes)(\d*)$")
_SUFFIX_RE = re.compile(r"\[(\d*)\]")


def _elementary(token: str) -> AbiType:
    if token == "bool":
        return BoolType()
    if token == "address":
        return AddressType()
    if token == "string":
        return StringType()
    if token == "bytes":
        return BytesType()

    m = _ELEMENTARY_RE.match(token)
    if m is None:
        raise SchemaInvalid(f"Unknown ABI type token: {token!r}")

    base, width = m.group(1), m.group(2)
    if base in ("uint", "int"):
        bits = int(width) if width else 256
        if width.startswith("0") or bits % 8 != 0 or not 8 <= bits <= 256:
            raise SchemaInvalid(f"Invalid integer width in {token!r}")
        return UIntType(bits) if base == "uint" else IntType(bits)

    size = int(width)
    if width.startswith("0") or not 1 <= size <= 32:
        raise SchemaInvalid(f"Invalid fixed bytes width in {token!r}")
    return FixedBytesType(size)


def _apply_suffixes(base: AbiType, suffix: str, original: str) -> AbiType:
    pos = 0
    typ = base
    while pos < len(suffix):
        m = _SUFFIX_RE.match(suffix, pos)
        if m is None:
            raise SchemaInvalid(f"Malformed array suffix in {original!r}")
        size = m.group(1)
        if size == "":
            typ = ArrayType(typ)
        else:
            length = int(size)
            if length <= 0:
                raise SchemaInvalid(f"Fixed array length must be positive in {original!r}")
            typ = FixedArrayType(typ, length)
        pos = m.end()
    return typ


def _split_top_level(body: str, original: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(body):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise SchemaInvalid(f"Unbalanced parentheses in {original!r}")
        elif ch == "," and depth == 0:
            parts.append(body[start:i])
            start = i + 1
    if depth != 0:
        raise SchemaInvalid(f"Unbalanced parentheses in {original!r}")
    parts.append(body[start:])
    return parts


def parse_type(text: str) -> AbiType:
    """
    Parse a textual type such as ``uint256``, ``bytes32[]`` or
    ``(address,uint64)[2]`` (``tuple(...)`` is accepted as an alias of ``(...)``).
    """
    original = text
    text = "".join(text.split())
    if not text:
        raise SchemaInvalid("Empty ABI type")

    if text.startswith("tuple("):
        text = text[len("tuple"):]

    if text.startswith("("):
        depth = 0
        close = -1
        for i, ch in enumerate(text):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    close = i
                    break
        if close < 0:
            raise SchemaInvalid(f"Unbalanced parentheses in {original!r}")
        body = text[1:close]
        components: tuple[AbiType, ...] = ()
        if body:
            components = tuple(parse_type(p) for p in _split_top_level(body, original))
        return _apply_suffixes(TupleType(components), text[close + 1:], original)

    bracket = text.find("[")
    head, suffix = (text, "") if bracket < 0 else (text[:bracket], text[bracket:])
    if "(" in head or ")" in head:
        raise SchemaInvalid(f"Malformed ABI type {original!r}")
    return _apply_suffixes(_elementary(head), suffix, original)


def type_from_param(param: Mapping[str, Any]) -> AbiType:
    """
    Build an AbiType from an ABI JSON parameter entry, resolving ``tuple``
    types through their ``components`` (recursively).
    """
    if not isinstance(param, Mapping):
        raise SchemaInvalid(f"ABI parameter must be an object, got {type(param).__name__}")

    raw = param.get("type")
    if not isinstance(raw, str):
        raise SchemaInvalid(f"ABI parameter {param.get('name')!r} has no type")

    if not raw.startswith("tuple"):
        return parse_type(raw)

    components = param.get("components")
    if not isinstance(components, Sequence) or isinstance(components, (str, bytes)):
        raise SchemaInvalid(f"Tuple parameter {param.get('name')!r} is missing its components")

    # `tuple` with explicit components; only array suffixes may follow.
    suffix = raw[len("tuple"):]
    tuple_type = TupleType(
        components=tuple(type_from_param(c) for c in components),
        names=tuple(str(c.get("name") or "") for c in components),
    )
    return _apply_suffixes(tuple_type, suffix, raw)


def canonical_signature(name: str, types: Sequence[AbiType]) -> str:
    """``name(type1,type2,...)`` with parameter names and whitespace stripped."""
    return f"{name.strip()}({','.join(t.canonical for t in types)})"
