from __future__ import annotations

from typing import Any, Iterable, Mapping

from chain_client.app.domain.abi_types import ArrayType, FixedArrayType, TupleType
from chain_client.app.domain.errors import TypeMismatch
from chain_client.app.domain.models import TopicSlot
from chain_client.app.domain.schema import EventSpec
from chain_client.app.infrastructure.codec.abi_codec import encode_topic


class AnyOf:
    """
    Explicit OR-set for an indexed filter position.

    Plain lists/sets work too, except for array- or tuple-typed fields where a
    list already is a single value.
    """

    def __init__(self, *values: Any) -> None:
        if not values:
            raise ValueError("AnyOf needs at least one value")
        self.values: tuple[Any, ...] = values

    def __iter__(self):
        return iter(self.values)

    def __repr__(self) -> str:
        return f"AnyOf{self.values!r}"


def _is_or_set(param_type: Any, value: Any) -> bool:
    if isinstance(value, AnyOf):
        return True
    if isinstance(param_type, (ArrayType, FixedArrayType, TupleType)):
        return False
    return isinstance(value, (list, set, frozenset))


def build_topic_filter(
    event: EventSpec,
    filters: Mapping[str, Any] | None = None,
) -> list[TopicSlot]:
    """
    Build the positional topic filter for `event`.

    Position 0 is the event's topic0 (absent for anonymous events), followed
    by one slot per indexed field in declaration order: None (match any), a
    32-byte value, or a list of 32-byte values (OR-set).
    """
    filters = dict(filters or {})
    indexed = event.indexed

    indexed_names = {p.name for p in indexed}
    for name in filters:
        if name in indexed_names:
            continue
        if any(p.name == name for p in event.fields):
            raise TypeMismatch(f"Field {name!r} of {event.name} is not indexed and cannot be filtered")
        raise TypeMismatch(f"Event {event.name} has no field named {name!r}")

    topics: list[TopicSlot] = [] if event.anonymous else [event.topic0]
    for param in indexed:
        value = filters.get(param.name)
        if value is None:
            topics.append(None)
        elif _is_or_set(param.type, value):
            topics.append(_encode_all(param.type, value))
        else:
            topics.append(encode_topic(param.type, value))
    return topics


def _encode_all(param_type: Any, values: Iterable[Any]) -> list[bytes]:
    encoded = [encode_topic(param_type, v) for v in values]
    if not encoded:
        raise TypeMismatch("An OR-set filter needs at least one value")
    return encoded
