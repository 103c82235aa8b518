from __future__ import annotations

from types import MappingProxyType
from typing import Any

from chain_client.app.domain.errors import CodecMalformed
from chain_client.app.domain.models import EventRecord, RawLog
from chain_client.app.domain.ports.out import EvmEventDecoder
from chain_client.app.domain.schema import EventSpec
from chain_client.app.infrastructure.codec.abi_codec import decode_abi, decode_topic


class AbiEventDecoder(EvmEventDecoder):
    """
    ABI-based decoder for a single contract event.

    It:
    - checks topic0 against the event's keccak("EventName(type1,type2,...)"),
    - decodes indexed args from topic1.. in declaration order,
    - decodes non-indexed args from `data` as one tuple,
    - keeps the raw log on the returned record.

    Anonymous events carry no topic0, so their indexed args start at topic0.
    """

    def __init__(self, event: EventSpec) -> None:
        self._event = event
        self._indexed = event.indexed
        self._non_indexed = event.non_indexed
        self._non_indexed_types = [p.type for p in self._non_indexed]
        self._topic_offset = 0 if event.anonymous else 1

    @property
    def event(self) -> EventSpec:
        return self._event

    @property
    def topic0(self) -> bytes | None:
        return None if self._event.anonymous else self._event.topic0

    def decode(self, raw: RawLog) -> EventRecord:
        topics = [self._as_bytes32(t) for t in raw.topics]

        # 1) must match expected event
        if not self._event.anonymous:
            if not topics or topics[0] != self._event.topic0:
                got = topics[0].hex() if topics else None
                raise CodecMalformed(
                    f"Log topic0 {got} does not match event {self._event.signature} "
                    f"(expected {self._event.topic0.hex()})"
                )

        # 2) indexed args, one topic each
        expected_topics = self._topic_offset + len(self._indexed)
        if len(topics) != expected_topics:
            raise CodecMalformed(
                f"Event {self._event.name} expects {expected_topics} topic(s), log has {len(topics)}"
            )
        indexed_values = iter(
            decode_topic(param.type, topics[self._topic_offset + i])
            for i, param in enumerate(self._indexed)
        )

        # 3) non-indexed args from data
        non_indexed_values = iter(self._decode_non_indexed_data(raw.data))

        # Declaration order, not indexed-first.
        args: dict[str, Any] = {}
        for i, param in enumerate(self._event.fields):
            key = param.name or f"arg{i}"
            args[key] = next(indexed_values) if param.indexed else next(non_indexed_values)

        return EventRecord(event=self._event.name, args=MappingProxyType(args), raw=raw)

    def _decode_non_indexed_data(self, data: bytes) -> tuple[Any, ...]:
        # If event has no non-indexed inputs, data should be empty
        if not self._non_indexed:
            return ()
        return decode_abi(self._non_indexed_types, bytes(data))

    def _as_bytes32(self, b: bytes) -> bytes:
        # Some transports hand out HexBytes / memoryview; normalize
        bb = bytes(b)
        if len(bb) != 32:
            raise CodecMalformed(f"Expected 32 bytes (topic), got len={len(bb)}")
        return bb
