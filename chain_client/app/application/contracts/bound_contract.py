from __future__ import annotations

import logging
from typing import Any, Mapping

from eth_utils import is_address, to_checksum_address

from chain_client.app.application.contracts.event_stream import EventStream
from chain_client.app.application.contracts.filters import build_topic_filter
from chain_client.app.domain.cancellation import run_cancellable
from chain_client.app.domain.errors import (
    ArityMismatch,
    ChainClientError,
    CodecMalformed,
    ContractReverted,
    MissingTransport,
    TypeMismatch,
    UnknownEvent,
    as_transport_failure,
)
from chain_client.app.domain.models import CallContext, EventRecord, LogQuery, RawLog, TxHandle, UnsignedTransaction
from chain_client.app.domain.ports.out import ContractReader, LogSource, LogSubscription, TransactionWriter
from chain_client.app.domain.schema import ContractSchema, EventSpec, MethodSpec, Mutability
from chain_client.app.infrastructure.codec.abi_codec import decode_abi, encode_call
from chain_client.app.infrastructure.codec.revert import revert_reason
from chain_client.app.infrastructure.decoders.event_decoder import AbiEventDecoder

logger = logging.getLogger(__name__)

_DEFAULT_CONTEXT = CallContext()


class BoundContract:
    """
    Client-side handle to a deployed contract.

    Holds the contract address, its schema and up to three transport
    capabilities (reader, writer, log source). Any of them may be absent:
    read-only, write-only and filter-only instances are all valid; an
    operation whose capability is missing raises MissingTransport.

    Every call/transact/watch creates its own transport interaction, so one
    instance can be shared by concurrent callers.
    """

    def __init__(
        self,
        address: str,
        schema: ContractSchema,
        *,
        reader: ContractReader | None = None,
        writer: TransactionWriter | None = None,
        log_source: LogSource | None = None,
    ) -> None:
        if not isinstance(address, str) or not is_address(address):
            raise TypeMismatch(f"Invalid contract address: {address!r}")
        self._address = to_checksum_address(address)
        self._schema = schema
        self._reader = reader
        self._writer = writer
        self._log_source = log_source
        self._decoders: dict[str, AbiEventDecoder] = {}

    def __repr__(self) -> str:
        caps = [
            name
            for name, cap in (("reader", self._reader), ("writer", self._writer), ("log_source", self._log_source))
            if cap is not None
        ]
        return f"BoundContract(address={self._address!r}, capabilities={caps})"

    @property
    def address(self) -> str:
        return self._address

    @property
    def schema(self) -> ContractSchema:
        return self._schema

    def with_transports(
        self,
        *,
        reader: ContractReader | None = None,
        writer: TransactionWriter | None = None,
        log_source: LogSource | None = None,
    ) -> "BoundContract":
        """Same contract, different capabilities (unspecified ones are kept)."""
        return BoundContract(
            self._address,
            self._schema,
            reader=reader or self._reader,
            writer=writer or self._writer,
            log_source=log_source or self._log_source,
        )

    # ------------------------------------------------------------------
    # Encoding helpers
    # ------------------------------------------------------------------

    def encode_call(self, method: str, *args: Any) -> bytes:
        spec = self._schema.method(method)
        self._check_arity(spec, args)
        return encode_call(spec.selector, spec.input_types, args)

    def decode_output(self, method: str, data: bytes) -> tuple[Any, ...]:
        spec = self._schema.method(method)
        if not spec.outputs:
            return ()
        return decode_abi(spec.output_types, data)

    @staticmethod
    def _check_arity(spec: MethodSpec, args: tuple[Any, ...]) -> None:
        if len(args) != len(spec.inputs):
            raise ArityMismatch(spec.signature, len(spec.inputs), len(args))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def call(self, method: str, *args: Any, context: CallContext | None = None) -> tuple[Any, ...]:
        """
        Execute `method` read-only at `context.block` and decode its outputs.

        Returns an empty tuple when the method declares no outputs.
        """
        spec = self._schema.method(method)
        self._check_arity(spec, args)
        if self._reader is None:
            raise MissingTransport("reader", f"call({method})")

        context = context or _DEFAULT_CONTEXT
        data = encode_call(spec.selector, spec.input_types, args)
        try:
            result = await run_cancellable(
                self._reader.read(to=self._address, data=data, block=context.block, sender=context.sender),
                context.cancel,
            )
        except ContractReverted as exc:
            if exc.reason is None:
                raise ContractReverted(exc.data, revert_reason(exc.data, self._schema)) from exc
            raise
        except ChainClientError:
            raise
        except Exception as exc:
            raise as_transport_failure(exc, context=f"call {spec.signature}") from exc

        if not spec.outputs:
            return ()
        if not result:
            raise CodecMalformed(f"{spec.signature} returned no data (is there a contract at {self._address}?)")
        return decode_abi(spec.output_types, result)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def transact(
        self,
        method: str,
        *args: Any,
        sig_context: Any,
        value: int = 0,
        gas_limit: int | None = None,
        context: CallContext | None = None,
    ) -> TxHandle:
        """Encode `method(args)`, have the writer sign it with `sig_context` and submit it."""
        spec = self._schema.method(method)
        self._check_arity(spec, args)
        if self._writer is None:
            raise MissingTransport("writer", f"transact({method})")
        if value and spec.mutability is not Mutability.PAYABLE:
            logger.warning("Sending value=%s to non-payable method %s", value, spec.signature)

        tx = UnsignedTransaction(
            to=self._address,
            data=encode_call(spec.selector, spec.input_types, args),
            value=value,
            gas_limit=gas_limit,
        )
        handle = await self._submit(tx, sig_context, context, what=spec.signature)
        logger.info("Transaction sent: method=%s, contract=%s, handle=%s", spec.signature, self._address, handle)
        return handle

    async def transfer(
        self,
        value: int,
        *,
        sig_context: Any,
        gas_limit: int | None = None,
        context: CallContext | None = None,
    ) -> TxHandle:
        """Plain value transfer (empty call data); runs the contract's fallback/receive handler."""
        if self._writer is None:
            raise MissingTransport("writer", "transfer")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise TypeMismatch(f"value must be a non-negative int, got {value!r}")

        tx = UnsignedTransaction(to=self._address, data=b"", value=value, gas_limit=gas_limit)
        handle = await self._submit(tx, sig_context, context, what="value transfer")
        logger.info("Value sent: amount=%s, recipient=%s, handle=%s", value, self._address, handle)
        return handle

    async def _submit(self, tx: UnsignedTransaction, sig_context: Any, context: CallContext | None, *, what: str) -> TxHandle:
        assert self._writer is not None
        cancel = context.cancel if context is not None else None
        try:
            return await run_cancellable(self._writer.submit(tx, sig_context=sig_context), cancel)
        except ContractReverted as exc:
            if exc.reason is None:
                raise ContractReverted(exc.data, revert_reason(exc.data, self._schema)) from exc
            raise
        except ChainClientError:
            raise
        except Exception as exc:
            raise as_transport_failure(exc, context=f"submit {what}") from exc

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def decoder(self, event: str) -> AbiEventDecoder:
        if event not in self._decoders:
            self._decoders[event] = AbiEventDecoder(self._schema.event(event))
        return self._decoders[event]

    def topic_filter(self, event: str, filters: Mapping[str, Any] | None = None) -> list[Any]:
        return build_topic_filter(self._schema.event(event), filters)

    async def watch(
        self,
        event: str,
        filters: Mapping[str, Any] | None = None,
        *,
        from_block: int | None = None,
    ) -> EventStream:
        """
        Stream `event` live. With `from_block`, historical logs from that block
        are backfilled first.
        """
        query = LogQuery(
            address=self._address,
            topics=self.topic_filter(event, filters),
            from_block=from_block,
            to_block=None,
        )
        return await self._open_stream(event, query)

    async def filter_historical(
        self,
        event: str,
        filters: Mapping[str, Any] | None = None,
        *,
        from_block: int,
        to_block: int,
    ) -> EventStream:
        """Stream `event` over [from_block, to_block]; the stream ends after the range."""
        if from_block < 0 or to_block < 0:
            raise ValueError("Block numbers must be non-negative")
        if from_block > to_block:
            raise ValueError("from_block must be <= to_block")
        query = LogQuery(
            address=self._address,
            topics=self.topic_filter(event, filters),
            from_block=from_block,
            to_block=to_block,
        )
        return await self._open_stream(event, query)

    async def _open_stream(self, event: str, query: LogQuery) -> EventStream:
        if self._log_source is None:
            raise MissingTransport("log source", f"watch({event})")
        decoder = self.decoder(event)
        subscription = await self._subscribe(query)
        logger.info(
            "Subscribed to %s on %s: from_block=%s, to_block=%s",
            event,
            self._address,
            query.from_block,
            "live" if query.is_live else query.to_block,
        )
        return EventStream(
            subscription=subscription,
            decoder=decoder,
            event_name=event,
            resubscribe=self._subscribe,
        )

    async def _subscribe(self, query: LogQuery) -> LogSubscription:
        assert self._log_source is not None
        try:
            subscription = await self._log_source.subscribe(query)
        except ChainClientError:
            raise
        except Exception as exc:
            raise as_transport_failure(exc, context="subscribe") from exc
        if subscription.query is None:
            subscription.query = query
        return subscription

    def parse_log(self, raw: RawLog, event: str | None = None) -> EventRecord:
        """
        Decode a single raw log. Without `event`, the event is resolved from
        topic0 (anonymous events must be named explicitly).
        """
        if event is not None:
            return self.decoder(event).decode(raw)

        topic0 = bytes(raw.topics[0]) if raw.topics else b""
        spec: EventSpec | None = self._schema.event_by_topic(topic0)
        if spec is None:
            raise UnknownEvent(f"0x{topic0.hex()}")
        return self.decoder(spec.name).decode(raw)
