from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.application.contracts.event_stream import EventStream
from chain_client.app.domain.models import CallContext, TxHandle


@dataclass(frozen=True)
class ContractSession:
    """
    A bound contract plus pre-supplied call and signing contexts.

    Per-call overrides win over the session defaults.
    """

    contract: BoundContract
    call_context: CallContext = CallContext()
    sig_context: Any = None
    gas_limit: int | None = None

    @property
    def address(self) -> str:
        return self.contract.address

    def with_call_context(self, context: CallContext) -> "ContractSession":
        return replace(self, call_context=context)

    def with_sig_context(self, sig_context: Any) -> "ContractSession":
        return replace(self, sig_context=sig_context)

    async def call(self, method: str, *args: Any, context: CallContext | None = None) -> tuple[Any, ...]:
        return await self.contract.call(method, *args, context=context or self.call_context)

    async def transact(
        self,
        method: str,
        *args: Any,
        value: int = 0,
        gas_limit: int | None = None,
        sig_context: Any = None,
        context: CallContext | None = None,
    ) -> TxHandle:
        return await self.contract.transact(
            method,
            *args,
            sig_context=self._sig(sig_context),
            value=value,
            gas_limit=gas_limit if gas_limit is not None else self.gas_limit,
            context=context or self.call_context,
        )

    async def transfer(
        self,
        value: int,
        *,
        gas_limit: int | None = None,
        sig_context: Any = None,
        context: CallContext | None = None,
    ) -> TxHandle:
        return await self.contract.transfer(
            value,
            sig_context=self._sig(sig_context),
            gas_limit=gas_limit if gas_limit is not None else self.gas_limit,
            context=context or self.call_context,
        )

    async def watch(
        self,
        event: str,
        filters: Mapping[str, Any] | None = None,
        *,
        from_block: int | None = None,
    ) -> EventStream:
        return await self.contract.watch(event, filters, from_block=from_block)

    async def filter_historical(
        self,
        event: str,
        filters: Mapping[str, Any] | None = None,
        *,
        from_block: int,
        to_block: int,
    ) -> EventStream:
        return await self.contract.filter_historical(event, filters, from_block=from_block, to_block=to_block)

    def _sig(self, override: Any) -> Any:
        sig = override if override is not None else self.sig_context
        if sig is None:
            raise ValueError("No signing context: pass sig_context or set one on the session")
        return sig
