from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.application.contracts.deployer import deploy_contract
from chain_client.app.application.contracts.event_stream import EventStream
from chain_client.app.domain.models import CallContext, TxHandle
from chain_client.app.domain.ports.out import ContractReader, LogSource, TransactionWriter
from chain_client.app.domain.units import DEFAULT_DECIMALS, to_base_units, validate_address
from chain_client.app.infrastructure.registry import load_registry_bytecode, load_registry_schema

CONTRACT_NAME = "SecurityToken"


@dataclass(frozen=True)
class Document:
    name: bytes
    doc_hash: bytes
    last_modified: int
    uri: str


class SecurityToken:
    """
    Typed facade over a bound SecurityToken (ERC-20 with issuance, redemption,
    a document registry and a pluggable compliance service).

    Amount arguments are integer base units; use `to_base_units` for
    human-readable amounts.
    """

    def __init__(self, contract: BoundContract) -> None:
        self.contract = contract

    @classmethod
    def bind(
        cls,
        address: str,
        *,
        reader: ContractReader | None = None,
        writer: TransactionWriter | None = None,
        log_source: LogSource | None = None,
    ) -> "SecurityToken":
        return cls(
            BoundContract(
                address,
                load_registry_schema(CONTRACT_NAME),
                reader=reader,
                writer=writer,
                log_source=log_source,
            )
        )

    @classmethod
    async def deploy(
        cls,
        *,
        name: str,
        symbol: str,
        initial_supply: int | str | Decimal,
        compliance: str,
        writer: TransactionWriter,
        sig_context: Any,
        decimals: int = DEFAULT_DECIMALS,
        reader: ContractReader | None = None,
        log_source: LogSource | None = None,
    ) -> tuple["SecurityToken", TxHandle]:
        """Deploy a token; `initial_supply` is a human amount scaled by `decimals`."""
        deployment = await deploy_contract(
            load_registry_schema(CONTRACT_NAME),
            load_registry_bytecode(CONTRACT_NAME),
            name,
            symbol,
            to_base_units(initial_supply, decimals),
            validate_address(compliance, field="compliance address"),
            writer=writer,
            sig_context=sig_context,
            reader=reader,
            log_source=log_source,
        )
        return cls(deployment.contract), deployment.tx_handle

    @property
    def address(self) -> str:
        return self.contract.address

    async def _one(self, method: str, *args: Any, context: CallContext | None = None) -> Any:
        (value,) = await self.contract.call(method, *args, context=context)
        return value

    # ERC-20 reads

    async def name(self, *, context: CallContext | None = None) -> str:
        return await self._one("name", context=context)

    async def symbol(self, *, context: CallContext | None = None) -> str:
        return await self._one("symbol", context=context)

    async def decimals(self, *, context: CallContext | None = None) -> int:
        return await self._one("decimals", context=context)

    async def total_supply(self, *, context: CallContext | None = None) -> int:
        return await self._one("totalSupply", context=context)

    async def balance_of(self, account: str, *, context: CallContext | None = None) -> int:
        return await self._one("balanceOf", validate_address(account, field="account"), context=context)

    async def allowance(self, owner: str, spender: str, *, context: CallContext | None = None) -> int:
        return await self._one(
            "allowance",
            validate_address(owner, field="owner"),
            validate_address(spender, field="spender"),
            context=context,
        )

    # ERC-20 writes

    async def transfer(self, to: str, amount: int, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("transfer", validate_address(to, field="recipient"), amount, sig_context=sig_context)

    async def transfer_from(self, sender: str, to: str, amount: int, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "transferFrom",
            validate_address(sender, field="sender"),
            validate_address(to, field="recipient"),
            amount,
            sig_context=sig_context,
        )

    async def approve(self, spender: str, amount: int, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "approve", validate_address(spender, field="spender"), amount, sig_context=sig_context
        )

    async def increase_allowance(self, spender: str, added: int, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "increaseAllowance", validate_address(spender, field="spender"), added, sig_context=sig_context
        )

    async def decrease_allowance(self, spender: str, subtracted: int, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "decreaseAllowance", validate_address(spender, field="spender"), subtracted, sig_context=sig_context
        )

    # Issuance / redemption

    async def issue(self, recipient: str, amount: int, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "issue", validate_address(recipient, field="recipient"), amount, sig_context=sig_context
        )

    async def redeem(self, account: str, amount: int, reason: str = "", *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "redeem", validate_address(account, field="account"), amount, reason, sig_context=sig_context
        )

    async def set_name(self, name: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("setName", name, sig_context=sig_context)

    # Documents

    async def set_document(self, name: bytes | str, uri: str, document_hash: bytes | str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("setDocument", name, uri, document_hash, sig_context=sig_context)

    async def delete_document(self, name: bytes | str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("deleteDocument", name, sig_context=sig_context)

    async def count_document(self, *, context: CallContext | None = None) -> int:
        return await self._one("countDocument", context=context)

    async def get_document(self, index: int, *, context: CallContext | None = None) -> Document:
        name, (doc_hash, last_modified, uri) = await self.contract.call("getDocument", index, context=context)
        return Document(name=name, doc_hash=doc_hash, last_modified=last_modified, uri=uri)

    # Compliance pointer

    async def set_compliance_service(self, compliance: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "setComplianceService", validate_address(compliance, field="compliance address"), sig_context=sig_context
        )

    async def compliance_service(self, version: int, *, context: CallContext | None = None) -> str:
        return await self._one("complianceService", version, context=context)

    async def compliance_version(self, *, context: CallContext | None = None) -> int:
        return await self._one("complianceVersion", context=context)

    async def now_compliance(self, *, context: CallContext | None = None) -> str:
        return await self._one("nowCompliance", context=context)

    # Events

    async def watch_transfers(self, *, sender: Any = None, recipient: Any = None, from_block: int | None = None) -> EventStream:
        return await self.contract.watch("Transfer", {"from": sender, "to": recipient}, from_block=from_block)

    async def watch_issued(self, *, recipient: Any = None, from_block: int | None = None) -> EventStream:
        return await self.contract.watch("Issued", {"recipient": recipient}, from_block=from_block)

    async def watch_redeemed(self, *, account: Any = None, from_block: int | None = None) -> EventStream:
        return await self.contract.watch("Redeemed", {"account": account}, from_block=from_block)
