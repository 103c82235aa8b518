from __future__ import annotations

from typing import Any, Final, NamedTuple

from eth_utils import to_bytes

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.application.contracts.deployer import deploy_contract
from chain_client.app.application.contracts.event_stream import EventStream
from chain_client.app.domain.errors import TypeMismatch
from chain_client.app.domain.models import CallContext, TxHandle
from chain_client.app.domain.ports.out import ContractReader, LogSource, TransactionWriter
from chain_client.app.domain.units import validate_address
from chain_client.app.infrastructure.registry import load_registry_bytecode, load_registry_schema

CONTRACT_NAME = "ComplianceService"

# Role ids registered by the compliance contract.
ST_CONTROL_ROLE: Final[bytes] = bytes.fromhex("b6ce5d7b1abd7b8db19bd268a06356fe343d6a81aca7f86455289d12aecbdcda")
ST_EDIT_ROLE: Final[bytes] = bytes.fromhex("025c10ffb4b4f977a8899da54e53278bc52863e80645c6b1f1ee5085ab0069bc")
DEFAULT_ADMIN_ROLE: Final[bytes] = bytes(32)

ROLES: Final[dict[str, bytes]] = {
    "ST_CONTROL_ROLE": ST_CONTROL_ROLE,
    "ST_EDIT_ROLE": ST_EDIT_ROLE,
    "DEFAULT_ADMIN_ROLE": DEFAULT_ADMIN_ROLE,
}


class Validation(NamedTuple):
    ok: bool
    reason: str


def parse_role(role: bytes | str) -> bytes:
    """Accept a role id as 32 raw bytes, hex (with or without 0x) or a known role name."""
    if isinstance(role, (bytes, bytearray)):
        raw = bytes(role)
    elif isinstance(role, str):
        if role in ROLES:
            return ROLES[role]
        try:
            raw = to_bytes(hexstr=role)
        except ValueError as exc:
            raise TypeMismatch(f"Invalid role: {role!r}") from exc
    else:
        raise TypeMismatch(f"Invalid role: {role!r}")
    if len(raw) != 32:
        raise TypeMismatch(f"Role must be 32 bytes, got {len(raw)}")
    return raw


class ComplianceService:
    """Typed facade over a bound ComplianceService (wallet registry, roles, pause switches)."""

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
    ) -> "ComplianceService":
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
        writer: TransactionWriter,
        sig_context: Any,
        reader: ContractReader | None = None,
        log_source: LogSource | None = None,
    ) -> tuple["ComplianceService", TxHandle]:
        deployment = await deploy_contract(
            load_registry_schema(CONTRACT_NAME),
            load_registry_bytecode(CONTRACT_NAME),
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

    async def _validation(self, method: str, *args: Any, context: CallContext | None = None) -> Validation:
        ok, reason = await self.contract.call(method, *args, context=context)
        return Validation(ok, reason)

    # Wallet registry

    async def register_wallet(self, wallet: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "registerWallet", validate_address(wallet, field="wallet"), sig_context=sig_context
        )

    async def renounce_wallet(self, wallet: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "renounceWallet", validate_address(wallet, field="wallet"), sig_context=sig_context
        )

    async def contains_wallet(self, wallet: str, *, context: CallContext | None = None) -> bool:
        return await self._one("containsWallet", wallet, context=context)

    async def count_wallet(self, *, context: CallContext | None = None) -> int:
        return await self._one("countWallet", context=context)

    async def get_wallet(self, index: int, *, context: CallContext | None = None) -> str:
        return await self._one("getWallet", index, context=context)

    # Roles

    async def setup_role(self, role: bytes | str, grantee: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "setupRole", parse_role(role), validate_address(grantee, field="grantee"), sig_context=sig_context
        )

    async def grant_role(self, role: bytes | str, account: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact(
            "grantRole", parse_role(role), validate_address(account, field="account"), sig_context=sig_context
        )

    async def revoke_role(self, role: bytes | str, account: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("revokeRole", parse_role(role), account, sig_context=sig_context)

    async def renounce_role(self, role: bytes | str, account: str, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("renounceRole", parse_role(role), account, sig_context=sig_context)

    async def has_role(self, role: bytes | str, account: str, *, context: CallContext | None = None) -> bool:
        return await self._one("hasRole", parse_role(role), account, context=context)

    async def get_role_admin(self, role: bytes | str, *, context: CallContext | None = None) -> bytes:
        return await self._one("getRoleAdmin", parse_role(role), context=context)

    # Pause switches

    async def pause(self, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("pause", sig_context=sig_context)

    async def unpause(self, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("unpause", sig_context=sig_context)

    async def paused(self, *, context: CallContext | None = None) -> bool:
        return await self._one("paused", context=context)

    async def transfer_pause(self, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("transferPause", sig_context=sig_context)

    async def transfer_unpause(self, *, sig_context: Any) -> TxHandle:
        return await self.contract.transact("transferUnpause", sig_context=sig_context)

    async def transfer_paused(self, *, context: CallContext | None = None) -> bool:
        return await self._one("transferPaused", context=context)

    # Permission checks

    async def has_transfer_permission(self, account: str, *, context: CallContext | None = None) -> bool:
        return await self._one("hasTransferPermission", account, context=context)

    async def has_redemption_permission(self, account: str, *, context: CallContext | None = None) -> bool:
        return await self._one("hasRedemptionPermission", account, context=context)

    async def validate_issuance(
        self, issuer: str, recipient: str, amount: int, *, context: CallContext | None = None
    ) -> Validation:
        return await self._validation("validateIssuance", issuer, recipient, amount, context=context)

    async def validate_transfer(
        self, sender: str, recipient: str, amount: int, *, context: CallContext | None = None
    ) -> Validation:
        return await self._validation("validateTransfer", sender, recipient, amount, context=context)

    async def validate_redemption(
        self, account: str, amount: int, reason: str = "", *, context: CallContext | None = None
    ) -> Validation:
        return await self._validation("validateRedemption", account, amount, reason, context=context)

    async def validate_editing(self, editor: str, *, context: CallContext | None = None) -> Validation:
        return await self._validation("validateEditing", editor, context=context)

    async def validate_updating(
        self, editor: str, compliance: str, version: int, *, context: CallContext | None = None
    ) -> Validation:
        return await self._validation("validateUpdating", editor, compliance, version, context=context)

    # Events

    async def watch_role_granted(
        self, *, role: bytes | str | None = None, account: Any = None, from_block: int | None = None
    ) -> EventStream:
        filters = {"role": parse_role(role) if role is not None else None, "account": account}
        return await self.contract.watch("RoleGranted", filters, from_block=from_block)
