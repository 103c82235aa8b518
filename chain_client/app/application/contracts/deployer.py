from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from eth_utils import to_bytes

from chain_client.app.application.contracts.bound_contract import BoundContract
from chain_client.app.domain.cancellation import run_cancellable
from chain_client.app.domain.errors import ArityMismatch, ChainClientError, TypeMismatch, as_transport_failure
from chain_client.app.domain.models import CallContext, TxHandle, UnsignedTransaction
from chain_client.app.domain.ports.out import ContractReader, LogSource, TransactionWriter
from chain_client.app.domain.schema import ContractSchema
from chain_client.app.infrastructure.codec.abi_codec import encode_abi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deployment:
    contract: BoundContract
    tx_handle: TxHandle

    @property
    def address(self) -> str:
        return self.contract.address


def _as_bytecode(bytecode: bytes | str) -> bytes:
    if isinstance(bytecode, (bytes, bytearray, memoryview)):
        code = bytes(bytecode)
    elif isinstance(bytecode, str):
        text = bytecode.strip()
        try:
            code = to_bytes(hexstr=text)
        except ValueError as exc:
            raise TypeMismatch("Creation bytecode is not valid hex") from exc
    else:
        raise TypeMismatch(f"Creation bytecode must be bytes or hex str, got {type(bytecode).__name__}")
    if not code:
        raise TypeMismatch("Creation bytecode is empty")
    return code


def build_creation_data(schema: ContractSchema, bytecode: bytes | str, args: tuple[Any, ...]) -> bytes:
    """Creation bytecode followed by the ABI-encoded constructor arguments (no selector)."""
    ctor = schema.constructor
    if len(args) != len(ctor.inputs):
        raise ArityMismatch("constructor", len(ctor.inputs), len(args))
    return _as_bytecode(bytecode) + encode_abi(ctor.input_types, args)


async def deploy_contract(
    schema: ContractSchema,
    bytecode: bytes | str,
    *args: Any,
    writer: TransactionWriter,
    sig_context: Any,
    value: int = 0,
    gas_limit: int | None = None,
    context: CallContext | None = None,
    reader: ContractReader | None = None,
    log_source: LogSource | None = None,
) -> Deployment:
    """
    Deploy a contract and return it bound at the new address.

    The resulting address comes from the writer (sender + nonce on EVM chains);
    the returned instance shares the writer plus whatever reader / log source
    was supplied.
    """
    data = build_creation_data(schema, bytecode, args)
    tx = UnsignedTransaction(to=None, data=data, value=value, gas_limit=gas_limit)

    cancel = context.cancel if context is not None else None
    try:
        receipt = await run_cancellable(writer.submit_creation(tx, sig_context=sig_context), cancel)
    except ChainClientError:
        raise
    except Exception as exc:
        raise as_transport_failure(exc, context="submit contract creation") from exc

    contract = BoundContract(
        receipt.contract_address,
        schema,
        reader=reader,
        writer=writer,
        log_source=log_source,
    )
    logger.info(
        "Contract deployed: address=%s, handle=%s, constructor_args=%s",
        contract.address,
        receipt.tx_handle,
        len(args),
    )
    return Deployment(contract=contract, tx_handle=receipt.tx_handle)
