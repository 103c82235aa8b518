from __future__ import annotations

import asyncio
import logging
from typing import Any, Final, Sequence

from aiohttp import ClientTimeout
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_bytes, to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted

from chain_client.app.domain.errors import (
    ChainClientError,
    ContractReverted,
    SigRejected,
    SubscriptionLost,
    TransportFailure,
    as_transport_failure,
)
from chain_client.app.domain.models import (
    BlockReference,
    CreationReceipt,
    LogQuery,
    RawLog,
    TopicSlot,
    TxHandle,
    UnsignedTransaction,
)
from chain_client.app.domain.ports.out import LogSubscription

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT: Final[float] = 30.0
_DEFAULT_POLL_INTERVAL: Final[float] = 2.0
_DEFAULT_BLOCK_BATCH_SIZE: Final[int] = 2_000
_DEFAULT_QUEUE_SIZE: Final[int] = 1_000


def create_async_web3(rpc_url: str, *, timeout: float = _DEFAULT_TIMEOUT) -> AsyncWeb3:
    """AsyncWeb3 over HTTP; `timeout` bounds every JSON-RPC request."""
    if timeout <= 0:
        raise ValueError("timeout must be positive")
    return AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": ClientTimeout(total=timeout)}))


def resolve_account(sig_context: Any) -> LocalAccount:
    """Signing context -> local account. Accepts a LocalAccount or a private key."""
    if isinstance(sig_context, LocalAccount):
        return sig_context
    try:
        return Account.from_key(sig_context)
    except Exception as exc:
        raise SigRejected(f"Unusable signing context: {type(exc).__name__}: {exc}") from exc


def _revert_data(exc: ContractLogicError) -> bytes:
    data = getattr(exc, "data", None)
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str) and data.startswith("0x"):
        try:
            return to_bytes(hexstr=data)
        except ValueError:
            return b""
    return b""


def _hex_topic(slot: TopicSlot) -> Any:
    if slot is None:
        return None
    if isinstance(slot, list):
        return ["0x" + bytes(t).hex() for t in slot]
    return "0x" + bytes(slot).hex()


def _raw_log(entry: Any) -> RawLog:
    return RawLog(
        address=to_checksum_address(entry["address"]),
        topics=tuple(bytes(t) for t in entry["topics"]),
        data=bytes(entry["data"]),
        block_number=int(entry["blockNumber"]),
        log_index=int(entry["logIndex"]),
        transaction_hash=bytes(entry["transactionHash"]),
        block_hash=bytes(entry["blockHash"]) if entry.get("blockHash") is not None else None,
        transaction_index=entry.get("transactionIndex"),
        removed=bool(entry.get("removed", False)),
    )


class Web3ContractReader:
    """ContractReader over eth_call."""

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def read(
        self,
        *,
        to: str,
        data: bytes,
        block: BlockReference = "latest",
        sender: str | None = None,
    ) -> bytes:
        params: dict[str, Any] = {"to": to_checksum_address(to), "data": "0x" + data.hex()}
        if sender is not None:
            params["from"] = to_checksum_address(sender)
        try:
            result = await self._w3.eth.call(params, block_identifier=block)
        except ContractLogicError as exc:
            raise ContractReverted(_revert_data(exc)) from exc
        except Exception as exc:
            raise as_transport_failure(exc, context="eth_call") from exc
        return bytes(result)

    async def get_balance(self, address: str, *, block: BlockReference = "latest") -> int:
        """Native balance in wei."""
        try:
            return int(await self._w3.eth.get_balance(to_checksum_address(address), block_identifier=block))
        except Exception as exc:
            raise as_transport_failure(exc, context="eth_getBalance") from exc

    async def block_number(self) -> int:
        try:
            return int(await self._w3.eth.block_number)
        except Exception as exc:
            raise as_transport_failure(exc, context="eth_blockNumber") from exc


class Web3TransactionWriter:
    """
    TransactionWriter signing locally with eth-account and broadcasting with
    eth_sendRawTransaction.

    With `confirm=True` (default), `submit` waits for the receipt and raises
    ContractReverted when the transaction was mined with status 0; with
    `confirm=False` it returns right after broadcast. Contract creation always
    waits, since the new address only exists in the receipt.
    """

    def __init__(
        self,
        *,
        w3: AsyncWeb3,
        chain_id: int | None = None,
        confirm: bool = True,
        receipt_timeout: float = 120.0,
    ) -> None:
        if receipt_timeout <= 0:
            raise ValueError("receipt_timeout must be positive")
        self._w3 = w3
        self._chain_id = chain_id
        self._confirm = confirm
        self._receipt_timeout = receipt_timeout
        self._nonce_lock = asyncio.Lock()

    async def submit(self, tx: UnsignedTransaction, *, sig_context: Any) -> TxHandle:
        tx_hash = await self._send(tx, sig_context)
        if self._confirm:
            await self._wait_for_receipt(tx_hash)
        return tx_hash

    async def submit_creation(self, tx: UnsignedTransaction, *, sig_context: Any) -> CreationReceipt:
        if not tx.is_creation:
            raise ValueError("submit_creation expects a transaction without a recipient")
        tx_hash = await self._send(tx, sig_context)
        receipt = await self._wait_for_receipt(tx_hash)
        address = receipt.get("contractAddress")
        if not address:
            raise TransportFailure(f"Receipt for 0x{tx_hash.hex()} carries no contract address")
        return CreationReceipt(tx_handle=tx_hash, contract_address=to_checksum_address(address))

    async def _send(self, tx: UnsignedTransaction, sig_context: Any) -> bytes:
        account = resolve_account(sig_context)
        try:
            async with self._nonce_lock:
                fields = await self._build(tx, account.address)
                try:
                    signed = account.sign_transaction(fields)
                except Exception as exc:
                    raise SigRejected(f"Signing failed: {type(exc).__name__}: {exc}") from exc
                tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as exc:
            # estimate_gas executes the call and surfaces reverts before broadcast
            raise ContractReverted(_revert_data(exc)) from exc
        except ChainClientError:
            raise
        except Exception as exc:
            raise as_transport_failure(exc, context="send transaction") from exc

        logger.debug("Transaction broadcast: hash=0x%s, sender=%s", bytes(tx_hash).hex(), account.address)
        return bytes(tx_hash)

    async def _build(self, tx: UnsignedTransaction, sender: str) -> dict[str, Any]:
        eth = self._w3.eth
        chain_id = self._chain_id if self._chain_id is not None else await eth.chain_id

        fields: dict[str, Any] = {
            "from": sender,
            "value": tx.value,
            "data": "0x" + tx.data.hex(),
            "nonce": await eth.get_transaction_count(sender, "pending"),
            "chainId": chain_id,
        }
        if tx.to is not None:
            fields["to"] = to_checksum_address(tx.to)

        latest = await eth.get_block("latest")
        base_fee = latest.get("baseFeePerGas")
        if base_fee is not None:
            priority = await eth.max_priority_fee
            fields["maxPriorityFeePerGas"] = priority
            fields["maxFeePerGas"] = base_fee * 2 + priority
        else:
            fields["gasPrice"] = await eth.gas_price

        fields["gas"] = tx.gas_limit if tx.gas_limit is not None else await eth.estimate_gas(fields)
        return fields

    async def _wait_for_receipt(self, tx_hash: bytes) -> Any:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        except TimeExhausted as exc:
            raise TransportFailure(f"No receipt for 0x{tx_hash.hex()} within {self._receipt_timeout}s", cause=exc) from exc
        except Exception as exc:
            raise as_transport_failure(exc, context="wait for receipt") from exc

        if receipt.get("status") == 0:
            raise ContractReverted(b"", f"transaction 0x{tx_hash.hex()} failed (status 0)")
        logger.debug("Transaction mined: hash=0x%s, block=%s", tx_hash.hex(), receipt.get("blockNumber"))
        return receipt


class Web3LogSource:
    """
    LogSource over eth_getLogs.

    Historical ranges are fetched in block batches; live queries keep polling
    the chain head every `poll_interval` seconds once the backfill is done.
    Each subscription is served by one background task that pushes into the
    subscription queues; the log queue is bounded, so the task waits for the
    consumer instead of buffering a whole backfill.
    """

    def __init__(
        self,
        *,
        w3: AsyncWeb3,
        poll_interval: float = _DEFAULT_POLL_INTERVAL,
        block_batch_size: int = _DEFAULT_BLOCK_BATCH_SIZE,
        queue_size: int = _DEFAULT_QUEUE_SIZE,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if block_batch_size <= 0:
            raise ValueError("block_batch_size must be positive")
        if queue_size <= 0:
            raise ValueError("queue_size must be positive")
        self._w3 = w3
        self._poll_interval = poll_interval
        self._block_batch_size = block_batch_size
        self._queue_size = queue_size

    async def subscribe(self, query: LogQuery) -> LogSubscription:
        logs: asyncio.Queue[RawLog] = asyncio.Queue(maxsize=self._queue_size)
        errors: asyncio.Queue[BaseException] = asyncio.Queue()
        done = asyncio.Event()

        async def unsubscribe() -> None:
            if not task.done():
                task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        subscription = LogSubscription(logs=logs, errors=errors, done=done, unsubscribe=unsubscribe, query=query)
        task = asyncio.create_task(self._pump(subscription))
        return subscription

    async def _pump(self, subscription: LogSubscription) -> None:
        query = subscription.query
        logs, errors = subscription.logs, subscription.errors
        topics = [_hex_topic(slot) for slot in query.topics]
        try:
            head = await self._head()
            next_block = query.from_block if query.from_block is not None else head + 1
            subscription.start_block = next_block

            if not query.is_live:
                await self._fetch_range(query.address, topics, next_block, query.to_block, logs)
                subscription.done.set()
                return

            while True:
                if head >= next_block:
                    await self._fetch_range(query.address, topics, next_block, head, logs)
                    next_block = head + 1
                await asyncio.sleep(self._poll_interval)
                head = await self._head()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Log polling failed for %s: %s", query.address, exc)
            if query.is_live and not isinstance(exc, ChainClientError):
                errors.put_nowait(SubscriptionLost(f"eth_getLogs polling stopped: {type(exc).__name__}: {exc}", cause=exc))
            else:
                errors.put_nowait(as_transport_failure(exc, context="eth_getLogs"))

    async def _head(self) -> int:
        return int(await self._w3.eth.block_number)

    async def _fetch_range(
        self,
        address: str,
        topics: Sequence[Any],
        from_block: int,
        to_block: int,
        logs: asyncio.Queue[RawLog],
    ) -> None:
        current = from_block
        while current <= to_block:
            batch_to = min(current + self._block_batch_size - 1, to_block)
            params: dict[str, Any] = {
                "address": to_checksum_address(address),
                "fromBlock": current,
                "toBlock": batch_to,
            }
            if topics:
                params["topics"] = list(topics)
            entries = await self._w3.eth.get_logs(params)
            batch = sorted((_raw_log(e) for e in entries), key=lambda r: r.position)
            for raw in batch:
                await logs.put(raw)

            logger.debug(
                "Fetched logs: address=%s, blocks=[%s, %s], count=%s",
                address,
                current,
                batch_to,
                len(batch),
            )
            current = batch_to + 1
