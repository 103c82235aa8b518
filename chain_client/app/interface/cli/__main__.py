import asyncio
import inspect
import json
import logging
from typing import Any, Optional

import typer
from dotenv import load_dotenv
from eth_utils import to_bytes
from InquirerPy import inquirer

load_dotenv()

from chain_client.app.application.bindings.compliance_service import ComplianceService  # noqa: E402
from chain_client.app.application.bindings.security_token import SecurityToken  # noqa: E402
from chain_client.app.application.contracts.bound_contract import BoundContract  # noqa: E402
from chain_client.app.config import settings  # noqa: E402
from chain_client.app.domain.abi_types import (  # noqa: E402
    AbiType,
    ArrayType,
    BoolType,
    BytesType,
    FixedArrayType,
    FixedBytesType,
    IntType,
    TupleType,
    UIntType,
)
from chain_client.app.infrastructure.factories.transport_factory import transports_factory  # noqa: E402
from chain_client.app.infrastructure.registry import available_contracts, load_registry_schema  # noqa: E402
from chain_client.app.interface.tasks import TASKS  # noqa: E402

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = typer.Typer()
indexer_app = typer.Typer(help="cli for indexing contract events.")
contract_app = typer.Typer(help="cli for calling, watching and deploying registry contracts.")
app.add_typer(indexer_app, name="indexer")
app.add_typer(contract_app, name="contract")


@indexer_app.command("run")
def run() -> None:
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()
    chain_id = int(
        inquirer.text(
            message="Chain ID (e.g. 1 for Ethereum mainnet):",
            default=str(settings.chain_id or 1),
        ).execute()
    )

    task = TASKS[task_name]

    kwargs: dict[str, object] = {"chain_id": chain_id}

    sig = inspect.signature(task)
    params = sig.parameters

    if "contract" in params:
        kwargs["contract"] = inquirer.select(
            message="Contract:",
            choices=available_contracts(),
            pointer="❯",
        ).execute()
    if "address" in params:
        kwargs["address"] = inquirer.text(message="Contract address (0x...):").execute().strip()
    if "event" in params:
        schema = load_registry_schema(str(kwargs["contract"]))
        kwargs["event"] = inquirer.select(
            message="Event:",
            choices=sorted(schema.events),
            pointer="❯",
        ).execute()
    if "from_block" in params:
        kwargs["from_block"] = inquirer.text(
            message="From block (inclusive):",
            default="earliest" if "to_block" in params else "",
        ).execute()
    if "to_block" in params:
        kwargs["to_block"] = inquirer.text(
            message="To block (inclusive):",
            default="latest",
        ).execute()

    try:
        asyncio.run(task(**kwargs))  # type: ignore
    except KeyboardInterrupt:
        typer.echo("Interrupted.")


def _coerce(typ: AbiType, text: str) -> Any:
    """CLI text -> Python value for `typ`. Arrays and tuples are given as JSON."""
    if isinstance(typ, (UIntType, IntType)):
        return int(text, 0)
    if isinstance(typ, BoolType):
        lowered = text.strip().lower()
        if lowered not in ("true", "false", "1", "0"):
            raise typer.BadParameter(f"Expected true/false, got {text!r}")
        return lowered in ("true", "1")
    if isinstance(typ, (FixedBytesType, BytesType)):
        return to_bytes(hexstr=text)
    if isinstance(typ, (ArrayType, FixedArrayType, TupleType)):
        return json.loads(text)
    return text


def _printable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, tuple):
        return [_printable(v) for v in value]
    return value


@contract_app.command("selectors")
def selectors(name: str = typer.Argument(..., help="Registry contract name, e.g. SecurityToken")) -> None:
    """Print method selectors, event topics and error selectors."""
    schema = load_registry_schema(name)
    for spec in sorted(schema.methods.values(), key=lambda s: s.signature):
        typer.echo(f"function  0x{spec.selector.hex()}  {spec.signature}  [{spec.mutability.value}]")
    for event in sorted(schema.events.values(), key=lambda s: s.signature):
        topic = "anonymous" if event.anonymous else f"0x{event.topic0.hex()}"
        typer.echo(f"event     {topic}  {event.signature}")
    for error in sorted(schema.errors.values(), key=lambda s: s.signature):
        typer.echo(f"error     0x{error.selector.hex()}  {error.signature}")


@contract_app.command("call")
def call(
    name: str = typer.Argument(..., help="Registry contract name"),
    address: str = typer.Argument(..., help="Contract address"),
    method: str = typer.Argument(..., help="Method name"),
    args: Optional[list[str]] = typer.Argument(None, help="Method arguments"),
    transport: str = typer.Option("web3", help="Transport backend"),
) -> None:
    """Read-only call against a deployed registry contract."""
    transports = transports_factory(transport, settings)
    bound = BoundContract(address, load_registry_schema(name), reader=transports.reader)
    spec = bound.schema.method(method)
    raw_args = list(args or [])
    values = [_coerce(t, a) for t, a in zip(spec.input_types, raw_args)]
    values.extend(raw_args[len(values):])

    result = asyncio.run(bound.call(method, *values))
    typer.echo(json.dumps(_printable(result), indent=2))


@contract_app.command("watch")
def watch(
    name: str = typer.Argument(..., help="Registry contract name"),
    address: str = typer.Argument(..., help="Contract address"),
    event: str = typer.Argument(..., help="Event name"),
    from_block: Optional[int] = typer.Option(None, help="Backfill from this block first"),
) -> None:
    """Tail one event and log each decoded record."""
    task = TASKS["live__watch_contract_events_task"]
    try:
        asyncio.run(
            task(
                chain_id=settings.chain_id or 0,
                contract=name,
                address=address,
                event=event,
                from_block=from_block,
            )
        )
    except KeyboardInterrupt:
        typer.echo("Stopped.")


def _signer() -> str:
    if settings.private_key is None:
        raise typer.BadParameter("PRIVATE_KEY is not set")
    return settings.private_key.get_secret_value()


@contract_app.command("deploy-compliance")
def deploy_compliance(transport: str = typer.Option("web3", help="Transport backend")) -> None:
    """Deploy a ComplianceService."""
    transports = transports_factory(transport, settings)
    service, tx_hash = asyncio.run(
        ComplianceService.deploy(writer=transports.writer, sig_context=_signer(), reader=transports.reader)
    )
    typer.echo(f"ComplianceService deployed at {service.address} (tx 0x{bytes(tx_hash).hex()})")


@contract_app.command("deploy-token")
def deploy_token(
    token_name: str = typer.Option(..., "--name", help="Token name"),
    symbol: str = typer.Option(..., help="Token symbol"),
    initial_supply: str = typer.Option(..., help="Initial supply in whole tokens, e.g. 1000.5"),
    compliance: str = typer.Option(..., help="ComplianceService address"),
    transport: str = typer.Option("web3", help="Transport backend"),
) -> None:
    """Deploy a SecurityToken bound to an existing ComplianceService."""
    transports = transports_factory(transport, settings)
    token, tx_hash = asyncio.run(
        SecurityToken.deploy(
            name=token_name,
            symbol=symbol,
            initial_supply=initial_supply,
            compliance=compliance,
            writer=transports.writer,
            sig_context=_signer(),
            reader=transports.reader,
        )
    )
    typer.echo(f"SecurityToken deployed at {token.address} (tx 0x{bytes(tx_hash).hex()})")


if __name__ == "__main__":
    LOGO = r"""

      ___ _         _        ___ _ _         _
     / __| |_  __ _(_)_ _   / __| (_)___ _ _| |_
    | (__| ' \/ _` | | ' \ | (__| | / -_) ' \  _|
     \___|_||_\__,_|_|_||_| \___|_|_\___|_||_\__|

      --- Security Token Chain Client CLI ---
    """
    typer.echo(LOGO)
    app()
