from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from chain_client.app.domain.schema import ContractSchema, load_schema

logger = logging.getLogger(__name__)

REGISTRY_DIR = Path(__file__).resolve().parents[1] / "registry"


def available_contracts() -> list[str]:
    """Names of every contract with an ABI under the registry."""
    return sorted(p.stem for p in (REGISTRY_DIR / "abi").glob("*.json"))


@lru_cache(maxsize=None)
def load_registry_schema(name: str) -> ContractSchema:
    path = REGISTRY_DIR / "abi" / f"{name}.json"
    logger.debug("Loading contract schema %s from %s", name, path)
    return load_schema(path)


@lru_cache(maxsize=None)
def load_registry_bytecode(name: str) -> str:
    """Creation bytecode as a 0x-prefixed hex string."""
    path = REGISTRY_DIR / "bin" / f"{name}.bin"
    if not path.is_file():
        raise FileNotFoundError(f"No creation bytecode for {name!r} at {path}")
    code = path.read_text(encoding="utf-8").strip()
    return code if code.startswith("0x") else f"0x{code}"
