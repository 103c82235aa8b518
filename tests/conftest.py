from __future__ import annotations

import pytest

from chain_client.app.domain.schema import ContractSchema, parse_schema

from fakes import ERC20_ABI


@pytest.fixture
def erc20_schema() -> ContractSchema:
    return parse_schema(ERC20_ABI)
