import pytest
from pydantic import ValidationError

from chain_client.app.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("POSTGRES_USER", raising=False)
    settings = Settings(_env_file=None)

    assert settings.rpc_url == "http://127.0.0.1:8545"
    assert settings.request_timeout == 30.0
    assert settings.private_key is None


def test_database_urls_are_assembled():
    settings = Settings(
        _env_file=None,
        POSTGRES_USER="indexer",
        POSTGRES_PASSWORD="p@ss",
        POSTGRES_SERVER="db",
        POSTGRES_DB="chain",
    )

    assert settings.database_url == "postgresql+asyncpg://indexer:p%40ss@db:5432/chain"
    assert settings.sync_database_url == "postgresql://indexer:p%40ss@db:5432/chain"


@pytest.mark.parametrize("field", ["REQUEST_TIMEOUT", "LOG_POLL_INTERVAL", "LOG_BLOCK_BATCH_SIZE", "LOG_QUEUE_SIZE"])
def test_non_positive_values_are_rejected(field):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})
