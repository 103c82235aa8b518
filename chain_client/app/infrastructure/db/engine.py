from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from chain_client.app.config import settings


def create_app_async_engine(*, echo: bool = False) -> AsyncEngine:
    """
    Factory for the AsyncEngine used by indexing tasks.

    Requires POSTGRES_* (or DATABASE_URL) to be configured; the contract
    binding layer itself never touches the database.
    """
    if not settings.database_url:
        raise RuntimeError("Database is not configured: set POSTGRES_USER/PASSWORD/SERVER/DB")
    return create_async_engine(
        settings.database_url,  # postgresql+asyncpg://...
        echo=echo,
        pool_pre_ping=True,
    )
