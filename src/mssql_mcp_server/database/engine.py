"""SQLAlchemy async engine management for SQL Server."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from mssql_mcp_server.config import DatabaseSettings

SERVER_VERSION_SQL = "SELECT CAST(SERVERPROPERTY('ProductVersion') AS NVARCHAR(128)) AS version"


async def create_engine(settings: DatabaseSettings) -> AsyncEngine:
    """Create async SQLAlchemy engine with connection pool.

    Catalog reads never write, so connections run in autocommit mode and
    no transaction is left open between metadata lookups.

    Args:
        settings: Database configuration settings.

    Returns:
        AsyncEngine configured for aioodbc with connection pooling.
    """
    return create_async_engine(
        settings.async_url,
        pool_size=settings.pool_size,
        pool_timeout=settings.pool_timeout,
        pool_pre_ping=True,  # Health check connections before use
        isolation_level="AUTOCOMMIT",
        echo=False,
    )


async def dispose_engine(engine: AsyncEngine) -> None:
    """Dispose of the engine and close all pooled connections."""
    await engine.dispose()


async def test_connection(engine: AsyncEngine) -> str | None:
    """Test database connectivity and report the server version.

    Args:
        engine: The async engine to test.

    Returns:
        SQL Server product version, or None if the server did not report one.

    Raises:
        Exception: If connection fails.
    """
    async with engine.connect() as conn:
        result = await conn.execute(text(SERVER_VERSION_SQL))
        row = result.fetchone()
    return row._mapping["version"] if row else None
