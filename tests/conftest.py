"""Pytest fixtures for SQL Server MCP Server tests."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from mssql_mcp_server.config import DatabaseSettings, ServerSettings, Settings
from mssql_mcp_server.server import AppContext


@pytest.fixture
def database_settings() -> DatabaseSettings:
    """Create test database settings."""
    return DatabaseSettings(
        host="localhost",
        port=1433,
        database="test_db",
        user="test_user",
        password="test_password",  # type: ignore
        pool_size=2,
    )


@pytest.fixture
def server_settings() -> ServerSettings:
    """Create test server settings."""
    return ServerSettings(
        transport="stdio",
        log_level="DEBUG",
    )


@pytest.fixture
def settings(database_settings: DatabaseSettings, server_settings: ServerSettings) -> Settings:
    """Create combined test settings."""
    return Settings(database=database_settings, server=server_settings)


def create_mock_result(rows: list[dict[str, Any]]) -> MagicMock:
    """Create a mock database result.

    Args:
        rows: List of row dictionaries to return.

    Returns:
        Mock result object with fetchall/fetchone methods.
    """
    mock_result = MagicMock()

    # Create mock rows with _mapping attribute
    mock_rows = []
    for row_data in rows:
        mock_row = MagicMock()
        mock_row._mapping = row_data
        mock_rows.append(mock_row)

    mock_result.fetchall.return_value = mock_rows
    mock_result.fetchone.return_value = mock_rows[0] if mock_rows else None
    return mock_result


def procedure_rows(count: int, schema_name: str = "dbo") -> list[dict[str, Any]]:
    """Build procedure listing rows named usp_000, usp_001, ..."""
    return [{"schema_name": schema_name, "name": f"usp_{i:03d}"} for i in range(count)]


@pytest_asyncio.fixture
async def mock_connection() -> AsyncMock:
    """Create mock async connection."""
    conn = AsyncMock(spec=AsyncConnection)

    # Default execute returns empty result
    mock_result = create_mock_result([])
    conn.execute.return_value = mock_result

    return conn


@pytest_asyncio.fixture
async def mock_engine(mock_connection: AsyncMock) -> AsyncMock:
    """Create mock async engine."""
    engine = AsyncMock(spec=AsyncEngine)

    # Make connect() return async context manager
    cm = AsyncMock()
    cm.__aenter__.return_value = mock_connection
    cm.__aexit__.return_value = None
    engine.connect.return_value = cm

    return engine


@pytest.fixture
def mock_ctx(mock_engine: AsyncMock, settings: Settings) -> MagicMock:
    """Create a tool context whose lifespan context holds the mock engine."""
    ctx = MagicMock()
    ctx.request_context.lifespan_context = AppContext(engine=mock_engine, settings=settings)
    return ctx
