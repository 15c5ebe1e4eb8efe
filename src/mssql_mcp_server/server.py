"""MCP server initialization using FastMCP.

The server owns one SQLAlchemy engine for its lifetime. Tools borrow a
pooled connection per call from the engine held in the lifespan context.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP
from sqlalchemy.ext.asyncio import AsyncEngine

from mssql_mcp_server.config import Settings, get_settings
from mssql_mcp_server.database.engine import create_engine, dispose_engine

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = """\
Read-only SQL Server catalog explorer. Use describe_table to see a table's
columns and which indexes, constraints and foreign keys use each column.
Use list_stored_procedures, describe_stored_procedure and read_stored_procedure
to inspect procedures, and the batch_* tools to page through large sets.
Names may be schema-qualified as schema.name."""


@dataclass
class AppContext:
    """Application context with shared resources."""

    engine: AsyncEngine
    settings: Settings


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Create the engine on startup and dispose of it on shutdown.

    Args:
        server: The FastMCP server instance.

    Yields:
        AppContext with initialized resources.
    """
    settings = get_settings()
    engine = await create_engine(settings.database)
    logger.info(
        "Connection pool ready for %s:%s/%s",
        settings.database.host,
        settings.database.port,
        settings.database.database,
    )

    try:
        yield AppContext(engine=engine, settings=settings)
    finally:
        await dispose_engine(engine)
        logger.info("Connection pool disposed")


mcp = FastMCP(
    "SQL Server MCP Server",
    instructions=SERVER_INSTRUCTIONS,
    lifespan=app_lifespan,
)
