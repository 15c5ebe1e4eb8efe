"""Database layer for SQL Server MCP Server."""

from mssql_mcp_server.database.batching import ProcedureBatchService
from mssql_mcp_server.database.catalog import CatalogService, split_qualified_name
from mssql_mcp_server.database.engine import create_engine, dispose_engine
from mssql_mcp_server.database.usage import resolve_column_usage, split_key_columns

__all__ = [
    "create_engine",
    "dispose_engine",
    "CatalogService",
    "ProcedureBatchService",
    "resolve_column_usage",
    "split_key_columns",
    "split_qualified_name",
]
