"""Table introspection tools.

These tools describe a table's structure and locate tables by column.
"""

import logging

from mcp.server.fastmcp import Context
from mcp.server.session import ServerSession
from mcp.types import ToolAnnotations

from mssql_mcp_server.database.catalog import CatalogService, parse_object_name
from mssql_mcp_server.database.usage import resolve_column_usage
from mssql_mcp_server.errors import (
    ErrorCode,
    ParameterValidationError,
    create_tool_error,
    infrastructure_error,
    require_text,
)
from mssql_mcp_server.models.results import ToolResult, tool_success
from mssql_mcp_server.models.tables import DescribeTableOutput, FindTablesWithColumnOutput
from mssql_mcp_server.server import AppContext, mcp

logger = logging.getLogger(__name__)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Describe Table",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def describe_table(
    name: str,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """Get the structure of a table and how each column is used.

    Returns the table's identity, its columns, non-constraint indexes,
    primary key and unique constraints, and foreign keys. Each column lists
    every index, constraint and foreign key that includes it. Only index key
    columns are tagged; INCLUDE columns of an index get no index tag.

    Args:
        name: Table name, optionally schema-qualified (e.g. "dbo.Orders").
            Without a schema, the first matching table in any schema is used.

    Returns:
        Table structure with per-column usage tags.

    Example:
        describe_table(name="dbo.Orders") -> {"data": {"columns": [
            {"name": "CustomerId", "used_in": ["index:IX_Orders_CustomerId",
                                               "foreignKey:FK_Orders_Customers"]}]}}
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    try:
        schema_name, table_name = parse_object_name(name, "Table")
    except ParameterValidationError as e:
        return create_tool_error(e.code, e.message)

    app_ctx = ctx.request_context.lifespan_context

    try:
        async with app_ctx.engine.connect() as conn:
            catalog = CatalogService(conn)

            table = await catalog.get_table(table_name, schema_name)
            if table is None:
                logger.info("Table %s not found", name)
                return create_tool_error(ErrorCode.TABLE_NOT_FOUND, f"Table '{name}' not found.")

            # Dependent lookups use the resolved schema so that a name
            # present in several schemas describes a single table.
            columns = await catalog.get_columns(table.name, table.schema_name)
            indexes = await catalog.get_indexes(table.name, table.schema_name)
            constraints = await catalog.get_key_constraints(table.name, table.schema_name)
            foreign_keys = await catalog.get_foreign_keys(table.name, table.schema_name)

        return tool_success(
            DescribeTableOutput(
                table=table,
                columns=resolve_column_usage(columns, indexes, constraints, foreign_keys),
                indexes=indexes,
                constraints=constraints,
                foreign_keys=foreign_keys,
            )
        )
    except Exception as e:
        return infrastructure_error("describe_table", e)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Find Tables With Column",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def find_tables_with_column(
    schema_name: str,
    column_name: str,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """Find the tables in a schema that do, and do not, have a column.

    Args:
        schema_name: Schema to search (e.g. "dbo")
        column_name: Column name to look for (case-insensitive)

    Returns:
        Matching and non-matching tables as schema.table names.

    Example:
        find_tables_with_column(schema_name="dbo", column_name="TenantId")
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    try:
        message = "Schema and column name must be provided."
        schema_name = require_text(schema_name, message)
        column_name = require_text(column_name, message)
    except ParameterValidationError as e:
        return create_tool_error(e.code, e.message)

    app_ctx = ctx.request_context.lifespan_context

    try:
        matching: list[str] = []
        non_matching: list[str] = []
        async with app_ctx.engine.connect() as conn:
            catalog = CatalogService(conn)
            for table_schema, table_name in await catalog.list_base_tables(schema_name):
                has_column = await catalog.table_has_column(table_schema, table_name, column_name)
                target = matching if has_column else non_matching
                target.append(f"{table_schema}.{table_name}")

        return tool_success(
            FindTablesWithColumnOutput(
                schema_name=schema_name,
                column_name=column_name,
                matching_tables=matching,
                non_matching_tables=non_matching,
                match_count=len(matching),
            )
        )
    except Exception as e:
        return infrastructure_error("find_tables_with_column", e)
