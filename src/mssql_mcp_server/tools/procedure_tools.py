"""Stored procedure tools.

These tools list, describe, read and search stored procedures, and page
through large procedure sets in batches.
"""

import logging

from mcp.server.fastmcp import Context
from mcp.server.session import ServerSession
from mcp.types import ToolAnnotations

from mssql_mcp_server.database.batching import ProcedureBatchService, validate_batch_size
from mssql_mcp_server.database.catalog import CatalogService, parse_object_name
from mssql_mcp_server.errors import (
    ErrorCode,
    ParameterValidationError,
    create_tool_error,
    infrastructure_error,
    require_text,
)
from mssql_mcp_server.models.procedures import (
    DescribeProcedureOutput,
    ListProceduresOutput,
    SearchProceduresOutput,
)
from mssql_mcp_server.models.results import ToolResult, tool_success
from mssql_mcp_server.server import AppContext, mcp

logger = logging.getLogger(__name__)


@mcp.tool(
    annotations=ToolAnnotations(
        title="List Stored Procedures",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def list_stored_procedures(
    schema_filter: str | None = None,
    name_pattern: str | None = None,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """List stored procedures in the database.

    Args:
        schema_filter: Only list procedures in this schema
        name_pattern: Optional LIKE pattern to filter procedure names (e.g., 'usp_%')

    Returns:
        Procedures ordered by schema and name.
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    app_ctx = ctx.request_context.lifespan_context

    try:
        async with app_ctx.engine.connect() as conn:
            procedures = await CatalogService(conn).list_procedures(schema_filter, name_pattern)

        return tool_success(
            ListProceduresOutput(procedures=procedures, total_count=len(procedures))
        )
    except Exception as e:
        return infrastructure_error("list_stored_procedures", e)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Describe Stored Procedure",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def describe_stored_procedure(
    name: str,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """Get stored procedure metadata and parameters.

    Args:
        name: Procedure name, optionally schema-qualified (e.g. "dbo.usp_GetOrders")

    Returns:
        Procedure identity, create/modify dates and declared parameters.
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    try:
        schema_name, procedure_name = parse_object_name(name, "Procedure")
    except ParameterValidationError as e:
        return create_tool_error(e.code, e.message)

    app_ctx = ctx.request_context.lifespan_context

    try:
        async with app_ctx.engine.connect() as conn:
            catalog = CatalogService(conn)

            procedure = await catalog.get_procedure(procedure_name, schema_name)
            if procedure is None:
                logger.info("Stored procedure %s not found", name)
                return create_tool_error(
                    ErrorCode.PROCEDURE_NOT_FOUND, f"Stored procedure '{name}' not found."
                )

            parameters = await catalog.get_procedure_parameters(
                procedure.name, procedure.schema_name
            )

        return tool_success(DescribeProcedureOutput(procedure=procedure, parameters=parameters))
    except Exception as e:
        return infrastructure_error("describe_stored_procedure", e)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Read Stored Procedure",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def read_stored_procedure(
    procedure_name: str,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """Read the T-SQL definition of a stored procedure.

    Args:
        procedure_name: Procedure name, optionally schema-qualified

    Returns:
        The procedure with its full definition.
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    try:
        schema_name, name = parse_object_name(procedure_name, "Procedure")
    except ParameterValidationError as e:
        return create_tool_error(e.code, e.message)

    app_ctx = ctx.request_context.lifespan_context

    try:
        async with app_ctx.engine.connect() as conn:
            procedure = await CatalogService(conn).read_procedure(name, schema_name)

        if procedure is None:
            logger.info("Stored procedure %s not found", procedure_name)
            return create_tool_error(
                ErrorCode.PROCEDURE_NOT_FOUND,
                f"Stored procedure '{procedure_name}' not found.",
            )
        return tool_success(procedure)
    except Exception as e:
        return infrastructure_error("read_stored_procedure", e)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Search Stored Procedures",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def search_stored_procedures(
    search_text: str,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """Find stored procedures whose definition contains some text.

    The search runs on the server with LIKE, so '%' and '_' in the search
    text act as wildcards.

    Args:
        search_text: Text to search for in stored procedure definitions

    Returns:
        Matching procedures ordered by schema and name.
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    try:
        search_text = require_text(search_text, "Search text must not be empty.", strip=False)
    except ParameterValidationError as e:
        return create_tool_error(e.code, e.message)

    app_ctx = ctx.request_context.lifespan_context

    try:
        async with app_ctx.engine.connect() as conn:
            procedures = await CatalogService(conn).search_procedure_definitions(search_text)

        return tool_success(
            SearchProceduresOutput(match_count=len(procedures), procedures=procedures)
        )
    except Exception as e:
        return infrastructure_error("search_stored_procedures", e)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Batch Process Stored Procedures",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def batch_process_stored_procedures(
    batch_size: int = 10,
    schema_filter: str | None = None,
    name_pattern: str | None = None,
    include_definitions: bool = False,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """Process stored procedures in batches.

    Lists every procedure matching the filters, splits the list into
    batches and optionally attaches each procedure's definition.

    Args:
        batch_size: Number of stored procedures per batch (must be > 0). Default: 10
        schema_filter: Optional schema filter
        name_pattern: Optional LIKE pattern to filter procedure names
        include_definitions: Include procedure definitions in results. Default: False

    Returns:
        Batches of procedures with total, batch count and batch size.

    Example:
        batch_process_stored_procedures(batch_size=10) ->
            {"data": {"total_procedures": 25, "batch_count": 3, "batches": [...]}}
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    try:
        validate_batch_size(batch_size)
    except ParameterValidationError as e:
        return create_tool_error(e.code, e.message)

    app_ctx = ctx.request_context.lifespan_context

    try:
        async with app_ctx.engine.connect() as conn:
            service = ProcedureBatchService(CatalogService(conn))
            output = await service.process(
                batch_size=batch_size,
                schema_filter=schema_filter,
                name_pattern=name_pattern,
                include_definitions=include_definitions,
            )

        return tool_success(output)
    except Exception as e:
        return infrastructure_error("batch_process_stored_procedures", e)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Batch Search Stored Procedures",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def batch_search_stored_procedures(
    name_pattern: str,
    reference: str,
    batch_size: int = 20,
    ctx: Context[ServerSession, AppContext] | None = None,
) -> ToolResult:
    """Find procedures by name pattern whose definition mentions a reference.

    Each match includes the first definition line containing the reference
    (case-insensitive), trimmed and capped at 200 characters.

    Args:
        name_pattern: LIKE pattern on the procedure name (e.g. '%Visit%')
        reference: Text to search for in procedure definitions
        batch_size: Procedures scanned per batch (must be > 0). Default: 20

    Returns:
        Matching procedures with reference summaries and scan totals.
    """
    if ctx is None:
        return create_tool_error(ErrorCode.CONNECTION_ERROR, "No context available")

    try:
        message = "Both name_pattern and reference are required."
        name_pattern = require_text(name_pattern, message)
        reference = require_text(reference, message, strip=False)
        validate_batch_size(batch_size)
    except ParameterValidationError as e:
        return create_tool_error(e.code, e.message)

    app_ctx = ctx.request_context.lifespan_context

    try:
        async with app_ctx.engine.connect() as conn:
            service = ProcedureBatchService(CatalogService(conn))
            output = await service.search(
                name_pattern=name_pattern,
                reference=reference,
                batch_size=batch_size,
            )

        return tool_success(output)
    except Exception as e:
        return infrastructure_error("batch_search_stored_procedures", e)
