"""Pydantic models for MCP tool inputs and outputs."""

from mssql_mcp_server.models.procedures import (
    BatchProcessOutput,
    BatchSearchOutput,
    DescribeProcedureOutput,
    ListProceduresOutput,
    ProcedureBatch,
    ProcedureDescriptor,
    ProcedureInfo,
    ProcedureParameter,
    SearchMatch,
    SearchProceduresOutput,
)
from mssql_mcp_server.models.results import ToolResult, tool_success
from mssql_mcp_server.models.tables import (
    ColumnDescriptor,
    ConstraintDescriptor,
    DescribeTableOutput,
    FindTablesWithColumnOutput,
    ForeignKeyDescriptor,
    IndexDescriptor,
    TableDescriptor,
)

__all__ = [
    # Table models
    "TableDescriptor",
    "ColumnDescriptor",
    "IndexDescriptor",
    "ConstraintDescriptor",
    "ForeignKeyDescriptor",
    "DescribeTableOutput",
    "FindTablesWithColumnOutput",
    # Procedure models
    "ProcedureDescriptor",
    "ProcedureInfo",
    "ProcedureParameter",
    "DescribeProcedureOutput",
    "ListProceduresOutput",
    "SearchProceduresOutput",
    "ProcedureBatch",
    "BatchProcessOutput",
    "SearchMatch",
    "BatchSearchOutput",
    # Result envelope
    "ToolResult",
    "tool_success",
]
