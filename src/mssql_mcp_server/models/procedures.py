"""Pydantic models for stored procedure tools."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer


class ProcedureDescriptor(BaseModel):
    """A stored procedure, optionally carrying its source text."""

    schema_name: str = Field(description="Schema containing the procedure")
    name: str = Field(description="Procedure name")
    full_name: str = Field(description="Schema-qualified name (schema.name)")
    definition: str | None = Field(default=None, description="Full T-SQL definition")

    @classmethod
    def from_identity(
        cls, schema_name: str, name: str, definition: str | None = None
    ) -> "ProcedureDescriptor":
        """Build a descriptor from its schema and name."""
        return cls(
            schema_name=schema_name,
            name=name,
            full_name=f"{schema_name}.{name}",
            definition=definition,
        )

    @model_serializer(mode="wrap")
    def _omit_missing_definition(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if self.definition is None:
            data.pop("definition", None)
        return data


class ListProceduresOutput(BaseModel):
    """Output for list_stored_procedures tool."""

    procedures: list[ProcedureDescriptor]
    total_count: int


# === Describe Stored Procedure ===


class ProcedureInfo(BaseModel):
    """Identity and audit dates of a stored procedure."""

    id: int = Field(description="Catalog object id")
    name: str
    schema_name: str
    create_date: datetime | None = None
    modify_date: datetime | None = None
    description: str | None = Field(default=None, description="MS_Description extended property")


class ProcedureParameter(BaseModel):
    """A declared stored procedure parameter."""

    name: str = Field(description="Parameter name including the leading @")
    type: str | None = Field(default=None, description="Declared type name")
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None
    is_output: bool = False
    parameter_id: int = Field(description="Ordinal position (1-based)")


class DescribeProcedureOutput(BaseModel):
    """Output for describe_stored_procedure tool."""

    procedure: ProcedureInfo
    parameters: list[ProcedureParameter]


# === Search ===


class SearchProceduresOutput(BaseModel):
    """Output for search_stored_procedures tool."""

    match_count: int
    procedures: list[ProcedureDescriptor]


# === Batch Processing ===


class ProcedureBatch(BaseModel):
    """One page of a batch run."""

    batch_number: int = Field(description="1-based batch ordinal")
    procedures: list[ProcedureDescriptor]


class BatchProcessOutput(BaseModel):
    """Output for batch_process_stored_procedures tool."""

    total_procedures: int
    batch_count: int
    batch_size: int
    batches: list[ProcedureBatch]


class SearchMatch(BaseModel):
    """A procedure whose definition mentions the searched reference."""

    schema_name: str
    name: str
    full_name: str
    reference_summary: str = Field(
        description="First definition line containing the reference, capped at 200 characters"
    )


class BatchSearchOutput(BaseModel):
    """Output for batch_search_stored_procedures tool."""

    total_procedures: int = Field(description="Procedures matching the name pattern")
    batch_count: int
    batch_size: int
    match_count: int
    matches: list[SearchMatch]
