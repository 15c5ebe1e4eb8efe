"""Pydantic models for table introspection tools."""

from pydantic import BaseModel, Field, model_validator

# === Describe Table ===


class TableDescriptor(BaseModel):
    """Identity of a user table."""

    id: int = Field(description="Catalog object id")
    name: str = Field(description="Table name")
    schema_name: str = Field(description="Schema containing the table")
    owner: str | None = Field(default=None, description="Owning principal")
    type: str = Field(description="Object kind code (U for user table)")
    description: str | None = Field(default=None, description="MS_Description extended property")


class ColumnDescriptor(BaseModel):
    """A table column annotated with the structures that reference it."""

    name: str = Field(description="Column name")
    type: str = Field(description="Declared type name")
    length: int | None = Field(default=None, description="Storage length in bytes (-1 for MAX)")
    precision: int | None = Field(default=None, description="Numeric precision")
    scale: int | None = Field(default=None, description="Numeric scale")
    nullable: bool = Field(description="Whether column allows NULL")
    description: str | None = Field(default=None, description="Column comment")
    used_in: list[str] = Field(
        default_factory=list,
        description="Usage tags such as 'index:IX_Name' or 'foreignKey:FK_Name'",
    )


class IndexDescriptor(BaseModel):
    """A non-constraint index of a table."""

    name: str = Field(description="Index name")
    type: str | None = Field(default=None, description="Index type (CLUSTERED, NONCLUSTERED, ...)")
    description: str | None = Field(default=None, description="Index comment")
    key_columns: list[str] = Field(
        default_factory=list, description="Key columns ordered by key position"
    )


class ConstraintDescriptor(BaseModel):
    """A primary key or unique constraint of a table."""

    name: str = Field(description="Constraint name")
    type: str | None = Field(
        default=None, description="PRIMARY_KEY_CONSTRAINT or UNIQUE_CONSTRAINT"
    )
    key_columns: list[str] = Field(
        default_factory=list, description="Key columns ordered by key position"
    )


class ForeignKeyDescriptor(BaseModel):
    """An outgoing foreign key of a table."""

    name: str = Field(description="Foreign key name")
    schema_name: str = Field(description="Schema of the referencing table")
    table_name: str = Field(description="Referencing table")
    column_names: list[str] = Field(description="Local columns ordered by constraint ordinal")
    referenced_schema: str = Field(description="Schema of the referenced table")
    referenced_table: str = Field(description="Referenced table")
    referenced_column_names: list[str] = Field(
        description="Referenced columns, positionally aligned with column_names"
    )

    @model_validator(mode="after")
    def check_aligned(self) -> "ForeignKeyDescriptor":
        """Both sides of a foreign key must list the same number of columns."""
        if len(self.column_names) != len(self.referenced_column_names):
            raise ValueError(
                f"Foreign key '{self.name}' has {len(self.column_names)} local columns "
                f"but {len(self.referenced_column_names)} referenced columns"
            )
        return self


class DescribeTableOutput(BaseModel):
    """Output for describe_table tool."""

    table: TableDescriptor
    columns: list[ColumnDescriptor]
    indexes: list[IndexDescriptor]
    constraints: list[ConstraintDescriptor]
    foreign_keys: list[ForeignKeyDescriptor]


# === Find Tables With Column ===


class FindTablesWithColumnOutput(BaseModel):
    """Output for find_tables_with_column tool."""

    schema_name: str
    column_name: str
    matching_tables: list[str] = Field(description="Tables that have the column (schema.table)")
    non_matching_tables: list[str] = Field(description="Tables without the column (schema.table)")
    match_count: int
