"""Catalog lookups for SQL Server.

This module contains the SQL queries and the service class used to read
table, column, index, constraint, foreign key and stored procedure metadata
from the ``sys`` catalog views and ``INFORMATION_SCHEMA``. Every query is
parameterized and addresses its object by name and schema.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from mssql_mcp_server.database.usage import split_key_columns
from mssql_mcp_server.errors import ParameterValidationError, require_text
from mssql_mcp_server.models.procedures import (
    ProcedureDescriptor,
    ProcedureInfo,
    ProcedureParameter,
)
from mssql_mcp_server.models.tables import (
    ColumnDescriptor,
    ConstraintDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    TableDescriptor,
)

# Predicate shared by table lookups. A NULL schema matches any schema.
TABLE_IDENTITY_PREDICATE = (
    "t.name = :table_name AND (s.name = :table_schema OR :table_schema IS NULL)"
)

# Query: Table identity
TABLE_INFO_SQL = f"""
SELECT
    t.object_id AS id,
    t.name,
    s.name AS schema_name,
    CAST(p.value AS NVARCHAR(MAX)) AS description,
    RTRIM(t.type) AS type,
    USER_NAME(COALESCE(t.principal_id, s.principal_id)) AS owner
FROM sys.tables t
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
LEFT JOIN sys.extended_properties p
    ON p.class = 1 AND p.major_id = t.object_id AND p.minor_id = 0
    AND p.name = 'MS_Description'
WHERE {TABLE_IDENTITY_PREDICATE}
ORDER BY s.name;
"""

# Query: Table columns
COLUMNS_SQL = f"""
SELECT
    c.name,
    ty.name AS type,
    c.max_length AS length,
    c.precision,
    c.scale,
    c.is_nullable AS nullable,
    CAST(p.value AS NVARCHAR(MAX)) AS description
FROM sys.columns c
INNER JOIN sys.tables t ON c.object_id = t.object_id
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
INNER JOIN sys.types ty ON c.user_type_id = ty.user_type_id
LEFT JOIN sys.extended_properties p
    ON p.class = 1 AND p.major_id = c.object_id AND p.minor_id = c.column_id
    AND p.name = 'MS_Description'
WHERE {TABLE_IDENTITY_PREDICATE}
ORDER BY c.column_id;
"""

# Query: Indexes not backing a primary key or unique constraint
INDEXES_SQL = f"""
SELECT
    i.name,
    i.type_desc AS type,
    CAST(p.value AS NVARCHAR(MAX)) AS description,
    (SELECT STRING_AGG(c.name, ',') WITHIN GROUP (ORDER BY ic.key_ordinal)
     FROM sys.index_columns ic
     INNER JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
     WHERE ic.object_id = i.object_id AND ic.index_id = i.index_id AND ic.key_ordinal > 0
    ) AS keys
FROM sys.indexes i
INNER JOIN sys.tables t ON i.object_id = t.object_id
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
LEFT JOIN sys.extended_properties p
    ON p.class = 7 AND p.major_id = i.object_id AND p.minor_id = i.index_id
    AND p.name = 'MS_Description'
WHERE {TABLE_IDENTITY_PREDICATE}
  AND i.type > 0
  AND i.is_primary_key = 0
  AND i.is_unique_constraint = 0
ORDER BY i.index_id;
"""

# Query: Primary key and unique constraints
KEY_CONSTRAINTS_SQL = f"""
SELECT
    kc.name,
    kc.type_desc AS type,
    (SELECT STRING_AGG(c.name, ',') WITHIN GROUP (ORDER BY ic.key_ordinal)
     FROM sys.index_columns ic
     INNER JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
     WHERE ic.object_id = kc.parent_object_id AND ic.index_id = kc.unique_index_id
       AND ic.key_ordinal > 0
    ) AS keys
FROM sys.key_constraints kc
INNER JOIN sys.tables t ON kc.parent_object_id = t.object_id
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
WHERE {TABLE_IDENTITY_PREDICATE}
ORDER BY CASE kc.type WHEN 'PK' THEN 0 ELSE 1 END, kc.name;
"""

# Query: Outgoing foreign keys, column lists aligned by constraint ordinal
FOREIGN_KEYS_SQL = """
SELECT
    fk.name,
    SCHEMA_NAME(tp.schema_id) AS schema_name,
    tp.name AS table_name,
    STRING_AGG(cp.name, ',') WITHIN GROUP (ORDER BY fkc.constraint_column_id) AS column_names,
    SCHEMA_NAME(tr.schema_id) AS referenced_schema,
    tr.name AS referenced_table,
    STRING_AGG(cr.name, ',') WITHIN GROUP (ORDER BY fkc.constraint_column_id)
        AS referenced_column_names
FROM sys.foreign_keys fk
INNER JOIN sys.foreign_key_columns fkc ON fk.object_id = fkc.constraint_object_id
INNER JOIN sys.tables tp ON fkc.parent_object_id = tp.object_id
INNER JOIN sys.columns cp
    ON fkc.parent_object_id = cp.object_id AND fkc.parent_column_id = cp.column_id
INNER JOIN sys.tables tr ON fkc.referenced_object_id = tr.object_id
INNER JOIN sys.columns cr
    ON fkc.referenced_object_id = cr.object_id AND fkc.referenced_column_id = cr.column_id
WHERE tp.name = :table_name
  AND (SCHEMA_NAME(tp.schema_id) = :table_schema OR :table_schema IS NULL)
GROUP BY fk.name, tp.schema_id, tp.name, tr.schema_id, tr.name
ORDER BY fk.name;
"""

# Predicate shared by procedure lookups. A NULL schema matches any schema.
PROCEDURE_IDENTITY_PREDICATE = (
    "p.name = :procedure_name AND (s.name = :procedure_schema OR :procedure_schema IS NULL)"
)

# Query: Procedure identity
PROCEDURE_INFO_SQL = f"""
SELECT
    p.object_id AS id,
    p.name,
    s.name AS schema_name,
    p.create_date,
    p.modify_date,
    CAST(ep.value AS NVARCHAR(MAX)) AS description
FROM sys.procedures p
INNER JOIN sys.schemas s ON p.schema_id = s.schema_id
LEFT JOIN sys.extended_properties ep
    ON ep.class = 1 AND ep.major_id = p.object_id AND ep.minor_id = 0
    AND ep.name = 'MS_Description'
WHERE {PROCEDURE_IDENTITY_PREDICATE}
ORDER BY s.name;
"""

# Query: Procedure parameters
PROCEDURE_PARAMETERS_SQL = f"""
SELECT
    prm.name,
    TYPE_NAME(prm.user_type_id) AS type,
    prm.max_length,
    prm.precision,
    prm.scale,
    prm.is_output,
    prm.parameter_id
FROM sys.parameters prm
INNER JOIN sys.procedures p ON prm.object_id = p.object_id
INNER JOIN sys.schemas s ON p.schema_id = s.schema_id
WHERE {PROCEDURE_IDENTITY_PREDICATE}
ORDER BY prm.parameter_id;
"""

# Query: Procedure list; filters are appended by list_procedures
LIST_PROCEDURES_SQL = """
SELECT s.name AS schema_name, p.name
FROM sys.procedures p
INNER JOIN sys.schemas s ON p.schema_id = s.schema_id
WHERE 1 = 1
"""

LIST_PROCEDURES_ORDER_SQL = " ORDER BY s.name, p.name;"

# Query: Definition of one procedure, addressed by schema and name
PROCEDURE_DEFINITION_SQL = """
SELECT sm.definition
FROM sys.sql_modules sm
INNER JOIN sys.objects o ON sm.object_id = o.object_id
INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
WHERE o.type = 'P' AND s.name = :schema_name AND o.name = :procedure_name;
"""

# Query: Definition of a procedure whose schema may be unknown
READ_PROCEDURE_SQL = """
SELECT s.name AS schema_name, o.name, sm.definition
FROM sys.sql_modules sm
INNER JOIN sys.objects o ON sm.object_id = o.object_id
INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
WHERE o.type = 'P' AND o.name = :procedure_name
  AND (s.name = :procedure_schema OR :procedure_schema IS NULL)
ORDER BY s.name;
"""

# Query: Procedures whose definition contains the search text
SEARCH_DEFINITIONS_SQL = """
SELECT s.name AS schema_name, o.name
FROM sys.sql_modules sm
INNER JOIN sys.objects o ON sm.object_id = o.object_id
INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
WHERE o.type = 'P' AND sm.definition LIKE '%' + :search_text + '%'
ORDER BY s.name, o.name;
"""

# Query: Base tables of a schema
BASE_TABLES_SQL = """
SELECT t.TABLE_SCHEMA AS schema_name, t.TABLE_NAME AS table_name
FROM INFORMATION_SCHEMA.TABLES t
WHERE t.TABLE_TYPE = 'BASE TABLE' AND t.TABLE_SCHEMA = :schema_name
ORDER BY t.TABLE_SCHEMA, t.TABLE_NAME;
"""

# Query: Whether a table has a column (case-insensitive)
COLUMN_EXISTS_SQL = """
SELECT COUNT(*) AS match_count
FROM INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_SCHEMA = :schema_name AND TABLE_NAME = :table_name
  AND LOWER(COLUMN_NAME) = LOWER(:column_name);
"""


def split_qualified_name(name: str) -> tuple[str | None, str]:
    """Split an optionally schema-qualified name on its first '.'.

    Args:
        name: Object name such as ``Orders`` or ``dbo.Orders``.

    Returns:
        Tuple of (schema or None, object name). A blank schema part is None.
    """
    if "." in name:
        schema, _, object_name = name.partition(".")
        return schema.strip() or None, object_name.strip()
    return None, name.strip()


def parse_object_name(name: str | None, label: str) -> tuple[str | None, str]:
    """Validate and split a tool's object name argument.

    Args:
        name: Raw name supplied by the caller.
        label: Object kind used in the error message, e.g. "Table".

    Returns:
        Tuple of (schema or None, object name).

    Raises:
        ParameterValidationError: If the name, or its object part, is blank.
    """
    message = f"{label} name must not be empty."
    schema_name, object_name = split_qualified_name(require_text(name, message))
    if not object_name:
        raise ParameterValidationError(message)
    return schema_name, object_name


class CatalogService:
    """Service for catalog lookups on a single connection."""

    def __init__(self, conn: AsyncConnection) -> None:
        """Initialize catalog service.

        Args:
            conn: Async database connection owned by the caller.
        """
        self.conn = conn

    async def _fetch_all(self, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        result = await self.conn.execute(text(sql), params)
        return [dict(row._mapping) for row in result.fetchall()]

    async def _fetch_one(self, sql: str, params: dict[str, Any]) -> dict[str, Any] | None:
        result = await self.conn.execute(text(sql), params)
        row = result.fetchone()
        return dict(row._mapping) if row else None

    # === Tables ===

    async def get_table(self, table_name: str, schema_name: str | None) -> TableDescriptor | None:
        """Look up a table's identity.

        Args:
            table_name: Name of the table.
            schema_name: Schema of the table, or None to match any schema.

        Returns:
            TableDescriptor, or None if no such table exists.
        """
        row = await self._fetch_one(
            TABLE_INFO_SQL, {"table_name": table_name, "table_schema": schema_name}
        )
        return TableDescriptor(**row) if row else None

    async def get_columns(
        self, table_name: str, schema_name: str | None
    ) -> list[ColumnDescriptor]:
        """Get the columns of a table in ordinal order."""
        rows = await self._fetch_all(
            COLUMNS_SQL, {"table_name": table_name, "table_schema": schema_name}
        )
        return [ColumnDescriptor(**row) for row in rows]

    async def get_indexes(self, table_name: str, schema_name: str | None) -> list[IndexDescriptor]:
        """Get indexes that do not back a primary key or unique constraint."""
        rows = await self._fetch_all(
            INDEXES_SQL, {"table_name": table_name, "table_schema": schema_name}
        )
        return [
            IndexDescriptor(
                name=row["name"],
                type=row["type"],
                description=row["description"],
                key_columns=split_key_columns(row["keys"]),
            )
            for row in rows
        ]

    async def get_key_constraints(
        self, table_name: str, schema_name: str | None
    ) -> list[ConstraintDescriptor]:
        """Get primary key and unique constraints."""
        rows = await self._fetch_all(
            KEY_CONSTRAINTS_SQL, {"table_name": table_name, "table_schema": schema_name}
        )
        return [
            ConstraintDescriptor(
                name=row["name"],
                type=row["type"],
                key_columns=split_key_columns(row["keys"]),
            )
            for row in rows
        ]

    async def get_foreign_keys(
        self, table_name: str, schema_name: str | None
    ) -> list[ForeignKeyDescriptor]:
        """Get foreign keys declared on a table."""
        rows = await self._fetch_all(
            FOREIGN_KEYS_SQL, {"table_name": table_name, "table_schema": schema_name}
        )
        return [
            ForeignKeyDescriptor(
                name=row["name"],
                schema_name=row["schema_name"],
                table_name=row["table_name"],
                column_names=split_key_columns(row["column_names"]),
                referenced_schema=row["referenced_schema"],
                referenced_table=row["referenced_table"],
                referenced_column_names=split_key_columns(row["referenced_column_names"]),
            )
            for row in rows
        ]

    async def list_base_tables(self, schema_name: str) -> list[tuple[str, str]]:
        """List (schema, table) pairs of the base tables in a schema."""
        rows = await self._fetch_all(BASE_TABLES_SQL, {"schema_name": schema_name})
        return [(row["schema_name"], row["table_name"]) for row in rows]

    async def table_has_column(self, schema_name: str, table_name: str, column_name: str) -> bool:
        """Check whether a table has a column, ignoring case."""
        row = await self._fetch_one(
            COLUMN_EXISTS_SQL,
            {"schema_name": schema_name, "table_name": table_name, "column_name": column_name},
        )
        return bool(row and row["match_count"])

    # === Stored procedures ===

    async def get_procedure(
        self, procedure_name: str, schema_name: str | None
    ) -> ProcedureInfo | None:
        """Look up a stored procedure's identity.

        Returns:
            ProcedureInfo, or None if no such procedure exists.
        """
        row = await self._fetch_one(
            PROCEDURE_INFO_SQL,
            {"procedure_name": procedure_name, "procedure_schema": schema_name},
        )
        return ProcedureInfo(**row) if row else None

    async def get_procedure_parameters(
        self, procedure_name: str, schema_name: str | None
    ) -> list[ProcedureParameter]:
        """Get declared parameters of a stored procedure in order."""
        rows = await self._fetch_all(
            PROCEDURE_PARAMETERS_SQL,
            {"procedure_name": procedure_name, "procedure_schema": schema_name},
        )
        return [ProcedureParameter(**row) for row in rows]

    async def list_procedures(
        self,
        schema_filter: str | None = None,
        name_pattern: str | None = None,
    ) -> list[ProcedureDescriptor]:
        """List stored procedures ordered by schema and name.

        Args:
            schema_filter: Only procedures in this schema (ignored if blank).
            name_pattern: Only procedures whose name matches this LIKE
                pattern (ignored if blank).

        Returns:
            Procedure descriptors without definitions.
        """
        # Filters are only added when set, so an empty string never means
        # "match the empty schema".
        sql = LIST_PROCEDURES_SQL
        params: dict[str, Any] = {}
        if schema_filter and schema_filter.strip():
            sql += " AND s.name = :schema_filter"
            params["schema_filter"] = schema_filter
        if name_pattern and name_pattern.strip():
            sql += " AND p.name LIKE :name_pattern"
            params["name_pattern"] = name_pattern
        sql += LIST_PROCEDURES_ORDER_SQL

        rows = await self._fetch_all(sql, params)
        return [ProcedureDescriptor.from_identity(row["schema_name"], row["name"]) for row in rows]

    async def get_procedure_definition(self, schema_name: str, procedure_name: str) -> str | None:
        """Get the source text of one procedure, or None if unavailable."""
        row = await self._fetch_one(
            PROCEDURE_DEFINITION_SQL,
            {"schema_name": schema_name, "procedure_name": procedure_name},
        )
        return row["definition"] if row else None

    async def read_procedure(
        self, procedure_name: str, schema_name: str | None
    ) -> ProcedureDescriptor | None:
        """Get a procedure with its definition, searching all schemas if needed."""
        row = await self._fetch_one(
            READ_PROCEDURE_SQL,
            {"procedure_name": procedure_name, "procedure_schema": schema_name},
        )
        if row is None or row["definition"] is None:
            return None
        return ProcedureDescriptor.from_identity(row["schema_name"], row["name"], row["definition"])

    async def search_procedure_definitions(self, search_text: str) -> list[ProcedureDescriptor]:
        """Find procedures whose definition contains the search text."""
        rows = await self._fetch_all(SEARCH_DEFINITIONS_SQL, {"search_text": search_text})
        return [ProcedureDescriptor.from_identity(row["schema_name"], row["name"]) for row in rows]
