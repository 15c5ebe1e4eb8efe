"""Column usage resolution for table descriptions.

Columns, indexes, key constraints and foreign keys arrive from separate
catalog lookups. This module cross-references them so that every column
lists each structure whose key columns include it.
"""

from collections.abc import Sequence

from mssql_mcp_server.models.tables import (
    ColumnDescriptor,
    ConstraintDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
)

INDEX_TAG = "index"
CONSTRAINT_TAG = "constraint"
FOREIGN_KEY_TAG = "foreignKey"


def split_key_columns(raw: str | None) -> list[str]:
    """Parse a server-concatenated key column string.

    Args:
        raw: Comma-joined column names ordered by key position, or None.

    Returns:
        Trimmed column names in key order. Empty for a null or empty string.
    """
    if not raw:
        return []
    return [token.strip() for token in raw.split(",") if token.strip()]


def resolve_column_usage(
    columns: Sequence[ColumnDescriptor],
    indexes: Sequence[IndexDescriptor],
    constraints: Sequence[ConstraintDescriptor],
    foreign_keys: Sequence[ForeignKeyDescriptor],
) -> list[ColumnDescriptor]:
    """Annotate each column with the structures that reference it.

    Tags are appended in the order index, constraint, foreignKey, and within
    each kind in the order the structures were fetched. Column names are
    compared exactly (case-sensitive). A structure with no key columns
    matches nothing.

    Args:
        columns: Table columns in ordinal order.
        indexes: Non-constraint indexes of the table.
        constraints: Primary key and unique constraints of the table.
        foreign_keys: Outgoing foreign keys of the table.

    Returns:
        Copies of the input columns with ``used_in`` populated.
    """
    structures: list[tuple[str, str, list[str]]] = []
    structures.extend((INDEX_TAG, idx.name, idx.key_columns) for idx in indexes)
    structures.extend((CONSTRAINT_TAG, con.name, con.key_columns) for con in constraints)
    structures.extend((FOREIGN_KEY_TAG, fk.name, fk.column_names) for fk in foreign_keys)

    resolved = []
    for column in columns:
        used_in = [
            f"{kind}:{name}" for kind, name, keys in structures if column.name in keys
        ]
        resolved.append(column.model_copy(update={"used_in": used_in}))
    return resolved
