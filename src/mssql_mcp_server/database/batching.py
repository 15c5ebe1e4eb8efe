"""Batch processing and reference search over stored procedures.

Candidate procedures are listed once, split into fixed-size batches in
catalog order, and each item is then optionally enriched with its
definition. The search variant keeps only procedures whose definition
mentions a reference and summarizes where it occurs.
"""

import logging
import math
import re
from collections.abc import Iterator, Sequence
from typing import TypeVar

from mssql_mcp_server.database.catalog import CatalogService
from mssql_mcp_server.errors import ParameterValidationError
from mssql_mcp_server.models.procedures import (
    BatchProcessOutput,
    BatchSearchOutput,
    ProcedureBatch,
    ProcedureDescriptor,
    SearchMatch,
)

logger = logging.getLogger(__name__)

MAX_SUMMARY_LENGTH = 200
SUMMARY_ELLIPSIS = "..."

_LINE_BREAK = re.compile(r"[\r\n]")

T = TypeVar("T")


def validate_batch_size(batch_size: int) -> None:
    """Reject non-positive batch sizes.

    Raises:
        ParameterValidationError: If batch_size is zero or negative.
    """
    if batch_size <= 0:
        raise ParameterValidationError("Batch size must be greater than zero.")


def iter_batches(items: Sequence[T], batch_size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``batch_size`` items.

    Args:
        items: Items in their final order.
        batch_size: Maximum slice length (must be positive).

    Yields:
        Lists of items; only the last may be shorter than batch_size.
    """
    validate_batch_size(batch_size)
    for start in range(0, len(items), batch_size):
        yield list(items[start : start + batch_size])


def extract_reference_summary(definition: str, reference: str) -> str:
    """Return the first definition line mentioning ``reference``.

    Lines are split on CR and LF, empty lines are skipped and matching is
    case-insensitive. The line is stripped and capped at 200 characters,
    with "..." appended when it was longer.

    Args:
        definition: Procedure source text.
        reference: Text to look for.

    Returns:
        The summary line, or an empty string if no line contains reference.
    """
    needle = reference.lower()
    for line in _LINE_BREAK.split(definition):
        if not line or needle not in line.lower():
            continue
        trimmed = line.strip()
        if len(trimmed) > MAX_SUMMARY_LENGTH:
            return trimmed[:MAX_SUMMARY_LENGTH] + SUMMARY_ELLIPSIS
        return trimmed
    return ""


class ProcedureBatchService:
    """Batch pipeline over the procedures visible to one connection."""

    def __init__(self, catalog: CatalogService) -> None:
        """Initialize batch service.

        Args:
            catalog: Catalog service bound to the caller's connection.
        """
        self.catalog = catalog

    async def process(
        self,
        batch_size: int,
        schema_filter: str | None = None,
        name_pattern: str | None = None,
        include_definitions: bool = False,
    ) -> BatchProcessOutput:
        """List matching procedures in batches, optionally with definitions.

        Procedures whose definition cannot be read (e.g. encrypted modules)
        are kept without a definition. A failing lookup aborts the run.

        Args:
            batch_size: Procedures per batch (must be positive).
            schema_filter: Optional exact schema name.
            name_pattern: Optional LIKE pattern on the procedure name.
            include_definitions: Fetch each procedure's source text.

        Returns:
            Batches with totals.
        """
        validate_batch_size(batch_size)
        candidates = await self.catalog.list_procedures(schema_filter, name_pattern)

        batches = []
        for number, batch in enumerate(iter_batches(candidates, batch_size), start=1):
            procedures = []
            for proc in batch:
                if include_definitions:
                    definition = await self.catalog.get_procedure_definition(
                        proc.schema_name, proc.name
                    )
                    proc = proc.model_copy(update={"definition": definition})
                procedures.append(proc)
            batches.append(ProcedureBatch(batch_number=number, procedures=procedures))

        logger.debug(
            "Processed %d procedures in %d batches of %d",
            len(candidates),
            len(batches),
            batch_size,
        )
        return BatchProcessOutput(
            total_procedures=len(candidates),
            batch_count=math.ceil(len(candidates) / batch_size),
            batch_size=batch_size,
            batches=batches,
        )

    async def search(
        self,
        name_pattern: str,
        reference: str,
        batch_size: int = 20,
    ) -> BatchSearchOutput:
        """Find procedures matching a name pattern whose definition mentions a reference.

        Args:
            name_pattern: LIKE pattern on the procedure name.
            reference: Text searched for in each definition, ignoring case.
            batch_size: Procedures scanned per batch (must be positive).

        Returns:
            Matches with reference summaries, plus scan totals.
        """
        validate_batch_size(batch_size)
        candidates = await self.catalog.list_procedures(name_pattern=name_pattern)
        needle = reference.lower()

        matches = []
        for batch in iter_batches(candidates, batch_size):
            for proc in batch:
                definition = await self.catalog.get_procedure_definition(
                    proc.schema_name, proc.name
                )
                if definition is None or needle not in definition.lower():
                    continue
                matches.append(_to_match(proc, extract_reference_summary(definition, reference)))

        return BatchSearchOutput(
            total_procedures=len(candidates),
            batch_count=math.ceil(len(candidates) / batch_size),
            batch_size=batch_size,
            match_count=len(matches),
            matches=matches,
        )


def _to_match(proc: ProcedureDescriptor, summary: str) -> SearchMatch:
    return SearchMatch(
        schema_name=proc.schema_name,
        name=proc.name,
        full_name=proc.full_name,
        reference_summary=summary,
    )
