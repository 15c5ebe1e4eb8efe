"""Error taxonomy and failure envelopes for MCP tools.

Three kinds of failure reach a caller: rejected input (PARAMETER_ERROR),
a table or procedure that does not exist (*_NOT_FOUND), and anything raised
while connecting or querying. Only the last is logged as an error.
"""

import logging

from mssql_mcp_server.models.results import ToolResult

logger = logging.getLogger(__name__)


class ErrorCode:
    """Machine-readable error codes carried by failed results."""

    PARAMETER_ERROR = "PARAMETER_ERROR"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    PROCEDURE_NOT_FOUND = "PROCEDURE_NOT_FOUND"
    QUERY_TIMEOUT = "QUERY_TIMEOUT"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONNECTION_ERROR = "CONNECTION_ERROR"


class ParameterValidationError(Exception):
    """Raised when tool input is rejected before any query is issued."""

    def __init__(self, message: str) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable description of the rejected input.
        """
        self.code = ErrorCode.PARAMETER_ERROR
        self.message = message
        super().__init__(message)


def create_tool_error(code: str, message: str) -> ToolResult:
    """Create a failed result envelope.

    Args:
        code: Machine-readable error code.
        message: Human-readable error message.

    Returns:
        ToolResult with success=False and no data.
    """
    return ToolResult(success=False, error=message, error_code=code)


def classify_exception(exc: BaseException) -> str:
    """Map an infrastructure exception to an error code by its message."""
    error_str = str(exc).lower()
    if "timeout" in error_str or "timed out" in error_str:
        return ErrorCode.QUERY_TIMEOUT
    if "permission" in error_str or "denied" in error_str:
        return ErrorCode.PERMISSION_DENIED
    return ErrorCode.CONNECTION_ERROR


def infrastructure_error(tool_name: str, exc: Exception) -> ToolResult:
    """Log a connection or query failure and convert it to a failed result.

    The traceback goes to the log only; the caller sees the exception's
    message.

    Args:
        tool_name: Name of the tool that failed.
        exc: The exception caught at the tool boundary.

    Returns:
        ToolResult carrying str(exc).
    """
    logger.error("%s failed: %s", tool_name, exc, exc_info=exc)
    return create_tool_error(classify_exception(exc), str(exc) or type(exc).__name__)


def require_text(value: str | None, message: str, strip: bool = True) -> str:
    """Return ``value``, or raise if it is missing or blank.

    Args:
        value: Raw argument.
        message: Error message used when the value is blank.
        strip: Strip surrounding whitespace from the result. Search terms
            pass False so they match exactly as given.

    Raises:
        ParameterValidationError: If value is None or only whitespace.
    """
    if value is None or not value.strip():
        raise ParameterValidationError(message)
    return value.strip() if strip else value
