"""Tests for result envelopes, error classification and log formatting."""

import json
import logging
import sys

import pytest
from pydantic import ValidationError

from mssql_mcp_server.errors import (
    ErrorCode,
    ParameterValidationError,
    classify_exception,
    create_tool_error,
    infrastructure_error,
    require_text,
)
from mssql_mcp_server.logging_config import JSONFormatter
from mssql_mcp_server.models.results import ToolResult, tool_success


class TestToolResult:
    """Tests for the success/failure envelope."""

    def test_success_carries_data_only(self) -> None:
        """Test a successful envelope has no error fields."""
        result = tool_success({"total_count": 0})

        assert result.model_dump() == {
            "success": True,
            "data": {"total_count": 0},
            "error": None,
            "error_code": None,
        }

    def test_failure_carries_error_only(self) -> None:
        """Test a failed envelope has no data."""
        result = create_tool_error(ErrorCode.TABLE_NOT_FOUND, "Table 'x' not found.")

        assert result.data is None
        assert result.error_code == "TABLE_NOT_FOUND"

    def test_mixed_envelopes_rejected(self) -> None:
        """Test payload and error cannot coexist."""
        with pytest.raises(ValidationError):
            ToolResult(success=True, data=1, error="boom")
        with pytest.raises(ValidationError):
            ToolResult(success=False, data=1, error="boom")
        with pytest.raises(ValidationError):
            ToolResult(success=False, error="")


class TestClassifyException:
    """Tests for mapping infrastructure failures to codes."""

    @pytest.mark.parametrize(
        ("message", "code"),
        [
            ("Query timeout expired", ErrorCode.QUERY_TIMEOUT),
            ("Login timed out", ErrorCode.QUERY_TIMEOUT),
            ("VIEW DEFINITION permission denied", ErrorCode.PERMISSION_DENIED),
            ("Access is denied", ErrorCode.PERMISSION_DENIED),
            ("TCP Provider: Error code 0x2749", ErrorCode.CONNECTION_ERROR),
        ],
    )
    def test_classification(self, message: str, code: str) -> None:
        """Test codes are chosen from the exception message."""
        assert classify_exception(Exception(message)) == code

    def test_infrastructure_error_logs_and_wraps(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test the failure is logged with its traceback and returned verbatim."""
        exc = RuntimeError("Communication link failure")

        with caplog.at_level(logging.ERROR, logger="mssql_mcp_server.errors"):
            result = infrastructure_error("describe_table", exc)

        assert result.error == "Communication link failure"
        assert result.error_code == ErrorCode.CONNECTION_ERROR
        assert "describe_table failed" in caplog.text

    def test_empty_message_uses_exception_type(self) -> None:
        """Test an exception without a message still yields an error text."""
        result = infrastructure_error("list_stored_procedures", ConnectionResetError())

        assert result.error == "ConnectionResetError"


class TestRequireText:
    """Tests for required text arguments."""

    def test_strips_value(self) -> None:
        """Test surrounding whitespace is removed."""
        assert require_text("  dbo ", "missing") == "dbo"

    def test_keeps_whitespace_when_not_stripping(self) -> None:
        """Test the value is returned unchanged when stripping is off."""
        assert require_text(" id ", "missing", strip=False) == " id "

    def test_blank_rejected_when_not_stripping(self) -> None:
        """Test blank values are still rejected when stripping is off."""
        with pytest.raises(ParameterValidationError):
            require_text("   ", "missing", strip=False)

    @pytest.mark.parametrize("value", [None, "", "\t\n "])
    def test_rejects_blank(self, value: str | None) -> None:
        """Test missing values raise a parameter error."""
        with pytest.raises(ParameterValidationError) as exc_info:
            require_text(value, "missing")

        assert exc_info.value.code == ErrorCode.PARAMETER_ERROR
        assert exc_info.value.message == "missing"


class TestJSONFormatter:
    """Tests for JSON log output."""

    def test_formats_record_as_json(self) -> None:
        """Test each record is a single JSON object."""
        record = logging.LogRecord(
            "mssql_mcp_server.server", logging.INFO, __file__, 1, "pool ready for %s", ("db",), None
        )

        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["name"] == "mssql_mcp_server.server"
        assert payload["message"] == "pool ready for db"
        assert "exception" not in payload

    def test_includes_exception(self) -> None:
        """Test tracebacks are carried in the exception field."""
        try:
            raise ValueError("bad row")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), exc_info)

        payload = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad row" in payload["exception"]
