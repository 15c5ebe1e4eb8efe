"""Result envelope shared by every MCP tool."""

from typing import Any

from pydantic import BaseModel, Field, model_validator


class ToolResult(BaseModel):
    """Uniform success/failure wrapper returned by every tool.

    A successful result carries ``data`` and no error; a failed result
    carries ``error`` (and usually ``error_code``) and no data.
    """

    success: bool = Field(description="Whether the operation succeeded")
    data: Any = Field(default=None, description="Operation payload on success")
    error: str | None = Field(default=None, description="Human-readable error message")
    error_code: str | None = Field(default=None, description="Machine-readable error code")

    @model_validator(mode="after")
    def check_exclusive(self) -> "ToolResult":
        """Reject envelopes that mix a payload with an error."""
        if self.success and (self.error is not None or self.error_code is not None):
            raise ValueError("successful result cannot carry an error")
        if not self.success:
            if self.data is not None:
                raise ValueError("failed result cannot carry data")
            if not self.error:
                raise ValueError("failed result requires an error message")
        return self


def tool_success(data: Any) -> ToolResult:
    """Wrap an operation payload in a successful envelope."""
    return ToolResult(success=True, data=data)
