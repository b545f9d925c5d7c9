"""Pydantic models shared by the ERPNext MCP tools.

Every tool answers with a ``ToolResponse`` envelope: ``ok`` plus either the
tool-specific ``data`` or a ``ToolError`` carrying a canonical error code.
"""

from typing import Any

from pydantic import BaseModel
from pydantic import Field

# === Response Envelope ===


class ToolError(BaseModel):
    """Top-level error returned instead of tool data."""

    code: str = Field(..., description="Canonical error code, e.g. AUTH_FAILED or FIELD_ERROR")
    message: str = Field(..., description="Human-readable description of the problem")


class ToolResponse(BaseModel):
    """Envelope returned by every tool."""

    ok: bool
    data: Any | None = None
    error: ToolError | None = None

    @classmethod
    def success(cls, data: Any = None) -> "ToolResponse":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, code: str, message: str) -> "ToolResponse":
        return cls(ok=False, error=ToolError(code=code, message=message))


# === Session Models ===


class UserInfo(BaseModel):
    """The user behind the current API credentials."""

    user: str
    roles: list[str] = Field(default_factory=list)
