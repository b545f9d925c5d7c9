"""Error handling utilities for ERPNext MCP tools.

Converts exceptions into the canonical ``ToolResponse`` error envelope and
provides the operation start/success log helpers used by the tool layer.
"""

from __future__ import annotations

import logging
from typing import Any

from .exceptions import AuthenticationError
from .exceptions import ERPNextMCPError
from .exceptions import PermissionDeniedError
from .logger_config import redact_sensitive_data
from .models import ToolError
from .models import ToolResponse

logger = logging.getLogger(__name__)

AUTH_FAILED = "AUTH_FAILED"
FIELD_ERROR = "FIELD_ERROR"
PERMISSION_DENIED = "PERMISSION_DENIED"
INVALID_DOCTYPE = "INVALID_DOCTYPE"

NOT_AUTHENTICATED_MESSAGE = "Not authenticated. Please call erp_auth_connect first."


def to_tool_error(error: Exception, default_message: str = "Operation failed") -> ToolError:
    """Map an exception to a top-level tool error.

    Authentication and permission problems keep their own codes; everything
    else is reported as a field error, matching the ERPNext error surface.
    """
    if isinstance(error, AuthenticationError):
        return ToolError(code=AUTH_FAILED, message=error.user_message)
    if isinstance(error, PermissionDeniedError):
        return ToolError(code=PERMISSION_DENIED, message=error.user_message)
    if isinstance(error, ERPNextMCPError):
        return ToolError(code=FIELD_ERROR, message=error.user_message)
    return ToolError(code=FIELD_ERROR, message=str(error) or default_message)


def create_error_response(error: Exception, operation: str) -> ToolResponse:
    """Build a failed ``ToolResponse`` for ``error`` raised by ``operation``."""
    return ToolResponse(ok=False, error=to_tool_error(error, f"Failed to {operation.replace('_', ' ')}"))


def handle_mcp_tool_error(
    tool_name: str, error: Exception, context: dict[str, Any] | None = None
) -> ToolResponse:
    """Log a tool failure with its (redacted) context and build the response."""
    error_info = error.to_dict() if isinstance(error, ERPNextMCPError) else {"error_type": type(error).__name__}
    logger.error(
        f"MCP tool '{tool_name}' failed: {error}",
        extra={"context": {**redact_sensitive_data(context or {}), **error_info}},
        exc_info=not isinstance(error, ERPNextMCPError),
    )
    return create_error_response(error, tool_name)


def log_operation_start(operation: str, **context: Any) -> None:
    logger.info(f"Starting {operation}", extra={"context": redact_sensitive_data(context)})


def log_operation_success(operation: str, **context: Any) -> None:
    logger.info(f"Completed {operation} successfully", extra={"context": redact_sensitive_data(context)})


class ErrorContext:
    """Context manager that logs an operation's start, success and failure.

    Example:
        with ErrorContext("connect", base_url=url) as ctx:
            ctx.result = await ERPNextSession.connect(...)
    """

    def __init__(
        self,
        operation: str,
        log_start: bool = True,
        log_success: bool = True,
        raise_on_error: bool = True,
        **context: Any,
    ):
        self.operation = operation
        self.log_start = log_start
        self.log_success = log_success
        self.raise_on_error = raise_on_error
        self.context = context
        self.result: Any = None

    def __enter__(self) -> ErrorContext:
        if self.log_start:
            log_operation_start(self.operation, **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_val is None:
            if self.log_success:
                log_operation_success(self.operation, **self.context)
            return False

        if isinstance(exc_val, ERPNextMCPError):
            logger.error(
                f"Operation '{self.operation}' failed: {exc_val.message}",
                extra={"context": {**redact_sensitive_data(self.context), **exc_val.to_dict()}},
            )
        else:
            logger.error(
                f"Operation '{self.operation}' failed with unexpected error: {exc_val}",
                extra={"context": redact_sensitive_data(self.context)},
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return not self.raise_on_error and isinstance(exc_val, Exception)
