"""Custom exception hierarchy for the ERPNext MCP system.

All errors raised by the gateway, the session layer and the bulk executor
derive from ``ERPNextMCPError`` so that callers can catch a single base type
and still recover a structured ``error_code`` for the tool response.
"""

from __future__ import annotations

from typing import Any


class ERPNextMCPError(Exception):
    """Base class for all ERPNext MCP errors."""

    default_error_code = "UNKNOWN_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        self.user_message = user_message or message

    def to_dict(self) -> dict[str, Any]:
        """Convert the error into a JSON-serializable dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
        }


class ValidationError(ERPNextMCPError):
    """Raised when a request or a document payload is malformed."""

    default_error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        if field is not None:
            details["field"] = field
        if value is not None:
            details["invalid_value"] = value
        super().__init__(message, details=details)


class AuthenticationError(ERPNextMCPError):
    """Raised when no session exists or the backend rejects the credentials."""

    default_error_code = "AUTH_FAILED"


class PermissionDeniedError(ERPNextMCPError):
    """Raised when the backend answers 403 for an operation."""

    default_error_code = "PERMISSION_DENIED"


class GatewayError(ERPNextMCPError):
    """Raised when a single-document REST call fails."""

    default_error_code = "GATEWAY_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details)
        self.status_code = status_code


class InvalidRequestError(GatewayError):
    """Raised when the backend rejects the payload (400, 417, 422)."""

    default_error_code = "FIELD_ERROR"


class DocumentNotFoundError(GatewayError):
    """Raised when the addressed document or doctype does not exist (404)."""

    default_error_code = "NOT_FOUND"


class ConflictError(GatewayError):
    """Raised when the backend reports a concurrent modification (409)."""

    default_error_code = "CONFLICT"


class RateLimitError(GatewayError):
    """Raised when the backend throttles the client (429)."""

    default_error_code = "RATE_LIMITED"


class GatewayTimeoutError(GatewayError):
    """Raised when a gateway call exceeds its per-call timeout."""

    default_error_code = "TIMEOUT"
