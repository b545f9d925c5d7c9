"""Dry-run validation of a single document before it is committed."""

import logging
from typing import Any

from ..error_handler import AUTH_FAILED
from ..error_handler import FIELD_ERROR
from ..error_handler import INVALID_DOCTYPE
from ..error_handler import NOT_AUTHENTICATED_MESSAGE
from ..error_handler import PERMISSION_DENIED
from ..exceptions import AuthenticationError
from ..exceptions import DocumentNotFoundError
from ..exceptions import ERPNextMCPError
from ..exceptions import PermissionDeniedError
from ..gateway import ERPNextGateway
from ..models import ToolResponse
from ..session import ERPNextSession
from .models import EstimatedImpact
from .models import PreviewIssue
from .models import PreviewResult

logger = logging.getLogger(__name__)

SEVERITIES = ("error", "warning", "info")
FINANCIAL_FIELDS = ("grand_total", "total", "amount")


async def preview_transaction(
    session: ERPNextSession | None,
    doctype: Any,
    doc: Any,
    *,
    gateway: ERPNextGateway | None = None,
) -> ToolResponse:
    """Validate ``doc`` against ERPNext without saving it.

    Returns:
        ToolResponse: ``data`` is a ``PreviewResult`` listing the issues
        ERPNext reported and a rough estimate of the document's impact.
    """
    if session is None or not session.is_authenticated:
        return ToolResponse.failure(AUTH_FAILED, NOT_AUTHENTICATED_MESSAGE)
    if not isinstance(doctype, str) or not doctype.strip():
        return ToolResponse.failure(INVALID_DOCTYPE, "Doctype is required and must be a string")
    if not isinstance(doc, dict):
        return ToolResponse.failure(FIELD_ERROR, "Document data is required and must be an object")

    logger.info("Previewing transaction", extra={"context": {"doctype": doctype, "doc_fields": list(doc)}})
    gateway = gateway or ERPNextGateway(session)
    try:
        validation = await gateway.validate_document(doctype, doc)
    except ERPNextMCPError as e:
        logger.error(
            "Failed to preview transaction",
            extra={"context": {"doctype": doctype, "doc_fields": list(doc), "error": e.message}},
        )
        if isinstance(e, DocumentNotFoundError):
            return ToolResponse.failure(INVALID_DOCTYPE, f"Doctype '{doctype}' not found")
        if isinstance(e, PermissionDeniedError):
            return ToolResponse.failure(
                PERMISSION_DENIED, f"Insufficient permissions to preview {doctype} transactions"
            )
        if isinstance(e, AuthenticationError):
            return ToolResponse.failure(AUTH_FAILED, e.user_message)
        return ToolResponse.failure(FIELD_ERROR, e.message or "Invalid transaction preview parameters")

    result = build_preview_result(validation, doc)
    logger.info(
        "Transaction preview completed",
        extra={
            "context": {
                "doctype": doctype,
                "valid": result.valid,
                "issues_count": len(result.issues or []),
                "warnings_count": len(result.warnings or []),
            }
        },
    )
    return ToolResponse.success(result)


def build_preview_result(validation: Any, doc: dict[str, Any]) -> PreviewResult:
    """Turn a ``validate_doc`` response into a ``PreviewResult``."""
    if not isinstance(validation, dict):
        validation = {}

    issues: list[PreviewIssue] = []
    warnings: list[str] = []

    for entry in validation.get("errors") or []:
        issues.append(_issue(entry, "error"))
    for entry in validation.get("warnings") or []:
        issue = _issue(entry, "warning")
        warnings.append(issue.message)
        issues.append(issue)
    for entry in validation.get("messages") or []:
        severity = entry.get("type") if isinstance(entry, dict) else None
        issues.append(_issue(entry, severity if severity in SEVERITIES else "info"))

    has_errors = any(issue.severity == "error" for issue in issues)
    return PreviewResult(
        valid=not has_errors and validation.get("valid") is not False,
        issues=issues or None,
        warnings=warnings or None,
        estimated_impact=estimate_impact(doc),
    )


def estimate_impact(doc: dict[str, Any]) -> EstimatedImpact | None:
    impact: dict[str, Any] = {}
    if doc.get("name"):
        impact["documents_affected"] = 1
    for field in FINANCIAL_FIELDS:
        if doc.get(field):
            impact["financial_impact"] = doc[field]
            break
    if doc.get("workflow_state"):
        impact["workflow_changes"] = [str(doc["workflow_state"])]
    return EstimatedImpact(**impact) if impact else None


def _issue(entry: Any, severity: str) -> PreviewIssue:
    if not isinstance(entry, dict):
        return PreviewIssue(message=str(entry), severity=severity)
    return PreviewIssue(
        field=entry.get("field") or entry.get("fieldname"),
        message=str(entry.get("message") or entry.get("msg") or entry),
        severity=severity,
    )
