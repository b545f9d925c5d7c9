"""Bulk operation models for ERPNext batch execution.

Operations form a tagged union on ``type``: each kind carries exactly the
fields it needs, so a create without ``doc`` or an update without ``patch``
cannot be constructed.
"""

from typing import Annotated
from typing import Any
from typing import Literal
from typing import Union

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import StringConstraints

OPERATION_TYPES = ("create", "update", "delete", "submit", "cancel")
MAX_BULK_OPERATIONS = 100

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _Operation(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    doctype: NonBlankStr = Field(..., description="ERPNext doctype, e.g. 'Customer'")


class CreateOperation(_Operation):
    """Insert a new document."""

    type: Literal["create"] = "create"
    doc: dict[str, Any] = Field(..., description="Field values of the new document")


class UpdateOperation(_Operation):
    """Patch an existing document by name."""

    type: Literal["update"] = "update"
    name: NonBlankStr
    patch: dict[str, Any] = Field(..., min_length=1, description="Fields to overwrite")


class DeleteOperation(_Operation):
    """Remove a document by name."""

    type: Literal["delete"] = "delete"
    name: NonBlankStr


class SubmitOperation(_Operation):
    """Move a draft document to the submitted state (docstatus 1)."""

    type: Literal["submit"] = "submit"
    name: NonBlankStr


class CancelOperation(_Operation):
    """Move a submitted document to the cancelled state (docstatus 2)."""

    type: Literal["cancel"] = "cancel"
    name: NonBlankStr


BulkOperation = Annotated[
    Union[CreateOperation, UpdateOperation, DeleteOperation, SubmitOperation, CancelOperation],
    Field(discriminator="type"),
]


class RunBulkRequest(BaseModel):
    """A validated, immutable bulk execution request."""

    model_config = ConfigDict(frozen=True)

    operations: list[BulkOperation] = Field(..., min_length=1, max_length=MAX_BULK_OPERATIONS)
    rollback_on_error: bool = True


class OperationResult(BaseModel):
    """Outcome of one operation, keyed by its position in the request."""

    operation_index: int = Field(..., ge=0)
    success: bool
    data: Any | None = None
    error: str | None = None


class CompensatingAction(BaseModel):
    """How to undo one completed mutation."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., description="Index of the operation this action undoes")
    type: Literal["delete"] = "delete"
    doctype: str
    name: str


class ExecutionOutcome(BaseModel):
    """Terminal result of one bulk run."""

    results: list[OperationResult] = Field(default_factory=list)
    rolled_back: bool = False
    completed_operations: int = 0
    failed_operations: int = 0


# === Transaction Preview Models ===


class PreviewIssue(BaseModel):
    """A single problem reported by ERPNext validation."""

    field: str | None = None
    message: str
    severity: Literal["error", "warning", "info"] = "info"


class EstimatedImpact(BaseModel):
    documents_affected: int | None = None
    financial_impact: float | str | None = None
    workflow_changes: list[str] | None = None


class PreviewResult(BaseModel):
    """Outcome of a dry-run validation of one document."""

    valid: bool
    issues: list[PreviewIssue] | None = None
    warnings: list[str] | None = None
    estimated_impact: EstimatedImpact | None = None
