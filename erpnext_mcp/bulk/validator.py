"""Request validation for bulk operations.

Validation is fail-fast and all-or-nothing: the first problem found rejects
the whole batch before any call reaches ERPNext.
"""

from collections.abc import Sequence
from typing import Any

from pydantic import TypeAdapter

from ..exceptions import ValidationError
from .models import MAX_BULK_OPERATIONS
from .models import OPERATION_TYPES
from .models import BulkOperation

_NAMED_TYPES = ("update", "delete", "submit", "cancel")

_operation_adapter = TypeAdapter(BulkOperation)


def validate_operations(
    operations: Any, max_operations: int = MAX_BULK_OPERATIONS
) -> list[BulkOperation]:
    """Validate a raw batch and return it as typed operations.

    Args:
        operations: Raw operations as received from the tool call. Already-typed
            operation models are accepted as well.
        max_operations: Upper bound on the batch size; never above
            ``MAX_BULK_OPERATIONS``.

    Returns:
        The operations converted to their tagged-union models, in input order.

    Raises:
        ValidationError: describing the first problem found.
    """
    if not isinstance(operations, Sequence) or isinstance(operations, (str, bytes)) or not operations:
        raise ValidationError("Operations array is required and cannot be empty", field="operations")

    max_operations = min(max_operations, MAX_BULK_OPERATIONS)
    if len(operations) > max_operations:
        raise ValidationError(
            f"Maximum {max_operations} operations allowed per bulk request",
            field="operations",
            details={"count": len(operations)},
        )

    validated = []
    for index, raw in enumerate(operations):
        if hasattr(raw, "model_dump"):
            raw = raw.model_dump()
        validated.append(_validate_operation(index, raw))
    return validated


def _validate_operation(index: int, raw: Any) -> BulkOperation:
    if not isinstance(raw, dict):
        raise ValidationError(f"Operation at index {index} must be an object", details={"index": index})

    op_type = raw.get("type")
    if op_type not in OPERATION_TYPES:
        raise ValidationError(
            f"Invalid operation type '{op_type}' at index {index}. "
            f"Valid types: {', '.join(OPERATION_TYPES)}",
            field="type",
            details={"index": index},
        )

    doctype = raw.get("doctype")
    if not isinstance(doctype, str) or not doctype.strip():
        raise ValidationError(
            f"Doctype is required for operation at index {index}", field="doctype", details={"index": index}
        )

    fields: dict[str, Any] = {"type": op_type, "doctype": doctype}

    if op_type in _NAMED_TYPES:
        name = raw.get("name")
        # autoincrement doctypes use integer names
        if isinstance(name, int) and not isinstance(name, bool):
            name = str(name)
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(
                f"Document name is required for {op_type} operation at index {index}",
                field="name",
                details={"index": index},
            )
        fields["name"] = name

    if op_type == "create":
        doc = raw.get("doc")
        if not isinstance(doc, dict):
            raise ValidationError(
                f"Document data is required for create operation at index {index}",
                field="doc",
                details={"index": index},
            )
        fields["doc"] = doc

    if op_type == "update":
        patch = raw.get("patch")
        if not isinstance(patch, dict) or not patch:
            raise ValidationError(
                f"Patch data is required for update operation at index {index}",
                field="patch",
                details={"index": index},
            )
        fields["patch"] = patch

    return _operation_adapter.validate_python(fields)
