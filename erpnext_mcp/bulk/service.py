"""Inbound bulk operation: auth check, validation, execution.

This is the request-level tier of error handling. Anything rejected here
produces a single top-level error and no call reaches ERPNext.
"""

import logging
from typing import Any

from ..error_handler import AUTH_FAILED
from ..error_handler import NOT_AUTHENTICATED_MESSAGE
from ..error_handler import to_tool_error
from ..exceptions import ValidationError
from ..gateway import DocumentGateway
from ..gateway import ERPNextGateway
from ..gateway import RetryPolicy
from ..models import ToolResponse
from ..session import ERPNextSession
from .executor import BulkExecutor
from .models import MAX_BULK_OPERATIONS
from .models import RunBulkRequest
from .validator import validate_operations

logger = logging.getLogger(__name__)


async def run_bulk(
    session: ERPNextSession | None,
    operations: Any,
    rollback_on_error: bool = True,
    *,
    gateway: DocumentGateway | None = None,
    retry_policy: RetryPolicy | None = None,
    max_operations: int = MAX_BULK_OPERATIONS,
) -> ToolResponse:
    """Validate and execute a bulk request for an authenticated session.

    Args:
        session: The caller's session; ``None`` or a closed session yields
            ``AUTH_FAILED`` before validation runs.
        operations: Raw operations from the tool call.
        rollback_on_error: Stop and compensate on the first failure.
        gateway: Gateway override; defaults to an ``ERPNextGateway`` bound
            to ``session``.
        retry_policy: Bounded per-call retry for the default gateway.
        max_operations: Batch size limit.

    Returns:
        ToolResponse: ``data`` is the ``ExecutionOutcome`` on success.
    """
    if session is None or not session.is_authenticated:
        return ToolResponse.failure(AUTH_FAILED, NOT_AUTHENTICATED_MESSAGE)

    try:
        validated = validate_operations(operations, max_operations=max_operations)
    except ValidationError as e:
        logger.warning("Bulk request rejected: %s", e.message, extra={"context": e.details})
        return ToolResponse(ok=False, error=to_tool_error(e))

    logger.info(
        "Running bulk operations",
        extra={
            "context": {
                "operations_count": len(validated),
                "rollback_on_error": rollback_on_error,
                "operation_types": [op.type for op in validated],
            }
        },
    )

    request = RunBulkRequest(operations=validated, rollback_on_error=rollback_on_error)
    executor = BulkExecutor(gateway or ERPNextGateway(session, retry_policy))
    outcome = await executor.run(request.operations, rollback_on_error=request.rollback_on_error)

    logger.info(
        "Bulk operations completed",
        extra={
            "context": {
                "total_operations": len(validated),
                "completed_operations": outcome.completed_operations,
                "failed_operations": outcome.failed_operations,
                "rolled_back": outcome.rolled_back,
            }
        },
    )
    return ToolResponse.success(outcome)
