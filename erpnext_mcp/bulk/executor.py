"""Sequential bulk executor with compensating rollback.

Operations are dispatched strictly one at a time, in input order. Successful
creates register a compensating delete; when a later operation fails and
rollback is requested, the compensations are replayed last-in first-out.
ERPNext offers no multi-document transactions, so rollback is best effort.
"""

import logging
from typing import Any

from ..gateway import DocumentGateway
from ..metrics_config import record_bulk_operation
from ..metrics_config import record_bulk_rollback
from .models import BulkOperation
from .models import CancelOperation
from .models import CreateOperation
from .models import DeleteOperation
from .models import ExecutionOutcome
from .models import OperationResult
from .models import SubmitOperation
from .models import UpdateOperation
from .outcome import aggregate_outcome
from .registry import CompensationRegistry

logger = logging.getLogger(__name__)


class BulkExecutor:
    """Runs validated bulk operations against a document gateway."""

    def __init__(self, gateway: DocumentGateway):
        self._gateway = gateway

    async def run(
        self,
        operations: list[BulkOperation],
        rollback_on_error: bool = True,
    ) -> ExecutionOutcome:
        """Execute a batch of operations sequentially.

        Args:
            operations: Validated operations, dispatched in list order
            rollback_on_error: If True, stop at the first failure and undo
                completed creates; if False, keep going after failures

        Returns:
            ExecutionOutcome: Per-operation results and summary counters
        """
        registry = CompensationRegistry()
        results: list[OperationResult] = []
        rolled_back = False

        for index, operation in enumerate(operations):
            try:
                data = await self._dispatch(operation)
            except Exception as e:
                results.append(OperationResult(operation_index=index, success=False, error=_error_text(e)))
                record_bulk_operation(operation.type, success=False)
                logger.error(
                    "Bulk operation failed",
                    extra={
                        "context": {
                            "operation_index": index,
                            "operation_type": operation.type,
                            "doctype": operation.doctype,
                            "error": str(e),
                        }
                    },
                )
                if rollback_on_error:
                    if registry:
                        await self._replay_compensations(registry, failed_index=index)
                    rolled_back = True
                    break
                continue

            results.append(OperationResult(operation_index=index, success=True, data=data))
            record_bulk_operation(operation.type, success=True)
            if isinstance(operation, CreateOperation):
                self._record_compensation(registry, index, operation, data)

        return aggregate_outcome(results, rolled_back)

    async def _dispatch(self, operation: BulkOperation) -> dict[str, Any]:
        if isinstance(operation, CreateOperation):
            return await self._gateway.create(operation.doctype, operation.doc)
        if isinstance(operation, UpdateOperation):
            return await self._gateway.update(operation.doctype, operation.name, operation.patch)
        if isinstance(operation, DeleteOperation):
            return await self._gateway.delete(operation.doctype, operation.name)
        if isinstance(operation, SubmitOperation):
            return await self._gateway.submit(operation.doctype, operation.name)
        if isinstance(operation, CancelOperation):
            return await self._gateway.cancel(operation.doctype, operation.name)
        raise TypeError(f"Unsupported operation: {operation!r}")

    def _record_compensation(
        self,
        registry: CompensationRegistry,
        index: int,
        operation: CreateOperation,
        data: dict[str, Any],
    ) -> None:
        name = data.get("name") if isinstance(data, dict) else None
        if not name:
            logger.warning(
                "Create at index %d returned no document name; it cannot be rolled back", index
            )
            return
        registry.record_create(index, operation.doctype, str(name))

    async def _replay_compensations(self, registry: CompensationRegistry, failed_index: int) -> int:
        """Undo recorded mutations in reverse order.

        A failing compensation is logged and skipped; the remaining ones are
        still attempted.

        Returns:
            int: Number of compensations that succeeded
        """
        logger.info(
            "Starting rollback due to failed operation",
            extra={"context": {"operation_index": failed_index, "executed_operations": len(registry)}},
        )
        succeeded = 0
        for action in registry.in_replay_order():
            try:
                await self._gateway.delete(action.doctype, action.name)
            except Exception as e:
                logger.error(
                    "Rollback operation failed",
                    extra={
                        "context": {
                            "rollback_index": action.index,
                            "rollback_type": action.type,
                            "doctype": action.doctype,
                            "name": action.name,
                            "error": str(e),
                        }
                    },
                )
                continue
            succeeded += 1

        record_bulk_rollback(succeeded)
        logger.info("Rollback finished: %d of %d compensations applied", succeeded, len(registry))
        return succeeded


def _error_text(error: Exception) -> str:
    return str(error) or error.__class__.__name__
