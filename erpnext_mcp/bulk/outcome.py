"""Aggregation of per-operation results into the run outcome."""

from .models import ExecutionOutcome
from .models import OperationResult


def aggregate_outcome(results: list[OperationResult], rolled_back: bool) -> ExecutionOutcome:
    """Build the terminal outcome, keeping results in request order."""
    completed = sum(1 for result in results if result.success)
    return ExecutionOutcome(
        results=sorted(results, key=lambda result: result.operation_index),
        rolled_back=rolled_back,
        completed_operations=completed,
        failed_operations=len(results) - completed,
    )
