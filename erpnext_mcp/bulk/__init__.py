"""Bulk operation execution for ERPNext documents.

Key Components:
- validate_operations: Fail-fast validation of a raw batch
- BulkExecutor: Sequential dispatch with compensating rollback
- CompensationRegistry: LIFO record of undo actions for one run
- run_bulk / preview_transaction: The inbound operations behind the tools
"""

from .executor import BulkExecutor
from .models import BulkOperation
from .models import CancelOperation
from .models import CompensatingAction
from .models import CreateOperation
from .models import DeleteOperation
from .models import ExecutionOutcome
from .models import OperationResult
from .models import PreviewResult
from .models import RunBulkRequest
from .models import SubmitOperation
from .models import UpdateOperation
from .outcome import aggregate_outcome
from .preview import preview_transaction
from .registry import CompensationRegistry
from .service import run_bulk
from .validator import validate_operations

__all__ = [
    # Models
    "BulkOperation",
    "CreateOperation",
    "UpdateOperation",
    "DeleteOperation",
    "SubmitOperation",
    "CancelOperation",
    "RunBulkRequest",
    "OperationResult",
    "CompensatingAction",
    "ExecutionOutcome",
    "PreviewResult",
    # Core Components
    "BulkExecutor",
    "CompensationRegistry",
    "aggregate_outcome",
    "validate_operations",
    # Operations
    "run_bulk",
    "preview_transaction",
]
