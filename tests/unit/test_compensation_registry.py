"""Unit tests for the compensation registry and outcome aggregation."""

from erpnext_mcp.bulk import CompensationRegistry
from erpnext_mcp.bulk import OperationResult
from erpnext_mcp.bulk import aggregate_outcome


class TestCompensationRegistry:
    """Tests for CompensationRegistry."""

    def test_starts_empty(self):
        registry = CompensationRegistry()

        assert len(registry) == 0
        assert not registry
        assert list(registry.in_replay_order()) == []

    def test_record_create_builds_delete_action(self):
        registry = CompensationRegistry()

        action = registry.record_create(3, "Customer", "CUST-0001")

        assert action.index == 3
        assert action.type == "delete"
        assert action.doctype == "Customer"
        assert action.name == "CUST-0001"
        assert registry

    def test_replay_order_is_last_in_first_out(self):
        registry = CompensationRegistry()
        registry.record_create(0, "Customer", "A")
        registry.record_create(1, "Customer", "B")
        registry.record_create(4, "Item", "C")

        assert [action.name for action in registry.in_replay_order()] == ["C", "B", "A"]
        # replaying does not consume the registry
        assert len(registry) == 3


class TestAggregateOutcome:
    """Tests for aggregate_outcome."""

    def test_counts_successes_and_failures(self):
        results = [
            OperationResult(operation_index=0, success=True, data={"name": "A"}),
            OperationResult(operation_index=1, success=False, error="boom"),
            OperationResult(operation_index=2, success=True, data={}),
        ]

        outcome = aggregate_outcome(results, rolled_back=False)

        assert outcome.completed_operations == 2
        assert outcome.failed_operations == 1
        assert outcome.rolled_back is False

    def test_results_ordered_by_index(self):
        results = [
            OperationResult(operation_index=1, success=True),
            OperationResult(operation_index=0, success=False, error="boom"),
        ]

        outcome = aggregate_outcome(results, rolled_back=True)

        assert [r.operation_index for r in outcome.results] == [0, 1]
        assert outcome.rolled_back is True

    def test_empty_results(self):
        outcome = aggregate_outcome([], rolled_back=False)

        assert outcome.results == []
        assert outcome.completed_operations == 0
        assert outcome.failed_operations == 0
