"""Compensation registry for bulk runs.

Each run owns one registry. Actions are appended as mutations succeed and are
handed back in reverse order when the run has to be rolled back.
"""

from collections.abc import Iterator

from .models import CompensatingAction


class CompensationRegistry:
    """Append-only, in-memory list of undo actions for a single run."""

    def __init__(self):
        self._actions: list[CompensatingAction] = []

    def record_create(self, index: int, doctype: str, name: str) -> CompensatingAction:
        """Register the deletion that undoes a successful create."""
        action = CompensatingAction(index=index, type="delete", doctype=doctype, name=name)
        self._actions.append(action)
        return action

    def in_replay_order(self) -> Iterator[CompensatingAction]:
        """Yield recorded actions last-in first-out."""
        return reversed(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __bool__(self) -> bool:
        return bool(self._actions)
