"""
History - bounded snapshot-based undo/redo.

The history system works via snapshots:
- A snapshot of the whole store is pushed *before* each destructive command
- Undo restores the previous snapshot, moving the current state to redo
- Redo re-applies a snapshot from the redo stack
- Recording a new action clears the redo stack (the old branch is gone)
"""

import logging
from typing import Optional

from .store import ChartSnapshot

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50


class History:
    """Linear undo/redo stacks with a maximum depth."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self._past: list[ChartSnapshot] = []    # Past states (for undo)
        self._future: list[ChartSnapshot] = []  # Future states (for redo)
        self._max_history = max_history

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def can_undo(self) -> bool:
        """Check if undo is available."""
        return len(self._past) > 0

    @property
    def can_redo(self) -> bool:
        """Check if redo is available."""
        return len(self._future) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._past)

    @property
    def redo_depth(self) -> int:
        return len(self._future)

    def record(self, snapshot: ChartSnapshot) -> None:
        """Save a pre-mutation snapshot and start a new timeline branch."""
        self._future.clear()
        self._past.append(snapshot)
        if len(self._past) > self._max_history:
            self._past.pop(0)
            logger.debug("History full, dropped oldest snapshot")

    def undo(self, current: ChartSnapshot) -> Optional[ChartSnapshot]:
        """Pop the previous snapshot, parking ``current`` for redo."""
        if not self._past:
            return None
        self._future.append(current)
        return self._past.pop()

    def redo(self, current: ChartSnapshot) -> Optional[ChartSnapshot]:
        """Pop the next snapshot, parking ``current`` for undo."""
        if not self._future:
            return None
        self._past.append(current)
        if len(self._past) > self._max_history:
            self._past.pop(0)
        return self._future.pop()

    def discard_redo(self) -> None:
        """Forget redo states (used after rolling back a failed import)."""
        self._future.clear()

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()
