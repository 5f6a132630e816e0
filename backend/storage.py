"""
Sheetflow Core - Table Sessions
Caller-owned step log, replay and bounded undo history for one table
"""

import copy
import logging
from datetime import datetime
from typing import Any, Optional

from config import HISTORY_LIMIT
from models import QualityReport, TransformationStep
from modules import Table, analyze_quality, apply_all, apply_step, detect_column_types

logger = logging.getLogger(__name__)


class HistoryStack:
    """Bounded stack of table snapshots; the oldest snapshot is dropped at capacity."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        self.limit = max(1, limit)
        self._snapshots: list[Table] = []

    def push(self, table: Table) -> None:
        self._snapshots.append(Table(copy.deepcopy(table.rows), list(table.columns)))
        if len(self._snapshots) > self.limit:
            self._snapshots.pop(0)

    def pop(self) -> Optional[Table]:
        if not self._snapshots:
            return None
        return self._snapshots.pop()

    def clear(self) -> None:
        self._snapshots = []

    def __len__(self) -> int:
        return len(self._snapshots)


class TableSession:
    """Original table, ordered step log and the current table derived from them"""

    def __init__(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        steps: Optional[list[TransformationStep]] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.original = Table(copy.deepcopy(rows), list(columns))
        self.steps: list[TransformationStep] = list(steps or [])
        self.history = HistoryStack(history_limit)
        self.created_at = datetime.now()
        self.current = apply_all(self.original.rows, self.original.columns, self.steps)
        self.touch()

    def touch(self):
        """Update last modified time"""
        self.last_modified = datetime.now()

    @property
    def rows(self) -> list[dict[str, Any]]:
        return self.current.rows

    @property
    def columns(self) -> list[str]:
        return self.current.columns

    def add_step(self, step: TransformationStep) -> Table:
        """Append a step and apply it incrementally to the current table."""
        self.steps.append(step)
        self.current = apply_step(self.current.rows, self.current.columns, step)
        self.touch()
        logger.info("Applied step %s: %s", step.kind, step.description)
        return self.current

    def replay(self) -> Table:
        """Rebuild the current table from the original and the full step log."""
        self.current = apply_all(self.original.rows, self.original.columns, self.steps)
        self.touch()
        return self.current

    def remove_step(self, step_id: str) -> Table:
        remaining = [s for s in self.steps if s.id != step_id]
        if len(remaining) == len(self.steps):
            logger.warning("No step with id %s to remove", step_id)
            return self.current
        self.steps = remaining
        return self.replay()

    def undo_last_step(self) -> Table:
        if not self.steps:
            return self.current
        return self.remove_step(self.steps[-1].id)

    def record_edit(self, rows: list[dict[str, Any]], columns: Optional[list[str]] = None) -> Table:
        """Replace the current table after a direct edit, keeping the prior state for undo.

        Direct edits sit outside the step log, so a later replay discards them.
        """
        self.history.push(self.current)
        self.current = Table([dict(row) for row in rows], list(columns if columns is not None else self.current.columns))
        self.touch()
        return self.current

    def undo_edit(self) -> Optional[Table]:
        previous = self.history.pop()
        if previous is None:
            return None
        self.current = previous
        self.touch()
        return self.current

    def quality_report(self) -> QualityReport:
        """Full recomputation over the current table."""
        metadata = detect_column_types(self.current.rows, self.current.columns)
        return analyze_quality(self.current.rows, self.current.columns, metadata)
