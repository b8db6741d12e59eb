"""
Append-only log of task status changes (task_states table).

Rows are only ever inserted here. Store errors are not caught: a lost
transition would leave the history incomplete, so the triggering write
must fail with it.
"""
from typing import List, Optional

from .mappers import row_to_transition
from .schema import StatusTransition
from .store import Store


class TransitionRecorder:
    """Records and reads task status transitions."""

    def __init__(self, store: Store):
        self.store = store

    def record(self, task_id: int, from_status: Optional[str], to_status: str) -> StatusTransition:
        row = self.store.fetch_one(
            "INSERT INTO task_states (task_id, from_status, to_status) VALUES (?, ?, ?) RETURNING *",
            (task_id, from_status, to_status),
        )
        return row_to_transition(row)

    def history(self, task_id: int) -> List[StatusTransition]:
        """All transitions of a task, oldest first."""
        rows = self.store.fetch_all(
            "SELECT * FROM task_states WHERE task_id = ? ORDER BY id ASC",
            (task_id,),
        )
        return [row_to_transition(row) for row in rows]

    def count(self, task_id: Optional[int] = None) -> int:
        if task_id is None:
            row = self.store.fetch_one("SELECT COUNT(*) AS n FROM task_states")
        else:
            row = self.store.fetch_one("SELECT COUNT(*) AS n FROM task_states WHERE task_id = ?", (task_id,))
        return row["n"]
