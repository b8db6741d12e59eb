"""
Task repository.

Tasks are ordered inside lanes: the set of tasks sharing one
(project_id, status) pair. Moving a task to another lane takes the
caller's position for the destination as-is.

Every status a task enters is appended to the transition log in the same
transaction as the write itself. Writes return a TaskChange that also
describes the event to dispatch; this module does no notification I/O.
"""
import logging
from typing import List, Optional

from .errors import NotFound
from .events import TaskEvent
from .mappers import encode_tags, row_to_task
from .schema import ACTIVE_STATUS, UNSET, Task, TaskChange
from .store import Store, UpdateBuilder
from .transitions import TransitionRecorder
from .validation import CreateTaskRequest, MoveTaskRequest, TaskPatch, check_id

logger = logging.getLogger(__name__)

_INSERT_COLUMNS = (
    "project_id", "title", "description", "status", "due_date", "priority", "tags", "position",
    "estimated_minutes", "estimated_start_date", "estimated_end_date",
    "actual_start_date", "actual_end_date", "actual_minutes",
)


class TaskRepository:
    """CRUD and lane positioning for tasks, with status tracking."""

    def __init__(self, store: Store, recorder: Optional[TransitionRecorder] = None):
        self.store = store
        self.recorder = recorder or TransitionRecorder(store)

    def list_by_project(self, project_id: int) -> List[Task]:
        """Tasks of a project by status, then position; id breaks position ties."""
        project_id = check_id(project_id, "project_id")
        rows = self.store.fetch_all(
            "SELECT * FROM tasks WHERE project_id = ? ORDER BY status ASC, position ASC, id ASC",
            (project_id,),
        )
        return [row_to_task(row) for row in rows]

    def get(self, task_id: int) -> Task:
        task_id = check_id(task_id)
        row = self.store.fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))
        if row is None:
            raise NotFound("Task", task_id)
        return row_to_task(row)

    def next_position(self, project_id: int, status: str):
        """One past the last position in the lane; 1 for an empty lane."""
        row = self.store.fetch_one(
            "SELECT MAX(position) AS max_position FROM tasks WHERE project_id = ? AND status = ?",
            (project_id, status),
        )
        max_position = row["max_position"] if row else None
        position = (max_position if max_position is not None else 0) + 1
        if isinstance(position, float) and position.is_integer():
            position = int(position)
        return position

    def create(self, request: CreateTaskRequest) -> TaskChange:
        """
        Insert a task and record its initial status.

        The transition (None → status) is always recorded. An event is
        described only when the task is created directly into the active
        status.
        """
        with self.store.transaction():
            position = request.position
            if position is None:
                position = self.next_position(request.project_id, request.status)

            values = {name: getattr(request, name) for name in _INSERT_COLUMNS}
            values["position"] = position
            values["tags"] = encode_tags(request.tags)

            placeholders = ", ".join("?" for _ in _INSERT_COLUMNS)
            row = self.store.fetch_one(
                f"INSERT INTO tasks ({', '.join(_INSERT_COLUMNS)}) VALUES ({placeholders}) RETURNING *",
                tuple(values[name] for name in _INSERT_COLUMNS),
            )
            task = row_to_task(row)
            transition = self.recorder.record(task.id, None, task.status)

        event = None
        if task.status == ACTIVE_STATUS:
            event = TaskEvent.for_status(task.id, task.status)

        logger.info(f"Created task {task.id} in project {task.project_id} [{task.status}]")
        return TaskChange(task=task, transition=transition, event=event)

    def update(self, task_id: int, patch: TaskPatch) -> TaskChange:
        """
        Apply the fields present in patch.

        An empty patch returns the stored task untouched. When status is
        present and differs from the stored one, the transition
        (old → new) is recorded and an event carrying old_status and
        due_date is described.

        Raises:
            NotFound when no task has this id.
        """
        task_id = check_id(task_id)
        with self.store.transaction():
            old_row = self.store.fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))
            if old_row is None:
                raise NotFound("Task", task_id)
            if patch.is_empty():
                return TaskChange(task=row_to_task(old_row))

            old_status = old_row["status"]
            builder = UpdateBuilder("tasks")
            for column, value in patch.present().items():
                if column == "tags":
                    value = encode_tags(value)
                builder.set(column, value)

            row = builder.execute(self.store, task_id)
            if row is None:
                raise NotFound("Task", task_id)
            task = row_to_task(row)

            transition = None
            event = None
            if patch.status is not UNSET and patch.status != old_status:
                transition = self.recorder.record(task.id, old_status, task.status)
                event = TaskEvent.for_status(
                    task.id,
                    task.status,
                    {"old_status": old_status, "due_date": task.due_date},
                )

        if transition:
            logger.info(f"Task {task.id}: {old_status} → {task.status}")
        return TaskChange(task=task, transition=transition, event=event)

    def move(self, request: MoveTaskRequest) -> TaskChange:
        """Put a task into another lane: project, status and position in one update."""
        return self.update(request.id, request.to_patch())

    def delete(self, task_id: int) -> None:
        """Physically remove a task; its transitions go with it."""
        task_id = check_id(task_id)
        cursor = self.store.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        if cursor.rowcount == 0:
            raise NotFound("Task", task_id)
        logger.info(f"Deleted task {task_id}")
