"""
Board service: the boundary exposed to IPC/API callers.

Takes raw payload dicts, turns them into validated request structs, runs
the repository operation and then dispatches whatever event the write
produced. Dispatch happens after the write is committed and cannot fail
the call.
"""
import logging
from typing import Any, Dict, List, Optional

from .config import Config
from .events import EventEmitter, EventLog, WebhookNotifier
from .projects import ProjectRepository
from .schema import Project, StatusTransition, Task, TaskChange
from .store import Store, open_store
from .tasks import TaskRepository
from .transitions import TransitionRecorder
from .validation import (
    CreateProjectRequest,
    CreateTaskRequest,
    MoveTaskRequest,
    ProjectPatch,
    TaskPatch,
    check_id,
    parse_reorder,
)

logger = logging.getLogger(__name__)


class BoardService:
    """Projects and tasks for one local store."""

    def __init__(self, store: Store, emitter: Optional[EventEmitter] = None):
        self.store = store
        self.emitter = emitter or EventEmitter()
        self.recorder = TransitionRecorder(store)
        self.projects = ProjectRepository(store)
        self.tasks = TaskRepository(store, self.recorder)

    # ── Projects ──

    def list_projects(self, include_archived: bool = False) -> List[Project]:
        return self.projects.list(include_archived=include_archived)

    def get_project(self, project_id: int) -> Project:
        return self.projects.get(project_id)

    def create_project(self, payload: Dict[str, Any]) -> Project:
        return self.projects.create(CreateProjectRequest.from_dict(payload))

    def update_project(self, project_id: int, payload: Dict[str, Any]) -> Project:
        return self.projects.update(check_id(project_id), ProjectPatch.from_dict(payload))

    def archive_project(self, project_id: int) -> Project:
        return self.projects.archive(project_id)

    def reorder_projects(self, order: List[Dict[str, Any]]) -> None:
        self.projects.reorder(parse_reorder(order))

    def delete_project(self, project_id: int) -> None:
        self.projects.delete(project_id)

    # ── Tasks ──

    def list_tasks_by_project(self, project_id: int) -> List[Task]:
        return self.tasks.list_by_project(project_id)

    def get_task(self, task_id: int) -> Task:
        return self.tasks.get(task_id)

    def create_task(self, payload: Dict[str, Any]) -> Task:
        change = self.tasks.create(CreateTaskRequest.from_dict(payload))
        return self._dispatch(change)

    def update_task(self, task_id: int, payload: Dict[str, Any]) -> Task:
        change = self.tasks.update(check_id(task_id), TaskPatch.from_dict(payload))
        return self._dispatch(change)

    def move_task(self, payload: Dict[str, Any]) -> Task:
        change = self.tasks.move(MoveTaskRequest.from_dict(payload))
        return self._dispatch(change)

    def delete_task(self, task_id: int) -> None:
        self.tasks.delete(task_id)

    def task_history(self, task_id: int) -> List[StatusTransition]:
        """Status transitions of an existing task, oldest first."""
        task = self.tasks.get(task_id)
        return self.recorder.history(task.id)

    def _dispatch(self, change: TaskChange) -> Task:
        if change.event is not None:
            self.emitter.emit(change.event)
        return change.task


def build_service(config: Config) -> BoardService:
    """Composition root: open the store and wire the configured event sinks."""
    store = open_store(config.db_path)
    emitter = EventEmitter()
    if config.event_log:
        emitter.subscribe(EventLog(store))
    if config.webhook_url:
        emitter.subscribe(WebhookNotifier(config.webhook_url, timeout=config.webhook_timeout))
    logger.info(
        f"Lifeboard store at {config.db_path} "
        f"(event_log={config.event_log}, webhook={config.webhook_url or 'off'})"
    )
    return BoardService(store, emitter)
