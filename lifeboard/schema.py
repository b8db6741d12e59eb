"""
Project/task schema.

Task lifecycle:
  Created into a lane (project, status) → moved between lanes → deleted

Status is free-form text; every change is appended to the task_states log.
"""
from dataclasses import dataclass
from typing import Optional, List, Dict, Any


DEFAULT_STATUS = "To-Do"
ACTIVE_STATUS = "In Progress"      # entering this status raises task_started
COMPLETED_STATUS = "Completed"


class _Unset:
    """Marker for a field that is absent from a partial payload."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


@dataclass
class Project:
    """A named container of tasks, ordered by position."""

    id: int
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    position: int = 0
    archived_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def archived(self) -> bool:
        return self.archived_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
            "position": self.position,
            "archived_at": self.archived_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class Task:
    """A task positioned inside its (project_id, status) lane."""

    # Identifiers
    id: int
    project_id: int

    # Content
    title: str
    description: Optional[str] = None

    # Lane
    status: str = DEFAULT_STATUS
    position: float = 0

    # Priority & scheduling
    due_date: Optional[str] = None
    priority: Optional[str] = None
    tags: Optional[List[str]] = None

    # Time tracking (carried through as stored)
    estimated_minutes: Optional[int] = None
    estimated_start_date: Optional[str] = None
    estimated_end_date: Optional[str] = None
    actual_start_date: Optional[str] = None
    actual_end_date: Optional[str] = None
    actual_minutes: Optional[int] = None

    # Metadata
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "position": self.position,
            "due_date": self.due_date,
            "priority": self.priority,
            "tags": list(self.tags) if self.tags is not None else None,
            "estimated_minutes": self.estimated_minutes,
            "estimated_start_date": self.estimated_start_date,
            "estimated_end_date": self.estimated_end_date,
            "actual_start_date": self.actual_start_date,
            "actual_end_date": self.actual_end_date,
            "actual_minutes": self.actual_minutes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class StatusTransition:
    """One row of the task_states log. from_status is None on creation."""
    id: int
    task_id: int
    from_status: Optional[str]
    to_status: str
    ts: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "ts": self.ts,
        }


@dataclass
class TaskChange:
    """What a task write did: the committed task plus its side effects.

    transition is the log row appended by the write (if any); event is the
    TaskEvent the caller should dispatch (if any).
    """
    task: Task
    transition: Optional[StatusTransition] = None
    event: Optional[Any] = None
