"""Row → entity conversion. Reads never fail on absent or malformed optional data."""
import json
import logging
from typing import Any, List, Mapping, Optional

from .schema import DEFAULT_STATUS, Project, StatusTransition, Task

logger = logging.getLogger(__name__)


def parse_tags(raw: Any) -> Optional[List[str]]:
    """Decode the JSON tags column; None when absent or unreadable."""
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError) as e:
        logger.warning(f"Failed to parse task tags {raw!r}: {e}")
        return None
    if not isinstance(parsed, list):
        logger.warning(f"Task tags are not a list: {raw!r}")
        return None
    return [str(value) for value in parsed]


def encode_tags(tags: Optional[List[str]]) -> Optional[str]:
    if tags is None:
        return None
    return json.dumps(list(tags))


def row_to_project(row: Mapping[str, Any]) -> Project:
    """Convert a projects row to a Project."""
    data = dict(row)
    return Project(
        id=data["id"],
        name=data.get("name", ""),
        color=data.get("color"),
        icon=data.get("icon"),
        position=data.get("position") or 0,
        archived_at=data.get("archived_at"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


def row_to_task(row: Mapping[str, Any]) -> Task:
    """Convert a tasks row to a Task."""
    data = dict(row)
    position = data.get("position") or 0
    # REAL column: hand back whole numbers as int
    if isinstance(position, float) and position.is_integer():
        position = int(position)
    return Task(
        id=data["id"],
        project_id=data["project_id"],
        title=data.get("title", ""),
        description=data.get("description"),
        status=data.get("status") or DEFAULT_STATUS,
        position=position,
        due_date=data.get("due_date"),
        priority=data.get("priority"),
        tags=parse_tags(data.get("tags")),
        estimated_minutes=data.get("estimated_minutes"),
        estimated_start_date=data.get("estimated_start_date"),
        estimated_end_date=data.get("estimated_end_date"),
        actual_start_date=data.get("actual_start_date"),
        actual_end_date=data.get("actual_end_date"),
        actual_minutes=data.get("actual_minutes"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


def row_to_transition(row: Mapping[str, Any]) -> StatusTransition:
    data = dict(row)
    return StatusTransition(
        id=data["id"],
        task_id=data["task_id"],
        from_status=data.get("from_status"),
        to_status=data["to_status"],
        ts=data.get("ts"),
    )
