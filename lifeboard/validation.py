"""
Input validation for project and task requests.

Every constraint lives in one table per entity (PROJECT_FIELDS, TASK_FIELDS).
Request structs check themselves against those tables on construction, so a
struct that exists is a struct that passed validation. Rules support:
    - type: string, integer, number, datetime, string_list
    - nullable (explicit None accepted; clears the column on update)
    - min_length / max_length for strings, item_max_length for string lists
    - min / max bounds for numbers
    - strip (trim surrounding whitespace before the length check)
"""
import math
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .errors import ValidationError
from .schema import DEFAULT_STATUS, UNSET


# SQLite INTEGER is a signed 64-bit value
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1

ID_RULE = {"type": "integer", "min": 1}

PROJECT_FIELDS: Dict[str, Dict[str, Any]] = {
    "name": {"type": "string", "min_length": 1, "max_length": 120, "strip": True},
    "color": {"type": "string", "max_length": 20, "nullable": True},
    "icon": {"type": "string", "max_length": 30, "nullable": True},
    "position": {"type": "integer", "min": 0},
    "archived_at": {"type": "datetime", "nullable": True},
}

TASK_FIELDS: Dict[str, Dict[str, Any]] = {
    "project_id": {"type": "integer", "min": 1},
    "title": {"type": "string", "min_length": 1, "max_length": 200, "strip": True},
    "description": {"type": "string", "max_length": 4000, "nullable": True},
    "status": {"type": "string", "min_length": 1, "max_length": 50},
    "due_date": {"type": "datetime", "nullable": True},
    "priority": {"type": "string", "max_length": 50, "nullable": True},
    "tags": {"type": "string_list", "item_max_length": 30, "nullable": True},
    "position": {"type": "number"},
    "estimated_minutes": {"type": "integer", "min": 0, "nullable": True},
    "estimated_start_date": {"type": "datetime", "nullable": True},
    "estimated_end_date": {"type": "datetime", "nullable": True},
    "actual_start_date": {"type": "datetime", "nullable": True},
    "actual_end_date": {"type": "datetime", "nullable": True},
    "actual_minutes": {"type": "integer", "min": 0, "nullable": True},
}


def _with_nullable(table: Dict[str, Dict[str, Any]], *names: str) -> Dict[str, Dict[str, Any]]:
    """Copy of table where the named fields also accept None."""
    result = dict(table)
    for name in names:
        result[name] = {**table[name], "nullable": True}
    return result


# On create, None means "not supplied" (position None = append to lane).
_CREATE_TASK_FIELDS = _with_nullable(TASK_FIELDS, "position")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_bounds(name: str, value: Union[int, float], rule: Dict[str, Any]) -> None:
    min_val = rule.get("min")
    max_val = rule.get("max")
    if min_val is not None and value < min_val:
        raise ValidationError(name, f"must be >= {min_val}, got: {value}")
    if max_val is not None and value > max_val:
        raise ValidationError(name, f"must be <= {max_val}, got: {value}")


def check_field(name: str, value: Any, rule: Dict[str, Any]) -> Any:
    """
    Validate one value against its rule.

    Returns:
        The normalized value (stripped strings, ISO datetime text, list tags).

    Raises:
        ValidationError naming the field on the first violated constraint.
    """
    if value is None:
        if rule.get("nullable"):
            return None
        raise ValidationError(name, "must not be null")

    field_type = rule.get("type", "string")

    # ── Type: string ──
    if field_type == "string":
        if not isinstance(value, str):
            raise ValidationError(name, f"must be a string, got: {type(value).__name__}")
        if rule.get("strip"):
            value = value.strip()
        min_len = rule.get("min_length")
        max_len = rule.get("max_length")
        if min_len is not None and len(value) < min_len:
            if min_len == 1:
                raise ValidationError(name, "must not be empty")
            raise ValidationError(name, f"must be at least {min_len} characters")
        if max_len is not None and len(value) > max_len:
            raise ValidationError(name, f"must be at most {max_len} characters, got: {len(value)}")
        return value

    # ── Type: integer ──
    if field_type == "integer":
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(name, f"must be an integer, got: {value!r}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValidationError(name, "must fit in a 64-bit integer")
        _check_bounds(name, value, rule)
        return value

    # ── Type: number ──
    if field_type == "number":
        if not _is_number(value):
            raise ValidationError(name, f"must be a finite number, got: {value!r}")
        # ints beyond the 64-bit range are stored as REAL
        if isinstance(value, int) and not INT64_MIN <= value <= INT64_MAX:
            try:
                value = float(value)
            except OverflowError:
                raise ValidationError(name, "must be a finite number")
        if not math.isfinite(value):
            raise ValidationError(name, f"must be a finite number, got: {value!r}")
        _check_bounds(name, value, rule)
        return value

    # ── Type: datetime (ISO-8601 text) ──
    if field_type == "datetime":
        if isinstance(value, datetime):
            return value.isoformat()
        if not isinstance(value, str):
            raise ValidationError(name, f"must be an ISO-8601 timestamp, got: {value!r}")
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(name, f"must be an ISO-8601 timestamp, got: '{value}'")
        return value

    # ── Type: list of strings ──
    if field_type == "string_list":
        if not isinstance(value, (list, tuple)):
            raise ValidationError(name, "must be a list of strings")
        max_len = rule.get("item_max_length")
        items = []
        for index, item in enumerate(value):
            if not isinstance(item, str):
                raise ValidationError(f"{name}[{index}]", "must be a string")
            if max_len is not None and len(item) > max_len:
                raise ValidationError(f"{name}[{index}]", f"must be at most {max_len} characters")
            items.append(item)
        return items

    raise ValidationError(name, f"unknown field type in rule: {field_type}")


def check_id(value: Any, name: str = "id") -> int:
    return check_field(name, value, ID_RULE)


def _check_struct(obj: Any, rules: Dict[str, Dict[str, Any]]) -> None:
    """Validate and normalize every present field of a request struct in place."""
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is UNSET:
            continue
        rule = rules.get(f.name, ID_RULE if f.name == "id" else None)
        if rule is None:
            raise ValidationError(f.name, "no validation rule defined")
        object.__setattr__(obj, f.name, check_field(f.name, value, rule))


def _payload_kwargs(cls, data: Any, required=(), missing=None) -> Dict[str, Any]:
    """Map a raw payload dict onto struct kwargs; reject unknown keys."""
    if not isinstance(data, dict):
        raise ValidationError("payload", "must be an object")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValidationError(sorted(unknown)[0], f"unknown field (allowed: {', '.join(sorted(known))})")
    for name in required:
        if name not in data:
            raise ValidationError(name, "is required")
    kwargs = dict(data)
    if missing is not None:
        for name in known - set(data):
            kwargs[name] = missing
    return kwargs


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Project requests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class CreateProjectRequest:
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None

    def __post_init__(self):
        _check_struct(self, PROJECT_FIELDS)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateProjectRequest":
        return cls(**_payload_kwargs(cls, data, required=("name",)))


@dataclass
class ProjectPatch:
    """Partial project update. UNSET = leave alone, None = clear (nullable only)."""
    name: Any = UNSET
    color: Any = UNSET
    icon: Any = UNSET
    position: Any = UNSET
    archived_at: Any = UNSET

    def __post_init__(self):
        _check_struct(self, PROJECT_FIELDS)

    def present(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    def is_empty(self) -> bool:
        return not self.present()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectPatch":
        return cls(**_payload_kwargs(cls, data))


@dataclass
class ReorderItem:
    id: int
    position: int

    def __post_init__(self):
        _check_struct(self, {"id": ID_RULE, "position": PROJECT_FIELDS["position"]})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReorderItem":
        return cls(**_payload_kwargs(cls, data, required=("id", "position")))


def parse_reorder(order: Any) -> List[ReorderItem]:
    """Validate a reorder batch: a list of {id, position} objects."""
    if not isinstance(order, (list, tuple)):
        raise ValidationError("order", "must be a list of {id, position} objects")
    items = []
    for index, entry in enumerate(order):
        if isinstance(entry, ReorderItem):
            items.append(entry)
            continue
        try:
            items.append(ReorderItem.from_dict(entry))
        except ValidationError as e:
            raise ValidationError(f"order[{index}].{e.field}", e.message) from e
    return items


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Task requests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class CreateTaskRequest:
    project_id: int
    title: str
    status: str = DEFAULT_STATUS
    description: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[str] = None
    tags: Optional[List[str]] = None
    position: Optional[float] = None
    estimated_minutes: Optional[int] = None
    estimated_start_date: Optional[str] = None
    estimated_end_date: Optional[str] = None
    actual_start_date: Optional[str] = None
    actual_end_date: Optional[str] = None
    actual_minutes: Optional[int] = None

    def __post_init__(self):
        _check_struct(self, _CREATE_TASK_FIELDS)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateTaskRequest":
        kwargs = _payload_kwargs(cls, data, required=("project_id", "title"))
        # An explicit null status falls back to the default lane
        if kwargs.get("status", DEFAULT_STATUS) is None:
            kwargs["status"] = DEFAULT_STATUS
        return cls(**kwargs)


@dataclass
class TaskPatch:
    """Partial task update. UNSET = leave alone, None = clear (nullable only)."""
    project_id: Any = UNSET
    title: Any = UNSET
    description: Any = UNSET
    status: Any = UNSET
    due_date: Any = UNSET
    priority: Any = UNSET
    tags: Any = UNSET
    position: Any = UNSET
    estimated_minutes: Any = UNSET
    estimated_start_date: Any = UNSET
    estimated_end_date: Any = UNSET
    actual_start_date: Any = UNSET
    actual_end_date: Any = UNSET
    actual_minutes: Any = UNSET

    def __post_init__(self):
        _check_struct(self, TASK_FIELDS)

    def present(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    def is_empty(self) -> bool:
        return not self.present()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskPatch":
        return cls(**_payload_kwargs(cls, data))


@dataclass
class MoveTaskRequest:
    id: int
    project_id: int
    status: str
    position: float

    def __post_init__(self):
        _check_struct(self, TASK_FIELDS)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MoveTaskRequest":
        return cls(**_payload_kwargs(cls, data, required=("id", "project_id", "status", "position")))

    def to_patch(self) -> TaskPatch:
        return TaskPatch(project_id=self.project_id, status=self.status, position=self.position)
