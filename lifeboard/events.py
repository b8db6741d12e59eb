"""
Task events: derived signals for notification and metrics collaborators.

Repositories only describe events (TaskChange.event). The service hands
them to an EventEmitter, which fans out to subscribers. Delivery is best
effort: a failing subscriber is logged and skipped, and never undoes the
task write that produced the event.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from .schema import ACTIVE_STATUS, COMPLETED_STATUS
from .store import Store

logger = logging.getLogger(__name__)

TASK_STARTED = "task_started"
TASK_PROGRESSED = "task_progressed"
TASK_COMPLETED = "task_completed"

# Involvement weight per event type, consumed by metrics scoring
BASE_WEIGHTS: Dict[str, float] = {
    TASK_STARTED: 1.0,
    TASK_PROGRESSED: 1.0,
    TASK_COMPLETED: 6.0,
}


def event_type_for(status: str) -> str:
    """Map the status a task entered to its event type."""
    if status == ACTIVE_STATUS:
        return TASK_STARTED
    if status == COMPLETED_STATUS:
        return TASK_COMPLETED
    return TASK_PROGRESSED


@dataclass
class TaskEvent:
    """A task entered a status."""
    task_id: int
    status: str
    event_type: str
    context: Dict[str, Any] = field(default_factory=dict)
    ts: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def for_status(cls, task_id: int, status: str, context: Optional[Dict[str, Any]] = None) -> "TaskEvent":
        return cls(
            task_id=task_id,
            status=status,
            event_type=event_type_for(status),
            context=dict(context or {}),
        )

    @property
    def meta(self) -> Dict[str, Any]:
        return {"task_id": self.task_id, **self.context}

    @property
    def weight(self) -> float:
        return BASE_WEIGHTS.get(self.event_type, 1.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type,
            "status": self.status,
            "ts": self.ts,
            "meta": self.meta,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


EventCallback = Callable[[TaskEvent], Any]


class EventEmitter:
    """Fans task events out to subscribers. Never raises from emit()."""

    def __init__(self):
        self.subscribers: List[EventCallback] = []

    def subscribe(self, callback: EventCallback) -> None:
        """Register a callback for every emitted event."""
        self.subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        if callback in self.subscribers:
            self.subscribers.remove(callback)

    def emit(self, event: TaskEvent) -> int:
        """Deliver event to all subscribers; returns how many accepted it."""
        delivered = 0
        for callback in list(self.subscribers):
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                name = getattr(callback, "__name__", type(callback).__name__)
                logger.warning(
                    f"Event {event.event_type} for task {event.task_id} "
                    f"not delivered to {name}: {e}"
                )
        return delivered


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Sinks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class EventLog:
    """Metrics sink: appends events to the events table."""

    def __init__(self, store: Store):
        self.store = store

    def __call__(self, event: TaskEvent) -> int:
        """Insert the event; returns its row id."""
        cursor = self.store.execute(
            "INSERT INTO events (ts, type, meta, weight) VALUES (?, ?, ?, ?)",
            (event.ts, event.event_type, json.dumps(event.meta), event.weight),
        )
        return cursor.lastrowid

    def recent(self, limit: int = 50, task_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch recent events, newest first, optionally for one task.

        Returns:
            List of dicts with meta decoded from JSON.
        """
        if task_id is not None:
            rows = self.store.fetch_all(
                """
                SELECT * FROM events
                WHERE json_extract(meta, '$.task_id') = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (task_id, limit),
            )
        else:
            rows = self.store.fetch_all("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,))

        events = []
        for row in rows:
            e = dict(row)
            try:
                e["meta"] = json.loads(e["meta"]) if e.get("meta") else {}
            except json.JSONDecodeError:
                logger.warning(f"Unreadable meta on event {e['id']}")
                e["meta"] = {}
            events.append(e)
        return events


class WebhookNotifier:
    """Notification sink: POSTs each event as JSON to a URL."""

    def __init__(self, url: str, timeout: float = 2.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, event: TaskEvent) -> None:
        r = self.session.post(
            self.url,
            data=event.to_json(),
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        logger.debug(f"[{event.event_type}] task {event.task_id} → {self.url}")
