"""
Tests for the task repository.

Covers:
    - create(): lane positions, tags, initial transition, active-status event
    - list_by_project(): status / position / id ordering
    - update(): partial fields, null clearing, transition + event on status change
    - move(): lane change in one update, one transition
    - delete(): cascade of transitions
"""
import pytest

from lifeboard.errors import NotFound, StoreError
from lifeboard.events import TASK_COMPLETED, TASK_PROGRESSED, TASK_STARTED
from lifeboard.validation import (
    CreateProjectRequest,
    CreateTaskRequest,
    MoveTaskRequest,
    TaskPatch,
)


@pytest.fixture
def project_ids(projects):
    inbox = projects.create(CreateProjectRequest(name="Inbox"))
    work = projects.create(CreateProjectRequest(name="Work"))
    return inbox.id, work.id


def _create(tasks, project_id, title="Task", **kwargs):
    return tasks.create(CreateTaskRequest(project_id=project_id, title=title, **kwargs))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Create
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_create_records_initial_transition(tasks, recorder, project_ids):
    change = _create(tasks, project_ids[0], "Draft outline", status="To-Do")
    task = change.task
    assert task.title == "Draft outline"
    assert task.status == "To-Do"
    assert change.event is None

    history = recorder.history(task.id)
    assert [(t.from_status, t.to_status) for t in history] == [(None, "To-Do")]
    assert change.transition == history[0]


def test_create_into_active_status_describes_event(tasks, project_ids):
    change = _create(tasks, project_ids[0], status="In Progress")
    assert change.event is not None
    assert change.event.event_type == TASK_STARTED
    assert change.event.meta == {"task_id": change.task.id}


def test_create_into_terminal_status_still_records_transition(tasks, recorder, project_ids):
    change = _create(tasks, project_ids[0], status="Completed")
    assert change.event is None
    assert [(t.from_status, t.to_status) for t in recorder.history(change.task.id)] == [(None, "Completed")]


def test_create_position_empty_lane_is_one(tasks, project_ids):
    assert _create(tasks, project_ids[0]).task.position == 1


def test_create_position_appends_to_lane(tasks, project_ids):
    inbox, work = project_ids
    _create(tasks, inbox, position=4)
    assert _create(tasks, inbox).task.position == 5
    # other lanes are independent
    assert _create(tasks, inbox, status="Done").task.position == 1
    assert _create(tasks, work).task.position == 1


def test_create_uses_caller_position(tasks, project_ids):
    assert _create(tasks, project_ids[0], position=0).task.position == 0
    assert _create(tasks, project_ids[0], position=2.5).task.position == 2.5


def test_create_default_status(tasks, project_ids):
    assert _create(tasks, project_ids[0]).task.status == "To-Do"


def test_create_tags_round_trip(tasks, project_ids):
    task = _create(tasks, project_ids[0], tags=["a", "b"]).task
    assert task.tags == ["a", "b"]
    listed = tasks.list_by_project(project_ids[0])
    assert listed[0].tags == ["a", "b"]


def test_create_without_tags_stores_null(tasks, store, project_ids):
    task = _create(tasks, project_ids[0]).task
    assert task.tags is None
    row = store.fetch_one("SELECT tags FROM tasks WHERE id = ?", (task.id,))
    assert row["tags"] is None


def test_create_carries_tracking_fields(tasks, project_ids):
    task = _create(
        tasks, project_ids[0],
        estimated_minutes=90,
        estimated_start_date="2024-04-01T09:00:00Z",
    ).task
    assert task.estimated_minutes == 90
    assert task.estimated_start_date == "2024-04-01T09:00:00Z"
    assert task.actual_minutes is None


def test_create_for_missing_project_is_store_error(tasks, recorder):
    with pytest.raises(StoreError):
        _create(tasks, 999)
    assert recorder.count() == 0


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# List / read
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_list_orders_by_status_position_id(tasks, project_ids):
    inbox = project_ids[0]
    t1 = _create(tasks, inbox, "t1", status="To-Do", position=2).task
    t2 = _create(tasks, inbox, "t2", status="To-Do", position=1).task
    t3 = _create(tasks, inbox, "t3", status="Done", position=9).task
    t4 = _create(tasks, inbox, "t4", status="To-Do", position=1).task  # colliding position

    ids = [t.id for t in tasks.list_by_project(inbox)]
    assert ids == [t3.id, t2.id, t4.id, t1.id]


def test_list_only_returns_project_tasks(tasks, project_ids):
    inbox, work = project_ids
    _create(tasks, inbox, "mine")
    _create(tasks, work, "theirs")
    assert [t.title for t in tasks.list_by_project(inbox)] == ["mine"]


def test_malformed_tags_read_as_absent(tasks, store, project_ids):
    task = _create(tasks, project_ids[0], "Broken", tags=["x"], priority="High").task
    store.execute("UPDATE tasks SET tags = 'not-json[' WHERE id = ?", (task.id,))
    listed = tasks.list_by_project(project_ids[0])
    assert listed[0].tags is None
    assert listed[0].title == "Broken"
    assert listed[0].priority == "High"


def test_get_missing(tasks):
    with pytest.raises(NotFound):
        tasks.get(5)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Update
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_update_status_records_transition_and_event(tasks, recorder, project_ids):
    task = _create(tasks, project_ids[0], "Draft outline", status="To-Do", due_date="2024-06-01T00:00:00Z").task
    change = tasks.update(task.id, TaskPatch(status="In Progress"))

    assert change.task.status == "In Progress"
    assert (change.transition.from_status, change.transition.to_status) == ("To-Do", "In Progress")
    assert recorder.count(task.id) == 2
    assert change.event.event_type == TASK_STARTED
    assert change.event.context == {"old_status": "To-Do", "due_date": "2024-06-01T00:00:00Z"}


def test_update_to_other_status_describes_matching_event(tasks, project_ids):
    task = _create(tasks, project_ids[0], status="In Progress").task
    assert tasks.update(task.id, TaskPatch(status="Completed")).event.event_type == TASK_COMPLETED
    assert tasks.update(task.id, TaskPatch(status="Review")).event.event_type == TASK_PROGRESSED


def test_update_same_status_records_nothing(tasks, recorder, project_ids):
    task = _create(tasks, project_ids[0], status="To-Do").task
    change = tasks.update(task.id, TaskPatch(status="To-Do", title="Renamed"))
    assert change.task.title == "Renamed"
    assert change.transition is None
    assert change.event is None
    assert recorder.count(task.id) == 1


def test_update_without_status_records_nothing(tasks, recorder, project_ids):
    task = _create(tasks, project_ids[0]).task
    change = tasks.update(task.id, TaskPatch(priority="High"))
    assert change.task.priority == "High"
    assert change.event is None
    assert recorder.count(task.id) == 1


def test_empty_update_returns_unchanged(tasks, recorder, store, project_ids):
    task = _create(tasks, project_ids[0]).task
    store.execute("UPDATE tasks SET updated_at = '2000-01-01T00:00:00.000Z' WHERE id = ?", (task.id,))
    change = tasks.update(task.id, TaskPatch())
    assert change.task.updated_at == "2000-01-01T00:00:00.000Z"
    assert change.transition is None and change.event is None
    assert recorder.count(task.id) == 1


def test_update_missing_task(tasks, recorder):
    with pytest.raises(NotFound):
        tasks.update(77, TaskPatch(status="Done"))
    with pytest.raises(NotFound):
        tasks.update(77, TaskPatch())
    assert recorder.count() == 0


def test_update_null_clears_nullable_fields(tasks, project_ids):
    task = _create(tasks, project_ids[0], description="notes", tags=["a"], priority="Low").task
    updated = tasks.update(task.id, TaskPatch(description=None, tags=None, priority=None)).task
    assert updated.description is None
    assert updated.tags is None
    assert updated.priority is None


def test_update_replaces_tags(tasks, project_ids):
    task = _create(tasks, project_ids[0], tags=["a"]).task
    assert tasks.update(task.id, TaskPatch(tags=["c", "d"])).task.tags == ["c", "d"]


def test_update_refreshes_updated_at(tasks, store, project_ids):
    task = _create(tasks, project_ids[0]).task
    store.execute("UPDATE tasks SET updated_at = '2000-01-01T00:00:00.000Z' WHERE id = ?", (task.id,))
    assert tasks.update(task.id, TaskPatch(title="New")).task.updated_at != "2000-01-01T00:00:00.000Z"


def test_failed_transition_append_fails_the_update(tasks, store, project_ids):
    task = _create(tasks, project_ids[0], status="To-Do").task
    store.execute(
        "CREATE TRIGGER reject_log BEFORE INSERT ON task_states "
        "BEGIN SELECT RAISE(ABORT, 'log unavailable'); END"
    )
    with pytest.raises(StoreError):
        tasks.update(task.id, TaskPatch(status="Done"))
    # the status write is rolled back with the failed append
    assert tasks.get(task.id).status == "To-Do"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Move / delete
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_move_changes_lane_with_one_transition(tasks, recorder, project_ids):
    inbox, work = project_ids
    task = _create(tasks, inbox, "Draft outline", status="To-Do").task
    change = tasks.move(MoveTaskRequest(id=task.id, project_id=work, status="Done", position=0))

    moved = change.task
    assert (moved.project_id, moved.status, moved.position) == (work, "Done", 0)
    history = recorder.history(task.id)
    assert len(history) == 2
    assert (history[-1].from_status, history[-1].to_status) == ("To-Do", "Done")


def test_move_within_lane_records_nothing(tasks, recorder, project_ids):
    inbox = project_ids[0]
    task = _create(tasks, inbox, status="To-Do").task
    change = tasks.move(MoveTaskRequest(id=task.id, project_id=inbox, status="To-Do", position=7))
    assert change.task.position == 7
    assert change.event is None
    assert recorder.count(task.id) == 1


def test_move_missing_task(tasks, project_ids):
    with pytest.raises(NotFound):
        tasks.move(MoveTaskRequest(id=404, project_id=project_ids[0], status="Done", position=0))


def test_delete_task_cascades_history(tasks, recorder, project_ids):
    task = _create(tasks, project_ids[0]).task
    tasks.delete(task.id)
    assert recorder.count(task.id) == 0
    with pytest.raises(NotFound):
        tasks.delete(task.id)


def test_deleting_project_deletes_its_tasks(tasks, projects, project_ids):
    inbox = project_ids[0]
    task = _create(tasks, inbox).task
    projects.delete(inbox)
    with pytest.raises(NotFound):
        tasks.get(task.id)
