"""Tests for row → entity mapping."""
import logging

from lifeboard.mappers import encode_tags, parse_tags, row_to_project, row_to_task


def _task_row(**overrides):
    row = {
        "id": 7,
        "project_id": 1,
        "title": "Draft outline",
        "status": "To-Do",
        "position": 1.0,
        "created_at": "2024-01-01T00:00:00.000Z",
        "updated_at": "2024-01-01T00:00:00.000Z",
    }
    row.update(overrides)
    return row


def test_parse_tags_valid():
    assert parse_tags('["a", "b"]') == ["a", "b"]


def test_parse_tags_coerces_elements_to_text():
    assert parse_tags('["a", 2, true]') == ["a", "2", "True"]


def test_parse_tags_absent():
    assert parse_tags(None) is None
    assert parse_tags("") is None


def test_parse_tags_malformed_logs_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="lifeboard.mappers"):
        assert parse_tags("[not json") is None
    assert "Failed to parse task tags" in caplog.text


def test_parse_tags_non_list():
    assert parse_tags('{"a": 1}') is None
    assert parse_tags('"a"') is None


def test_encode_tags():
    assert encode_tags(["a", "b"]) == '["a", "b"]'
    assert encode_tags(None) is None
    assert encode_tags([]) == "[]"


def test_row_to_task_missing_optional_columns():
    task = row_to_task(_task_row())
    assert task.description is None
    assert task.tags is None
    assert task.estimated_minutes is None
    assert task.position == 1
    assert isinstance(task.position, int)


def test_row_to_task_keeps_fractional_position():
    assert row_to_task(_task_row(position=1.5)).position == 1.5


def test_row_to_task_malformed_tags_keeps_other_fields():
    task = row_to_task(_task_row(tags="{{broken", priority="High", due_date="2024-02-01T00:00:00Z"))
    assert task.tags is None
    assert task.title == "Draft outline"
    assert task.priority == "High"
    assert task.due_date == "2024-02-01T00:00:00Z"


def test_row_to_project():
    project = row_to_project({"id": 1, "name": "Inbox", "position": 0, "archived_at": None})
    assert project.name == "Inbox"
    assert project.color is None
    assert not project.archived
    assert project.to_dict()["archived_at"] is None


def test_parse_tags_undecodable_bytes(caplog):
    with caplog.at_level(logging.WARNING, logger="lifeboard.mappers"):
        assert parse_tags(b"\xff\xfe[") is None
    assert "Failed to parse task tags" in caplog.text
