"""Shared fixtures: a migrated store on a temporary file, plus the layers on top of it."""

import sys
from pathlib import Path

import pytest

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from lifeboard.events import EventEmitter
from lifeboard.projects import ProjectRepository
from lifeboard.service import BoardService
from lifeboard.store import open_store
from lifeboard.tasks import TaskRepository
from lifeboard.transitions import TransitionRecorder


@pytest.fixture
def store(tmp_path):
    s = open_store(str(tmp_path / "lifeboard.db"))
    yield s
    s.close()


@pytest.fixture
def projects(store):
    return ProjectRepository(store)


@pytest.fixture
def recorder(store):
    return TransitionRecorder(store)


@pytest.fixture
def tasks(store, recorder):
    return TaskRepository(store, recorder)


@pytest.fixture
def events():
    """Emitter plus the list of events it delivered."""
    emitter = EventEmitter()
    received = []
    emitter.subscribe(received.append)
    return emitter, received


@pytest.fixture
def service(store, events):
    emitter, _ = events
    return BoardService(store, emitter)
