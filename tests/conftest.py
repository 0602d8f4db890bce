# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmgmt.cli.bootstrap import create_initial_state, shutdown_state
from taskmgmt.core.state import AppState
from taskmgmt.storage.memory_storage import MemoryStorage
from taskmgmt.storage.sqlite_storage import SQLiteStorage
from taskmgmt.tasks.task_events import EventNotifier
from taskmgmt.tasks.task_manager import TaskManager
from taskmgmt.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap code.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="taskmgmt-test",
        log_level="DEBUG",
        storage_backend="sqlite",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        sqlite_timeout=5.0,
        default_root="tasks",
        update_retries=3,
    )


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path: Path):
    """Every storage-level test runs against both backends."""
    if request.param == "memory":
        backend = MemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "tasks.sqlite3", timeout=5.0)
    yield backend
    backend.close()


@pytest.fixture()
def store(storage) -> TaskStore:
    return TaskStore(storage)


@pytest.fixture()
def notifier() -> EventNotifier:
    return EventNotifier()


@pytest.fixture()
def manager(store: TaskStore, notifier: EventNotifier) -> TaskManager:
    return TaskManager(store, notifier, default_root="tasks", update_retries=3)


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired the same way the CLI does it, on a tmp SQLite file."""
    st = create_initial_state(settings=settings)
    yield st
    shutdown_state(st)
