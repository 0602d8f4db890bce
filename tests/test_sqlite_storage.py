# tests/test_sqlite_storage.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskmgmt.core.errors import StorageError
from taskmgmt.storage.sqlite_storage import SQLiteStorage
from taskmgmt.tasks.task_manager import TaskManager
from taskmgmt.tasks.task_models import TaskPriority, TaskSpec, TaskStatus
from taskmgmt.tasks.task_store import TaskStore


def test_tasks_survive_reopening_the_database(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "tasks.sqlite3"
    manager = TaskManager(TaskStore(SQLiteStorage(db)))
    task = manager.create_task(
        TaskSpec(content_path="/content/x", assignee="alice", priority=TaskPriority.LOW)
    )
    manager.complete("tasks", task.id)

    reopened = TaskStore(SQLiteStorage(db))
    again = reopened.get("tasks", task.id)
    assert again.status is TaskStatus.COMPLETE
    assert again.priority is TaskPriority.LOW
    assert reopened.count() == 1


def test_compare_and_set_checks_version(tmp_path: Path) -> None:
    storage = SQLiteStorage(tmp_path / "db.sqlite3")
    rec = storage.insert("tasks", "k", {"n": 1})
    assert rec.version == 1

    bumped = storage.compare_and_set("tasks", "k", 1, {"n": 2})
    assert bumped is not None and bumped.version == 2

    assert storage.compare_and_set("tasks", "k", 1, {"n": 3}) is None
    assert storage.read("tasks", "k").payload == {"n": 2}
    assert storage.compare_and_set("tasks", "missing", 1, {}) is None


def test_duplicate_insert_is_a_storage_error(tmp_path: Path) -> None:
    storage = SQLiteStorage(tmp_path / "db.sqlite3")
    storage.insert("tasks", "k", {})
    with pytest.raises(StorageError):
        storage.insert("tasks", "k", {})


def test_scan_reads_in_batches(tmp_path: Path) -> None:
    storage = SQLiteStorage(tmp_path / "db.sqlite3")
    keys = [f"k{i:03d}" for i in range(150)]
    for k in keys:
        storage.insert("tasks", k, {"k": k})
    storage.insert("other", "x", {})

    assert [r.key for r in storage.scan("tasks")] == keys
    assert storage.scopes() == ["other", "tasks"]
    assert storage.count("tasks") == 150


def test_unreachable_medium_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    with pytest.raises(StorageError):
        SQLiteStorage(blocker / "tasks.sqlite3")
