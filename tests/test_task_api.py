# tests/test_task_api.py

from __future__ import annotations

import pytest

from taskmgmt.core.errors import InvalidScopeError, StorageError
from taskmgmt.storage.memory_storage import MemoryStorage
from taskmgmt.tasks.task_api import (
    SAMPLE_ASSIGNEE,
    SAMPLE_CONTENT_PATH,
    create_sample_task,
    create_task_manager,
    resolve_root,
)
from taskmgmt.tasks.task_events import TaskEventKind
from taskmgmt.tasks.task_models import TaskPriority, TaskStatus

from .fakes import BrokenStorage, RecordingHandler


def test_resolve_root_prefers_project_path() -> None:
    assert resolve_root("/content/projects/site/tasks", "tasks") == "/content/projects/site/tasks"
    assert resolve_root(None, "tasks") == "tasks"
    assert resolve_root("   ", "global") == "global"
    with pytest.raises(InvalidScopeError):
        resolve_root("bad path//", "tasks")


def test_factory_wires_store_and_notifier() -> None:
    manager = create_task_manager(MemoryStorage(), default_root="global", update_retries=5)
    rec = RecordingHandler()
    manager.notifier.subscribe(TaskEventKind.CREATED, rec)

    task = create_sample_task(manager)
    assert task.root_scope == "global"
    assert rec.kinds == ["TaskCreated"]


def test_sample_task_matches_demonstration() -> None:
    manager = create_task_manager(MemoryStorage())
    task = create_sample_task(manager, root_scope="/content/projects/demo/tasks")

    assert task.content_path == SAMPLE_CONTENT_PATH
    assert task.assignee == SAMPLE_ASSIGNEE
    assert task.priority is TaskPriority.HIGH
    assert task.status is TaskStatus.ACTIVE
    assert task.schedulable
    assert task.custom_properties == {"superCustomProperty": "superCustomValue"}
    assert manager.get_task("/content/projects/demo/tasks", task.id) == task


def test_sample_task_storage_failure_is_reraised() -> None:
    manager = create_task_manager(BrokenStorage())
    with pytest.raises(StorageError):
        create_sample_task(manager)
