# src/taskmgmt/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the storage backend and wires TaskStore/EventNotifier/TaskManager,
- subscribes the audit-log handler to every lifecycle event.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Storage
from ..core.state import AppState
from ..logging_setup import AUDIT_LOGGER
from ..storage.memory_storage import MemoryStorage
from ..storage.sqlite_storage import SQLiteStorage
from ..tasks.task_api import create_task_manager
from ..tasks.task_events import TaskEvent

logger = logging.getLogger(__name__)

audit_logger = logging.getLogger(AUDIT_LOGGER)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_storage(settings) -> Storage:
    backend = str(getattr(settings, "storage_backend", "sqlite")).lower()
    if backend == "memory":
        logger.info("Using in-memory storage (nothing is persisted).")
        return MemoryStorage()
    return SQLiteStorage(
        settings.tasks_db_path,
        timeout=float(getattr(settings, "sqlite_timeout", 30.0)),
    )


def audit_event(event: TaskEvent) -> None:
    """Write one line per lifecycle event to the audit logger."""
    task = event.task
    audit_logger.info(
        "%s root=%s id=%s status=%s assignee=%s priority=%s",
        event.kind.value,
        task.root_scope,
        task.id,
        task.status.value,
        task.assignee,
        task.priority.value,
    )


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if getattr(settings, "storage_backend", "sqlite") != "memory":
        _ensure_local_dirs(settings)

    storage = create_storage(settings)
    manager = create_task_manager(
        storage,
        default_root=settings.default_root,
        update_retries=int(getattr(settings, "update_retries", 3)),
    )

    state = AppState(
        settings=settings,
        storage=storage,
        manager=manager,
        current_root=manager.default_root,
    )
    state.subscriptions.extend(manager.notifier.subscribe_all(audit_event))
    return state


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for sub in state.subscriptions:
        state.manager.notifier.unsubscribe(sub)
    state.subscriptions.clear()
    try:
        state.storage.close()
    except Exception:
        logger.debug("Storage close failed.", exc_info=True)
