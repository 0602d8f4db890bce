# src/taskmgmt/tasks/task_api.py

"""
Factory functions and small high-level helpers.

Managers are built explicitly from a Storage object; nothing is looked up
from ambient/global state. Task roots follow the usual split: tasks that
belong to a project live under the project's path, everything else goes to
the default global root.
"""

from __future__ import annotations

import logging
import time

from ..core.errors import TaskManagementError
from ..core.ports import Storage
from .task_events import EventNotifier
from .task_manager import DEFAULT_ROOT, TaskManager
from .task_models import Task, TaskPriority, TaskSpec, validate_root_scope
from .task_store import TaskStore

logger = logging.getLogger(__name__)

SAMPLE_CONTENT_PATH = "/content/that/is/associated/with/this/task"
SAMPLE_ASSIGNEE = "some-users-principal-name"


def create_task_manager(
    storage: Storage,
    *,
    default_root: str = DEFAULT_ROOT,
    update_retries: int = 3,
    notifier: EventNotifier | None = None,
) -> TaskManager:
    """Wire TaskStore + EventNotifier + TaskManager on top of `storage`."""
    return TaskManager(
        TaskStore(storage),
        notifier if notifier is not None else EventNotifier(),
        default_root=default_root,
        update_retries=update_retries,
    )


def resolve_root(path: str | None, default_root: str = DEFAULT_ROOT) -> str:
    """
    Pick the task root for new tasks.

    A project path (e.g. "/content/projects/site/tasks") wins; None or a blank
    string selects the default global root.
    """
    if path is None or not path.strip():
        return validate_root_scope(default_root)
    return validate_root_scope(path.strip())


def create_sample_task(manager: TaskManager, *, root_scope: str | None = None) -> Task:
    """
    Create the demonstration task: fixed content path and assignee, High priority,
    start and due dates set to now, plus one caller-defined custom property.

    Custom properties are not shown in list or calendar views; they are there
    for programmatic decisions by subscribers.
    """
    now_ts = time.time()
    spec = TaskSpec(
        content_path=SAMPLE_CONTENT_PATH,
        assignee=SAMPLE_ASSIGNEE,
        priority=TaskPriority.HIGH,
        start_at=now_ts,
        due_at=now_ts,
        custom_properties={"superCustomProperty": "superCustomValue"},
    )
    try:
        return manager.create_task(spec, root_scope=root_scope)
    except TaskManagementError:
        logger.exception("Could not create sample task for [ %s ]", SAMPLE_CONTENT_PATH)
        raise
