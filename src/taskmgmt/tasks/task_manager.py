# src/taskmgmt/tasks/task_manager.py

from __future__ import annotations

"""
Task lifecycle rules on top of TaskStore.

Every operation validates before touching storage, writes through the store's
optimistic update, then publishes one lifecycle event describing the committed
change.
"""

import logging
import math
import time
from collections.abc import Callable, Mapping
from typing import Any

from ..core.errors import ConcurrentModificationError, InvalidStateError, ValidationError
from .task_events import EventNotifier, TaskEvent, TaskEventKind
from .task_models import (
    DEFAULT_TASK_TYPE,
    Task,
    TaskFilter,
    TaskPriority,
    TaskRoot,
    TaskSpec,
    TaskStatus,
    check_transition,
    validate_root_scope,
)
from .task_store import TaskListing, TaskStore

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "tasks"


class _NoChange(Exception):
    """Raised inside a mutator to abort an update that would change nothing."""


def _require_text(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "must be a non-empty string")
    return value.strip()


def _optional_text(field: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(field, "must be a string")
    return value


def _optional_ts(field: str, value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(field, "must be an epoch timestamp in seconds")
    return float(value)


def _custom_properties(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError("custom_properties", "must be a mapping of str to str")
    out: dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not k:
            raise ValidationError("custom_properties", f"keys must be non-empty strings (got {k!r})")
        if not isinstance(v, str):
            raise ValidationError("custom_properties", f"value of {k!r} must be a string")
        out[k] = v
    return out


def validate_spec(spec: TaskSpec) -> TaskSpec:
    """Return a normalised copy of `spec` or raise ValidationError naming the first bad field."""
    content_path = _require_text("content_path", spec.content_path)
    assignee = _require_text("assignee", spec.assignee)
    priority = TaskPriority.parse(spec.priority)
    start_at = _optional_ts("start_at", spec.start_at)
    due_at = _optional_ts("due_at", spec.due_at)
    if start_at is not None and due_at is not None and due_at < start_at:
        raise ValidationError("due_at", "must not be earlier than start_at")

    return TaskSpec(
        content_path=content_path,
        assignee=assignee,
        priority=priority,
        start_at=start_at,
        due_at=due_at,
        custom_properties=_custom_properties(spec.custom_properties),
        name=_optional_text("name", spec.name),
        description=_optional_text("description", spec.description),
        task_type=(_optional_text("task_type", spec.task_type) or "").strip() or DEFAULT_TASK_TYPE,
    )


class TaskManager:
    """
    Orchestrates the task lifecycle: create, reassign, reprioritize, complete, archive.

    Status machine: Active -> Complete -> Archived (terminal).
    Lost update races are retried up to `update_retries` times; every retry
    re-reads the task and re-runs the guards against the fresh state.
    """

    def __init__(
        self,
        store: TaskStore,
        notifier: EventNotifier | None = None,
        *,
        default_root: str = DEFAULT_ROOT,
        update_retries: int = 3,
    ) -> None:
        self._store = store
        self._notifier = notifier if notifier is not None else EventNotifier()
        self._default_root = validate_root_scope(default_root)
        self._update_retries = max(1, int(update_retries))

    @property
    def notifier(self) -> EventNotifier:
        return self._notifier

    @property
    def default_root(self) -> str:
        return self._default_root

    def _root(self, root_scope: str | None) -> str:
        return root_scope if root_scope is not None else self._default_root

    # ---- reads ----

    def get_task(self, root_scope: str, task_id: str) -> Task:
        return self._store.get(root_scope, task_id)

    def list_tasks(self, root_scope: str | None = None, task_filter: TaskFilter | None = None) -> TaskListing:
        return self._store.list(self._root(root_scope), task_filter)

    def roots(self) -> list[TaskRoot]:
        return self._store.roots()

    def count_tasks(self, root_scope: str | None = None) -> int:
        return self._store.count(root_scope)

    # ---- lifecycle ----

    def create_task(self, spec: TaskSpec, root_scope: str | None = None) -> Task:
        clean = validate_spec(spec)
        root = self._root(root_scope)

        task = self._store.create(root, clean)
        logger.info(
            "Task created root=%s id=%s content=%s assignee=%s priority=%s",
            root,
            task.id,
            task.content_path,
            task.assignee,
            task.priority.value,
        )
        self._emit(TaskEventKind.CREATED, task, None)
        return task

    def reassign(self, root_scope: str, task_id: str, new_assignee: str) -> Task:
        assignee = _require_text("assignee", new_assignee)

        def guard(task: Task) -> Task | None:
            self._ensure_mutable(task, "reassign")
            if task.assignee == assignee:
                return None
            return task.copy(assignee=assignee)

        return self._apply(root_scope, task_id, guard, TaskEventKind.REASSIGNED)

    def reprioritize(self, root_scope: str, task_id: str, new_priority: TaskPriority | str) -> Task:
        priority = TaskPriority.parse(new_priority)

        def guard(task: Task) -> Task | None:
            self._ensure_mutable(task, "reprioritize")
            if task.priority is priority:
                return None
            return task.copy(priority=priority)

        return self._apply(root_scope, task_id, guard, TaskEventKind.REPRIORITIZED)

    def complete(self, root_scope: str, task_id: str) -> Task:
        def guard(task: Task) -> Task:
            check_transition(task.status, TaskStatus.COMPLETE)
            return task.copy(status=TaskStatus.COMPLETE, completed_at=time.time())

        return self._apply(root_scope, task_id, guard, TaskEventKind.COMPLETED)

    def archive(self, root_scope: str, task_id: str) -> Task:
        def guard(task: Task) -> Task:
            check_transition(task.status, TaskStatus.ARCHIVED)
            return task.copy(status=TaskStatus.ARCHIVED)

        return self._apply(root_scope, task_id, guard, TaskEventKind.ARCHIVED)

    # ---- internals ----

    @staticmethod
    def _ensure_mutable(task: Task, action: str) -> None:
        if task.status is TaskStatus.ARCHIVED:
            raise InvalidStateError(task.status.value, action, detail="archived tasks are immutable")

    def _apply(
        self,
        root_scope: str,
        task_id: str,
        guard: Callable[[Task], Task | None],
        kind: TaskEventKind,
    ) -> Task:
        """
        Run `guard` against the freshest stored task and persist its result.

        `guard` raises to reject the change, or returns None when there is
        nothing to change (no write, no event).
        """
        for attempt in range(1, self._update_retries + 1):
            seen: list[Task] = []

            def mutator(current: Task) -> Task:
                seen.append(current.copy())
                changed = guard(current)
                if changed is None:
                    raise _NoChange
                return changed

            try:
                after = self._store.update(root_scope, task_id, mutator)
            except _NoChange:
                logger.debug("No-op %s root=%s id=%s", kind.value, root_scope, task_id)
                return seen[-1]
            except ConcurrentModificationError:
                if attempt >= self._update_retries:
                    logger.warning(
                        "Giving up %s root=%s id=%s after %d attempts",
                        kind.value,
                        root_scope,
                        task_id,
                        attempt,
                    )
                    raise
                logger.info(
                    "Concurrent modification on %s root=%s id=%s, retrying (attempt %d)",
                    kind.value,
                    root_scope,
                    task_id,
                    attempt,
                )
                continue

            logger.info(
                "%s root=%s id=%s status=%s assignee=%s priority=%s",
                kind.value,
                root_scope,
                task_id,
                after.status.value,
                after.assignee,
                after.priority.value,
            )
            self._emit(kind, after, seen[-1])
            return after

        raise AssertionError("unreachable")

    def _emit(self, kind: TaskEventKind, task: Task, previous: Task | None) -> None:
        self._notifier.publish(
            TaskEvent(kind=kind, task=task.copy(), previous=previous.copy() if previous else None)
        )
