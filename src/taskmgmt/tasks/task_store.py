# src/taskmgmt/tasks/task_store.py

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterator

from ..core.errors import ConcurrentModificationError, InvalidStateError, NotFoundError
from ..core.ports import Storage
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

logger = logging.getLogger(__name__)

TaskMutator = Callable[[Task], Task]

_IMMUTABLE_FIELDS = ("id", "root_scope", "content_path", "created_at")


class TaskListing:
    """
    Lazy, restartable view over the tasks of one root.

    Nothing is read until iteration starts; every new iteration re-reads storage,
    so a listing object can be kept and iterated again to see fresh state.
    """

    def __init__(self, storage: Storage, root_scope: str, task_filter: TaskFilter | None) -> None:
        self._storage = storage
        self._root_scope = root_scope
        self._filter = task_filter or TaskFilter()

    def __iter__(self) -> Iterator[Task]:
        for rec in self._storage.scan(self._root_scope):
            task = Task.from_payload(rec.payload)
            if self._filter.matches(task):
                yield task

    def __repr__(self) -> str:
        return f"TaskListing(root_scope={self._root_scope!r}, filter={self._filter!r})"


class TaskStore:
    """
    Versioned CRUD over Task entities keyed by (root_scope, id).

    The store does no business validation (that is TaskManager's job); it only
    checks the scope, allocates ids and enforces immutable fields and versions.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def create(self, root_scope: str, spec: TaskSpec) -> Task:
        validate_root_scope(root_scope)

        now = time.time()
        task = Task(
            id=uuid.uuid4().hex,
            root_scope=root_scope,
            content_path=spec.content_path,
            assignee=spec.assignee,
            priority=TaskPriority.parse(spec.priority),
            status=TaskStatus.ACTIVE,
            created_at=now,
            updated_at=now,
            start_at=spec.start_at,
            due_at=spec.due_at,
            name=spec.name,
            description=spec.description,
            task_type=spec.task_type or DEFAULT_TASK_TYPE,
            custom_properties=dict(spec.custom_properties or {}),
        )
        rec = self._storage.insert(root_scope, task.id, task.to_payload())
        logger.debug("Task stored root=%s id=%s", root_scope, task.id)
        return Task.from_payload(rec.payload)

    def get(self, root_scope: str, task_id: str) -> Task:
        validate_root_scope(root_scope)
        rec = self._storage.read(root_scope, task_id)
        if rec is None:
            raise NotFoundError(root_scope, task_id)
        return Task.from_payload(rec.payload)

    def update(self, root_scope: str, task_id: str, mutator: TaskMutator) -> Task:
        """
        Atomic read-modify-write.

        `mutator` receives a detached copy of the current task and returns the new
        value. It may raise to abort the update; nothing is written in that case.
        A status change must follow the lifecycle order (Active -> Complete ->
        Archived) or InvalidStateError is raised.
        """
        validate_root_scope(root_scope)
        rec = self._storage.read(root_scope, task_id)
        if rec is None:
            raise NotFoundError(root_scope, task_id)

        current = Task.from_payload(rec.payload)
        updated = mutator(current.copy())

        for name in _IMMUTABLE_FIELDS:
            if getattr(updated, name) != getattr(current, name):
                raise InvalidStateError(
                    getattr(current, name),
                    getattr(updated, name),
                    detail=f"{name} is immutable",
                )
        if updated.status != current.status:
            check_transition(current.status, TaskStatus(updated.status))

        updated = updated.copy(updated_at=time.time())
        new_rec = self._storage.compare_and_set(
            root_scope, task_id, rec.version, updated.to_payload()
        )
        if new_rec is None:
            if self._storage.read(root_scope, task_id) is None:
                raise NotFoundError(root_scope, task_id)
            raise ConcurrentModificationError(root_scope, task_id, rec.version)

        logger.debug("Task updated root=%s id=%s version=%s", root_scope, task_id, new_rec.version)
        return Task.from_payload(new_rec.payload)

    def list(self, root_scope: str, task_filter: TaskFilter | None = None) -> TaskListing:
        validate_root_scope(root_scope)
        return TaskListing(self._storage, root_scope, task_filter)

    def roots(self) -> list[TaskRoot]:
        return [TaskRoot(scope=s, task_count=self._storage.count(s)) for s in self._storage.scopes()]

    def count(self, root_scope: str | None = None) -> int:
        if root_scope is not None:
            validate_root_scope(root_scope)
        return self._storage.count(root_scope)
