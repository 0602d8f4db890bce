# src/taskmgmt/core/errors.py

"""
Error taxonomy of the task core.

Everything raised on purpose by the core derives from TaskManagementError,
so front-ends can render domain failures without catching unrelated bugs.
"""

from __future__ import annotations

from typing import Any


class TaskManagementError(Exception):
    """Base class for all task-management errors."""


class ValidationError(TaskManagementError):
    """Bad input. Caller's fault, never retried automatically."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class NotFoundError(TaskManagementError):
    def __init__(self, root_scope: str, task_id: str) -> None:
        super().__init__(f"task {task_id!r} not found in root {root_scope!r}")
        self.root_scope = root_scope
        self.task_id = task_id


class InvalidStateError(TaskManagementError):
    """Illegal lifecycle transition (or a mutation of an archived task)."""

    def __init__(self, current: Any, target: Any, detail: str | None = None) -> None:
        msg = f"illegal transition {current} -> {target}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
        self.current = current
        self.target = target


class ConcurrentModificationError(TaskManagementError):
    """The record changed between read and write. Retryable."""

    def __init__(self, root_scope: str, task_id: str, expected_version: int) -> None:
        super().__init__(
            f"task {task_id!r} in root {root_scope!r} was modified concurrently "
            f"(expected version {expected_version})"
        )
        self.root_scope = root_scope
        self.task_id = task_id
        self.expected_version = expected_version


class StorageError(TaskManagementError):
    """The underlying storage medium failed."""


class InvalidScopeError(TaskManagementError):
    def __init__(self, scope: Any, reason: str = "malformed root scope") -> None:
        super().__init__(f"{reason}: {scope!r}")
        self.scope = scope
        self.reason = reason
