# src/taskmgmt/tasks/task_models.py

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidScopeError, InvalidStateError, StorageError, ValidationError

DEFAULT_TASK_TYPE = "default"
MAX_SCOPE_LEN = 512

_SCOPE_SEGMENT = r"[A-Za-z0-9_.:\-]+"
_SCOPE_RE = re.compile(rf"^/?{_SCOPE_SEGMENT}(?:/{_SCOPE_SEGMENT})*$")


class TaskPriority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, raw: Any) -> TaskPriority:
        """Accept an enum member or its name/value in any case."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            wanted = raw.strip().lower()
            for p in cls:
                if p.value.lower() == wanted:
                    return p
        raise ValidationError("priority", f"must be one of High, Medium, Low (got {raw!r})")


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Transitions are one-directional: Active -> Complete -> Archived.
    Archived is terminal and archived tasks are immutable.
    """

    ACTIVE = "Active"
    COMPLETE = "Complete"
    ARCHIVED = "Archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        try:
            return cls(raw)
        except ValueError as e:
            raise StorageError(f"unknown stored task status {raw!r}") from e


_TRANSITIONS: dict[TaskStatus, TaskStatus] = {
    TaskStatus.ACTIVE: TaskStatus.COMPLETE,
    TaskStatus.COMPLETE: TaskStatus.ARCHIVED,
}


def check_transition(current: TaskStatus, target: TaskStatus) -> None:
    if _TRANSITIONS.get(current) is not target:
        raise InvalidStateError(current.value, target.value)


def validate_root_scope(scope: Any) -> str:
    """Return the scope unchanged if it is a well-formed task root name."""
    if not isinstance(scope, str) or not scope:
        raise InvalidScopeError(scope, "root scope must be a non-empty string")
    if len(scope) > MAX_SCOPE_LEN:
        raise InvalidScopeError(scope, f"root scope longer than {MAX_SCOPE_LEN} characters")
    if not _SCOPE_RE.match(scope):
        raise InvalidScopeError(scope)
    if any(seg in (".", "..") for seg in scope.split("/")):
        raise InvalidScopeError(scope, "relative segments are not allowed")
    return scope


@dataclass(slots=True, frozen=True)
class TaskRoot:
    """A named container of tasks (a project path or the global default root)."""

    scope: str
    task_count: int = 0


@dataclass(slots=True)
class TaskSpec:
    """Caller input for task creation."""

    content_path: str
    assignee: str
    priority: TaskPriority | str = TaskPriority.MEDIUM
    start_at: float | None = None
    due_at: float | None = None
    custom_properties: dict[str, str] = field(default_factory=dict)

    name: str | None = None
    description: str | None = None
    task_type: str = DEFAULT_TASK_TYPE


@dataclass(slots=True, frozen=True, eq=True)
class Task:
    """
    Immutable snapshot of a stored task.

    Compares by value but is not hashable: custom_properties is a dict.
    Use (root_scope, id) as the key when tasks go into sets or dicts.
    """

    __hash__ = None  # type: ignore[assignment]

    id: str
    root_scope: str
    content_path: str
    assignee: str
    priority: TaskPriority
    status: TaskStatus

    created_at: float
    updated_at: float
    start_at: float | None = None
    due_at: float | None = None
    completed_at: float | None = None

    name: str | None = None
    description: str | None = None
    task_type: str = DEFAULT_TASK_TYPE
    custom_properties: dict[str, str] = field(default_factory=dict)

    @property
    def schedulable(self) -> bool:
        """True if the task has a start or due date (calendar view); else list view only."""
        return self.start_at is not None or self.due_at is not None

    def copy(self, **changes: Any) -> Task:
        """Detached copy; custom_properties is never shared with the original."""
        props = changes.pop("custom_properties", self.custom_properties)
        return replace(self, custom_properties=dict(props), **changes)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "root_scope": self.root_scope,
            "content_path": self.content_path,
            "assignee": self.assignee,
            "priority": self.priority.value,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "start_at": self.start_at,
            "due_at": self.due_at,
            "completed_at": self.completed_at,
            "name": self.name,
            "description": self.description,
            "task_type": self.task_type,
            "custom_properties": dict(self.custom_properties),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Task:
        def _opt_float(key: str) -> float | None:
            v = payload.get(key)
            return float(v) if v is not None else None

        return cls(
            id=str(payload["id"]),
            root_scope=str(payload["root_scope"]),
            content_path=str(payload["content_path"]),
            assignee=str(payload["assignee"]),
            priority=TaskPriority.parse(payload["priority"]),
            status=TaskStatus.from_db(payload.get("status")),
            created_at=float(payload.get("created_at") or 0.0),
            updated_at=float(payload.get("updated_at") or 0.0),
            start_at=_opt_float("start_at"),
            due_at=_opt_float("due_at"),
            completed_at=_opt_float("completed_at"),
            name=payload.get("name"),
            description=payload.get("description"),
            task_type=str(payload.get("task_type") or DEFAULT_TASK_TYPE),
            custom_properties={
                str(k): str(v) for k, v in (payload.get("custom_properties") or {}).items()
            },
        )


@dataclass(slots=True, frozen=True)
class TaskFilter:
    """All given predicates must match; None means "any"."""

    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    assignee: str | None = None
    schedulable: bool | None = None

    def matches(self, task: Task) -> bool:
        if self.priority is not None and task.priority is not self.priority:
            return False
        if self.status is not None and task.status is not self.status:
            return False
        if self.assignee is not None and task.assignee != self.assignee:
            return False
        if self.schedulable is not None and task.schedulable != self.schedulable:
            return False
        return True
