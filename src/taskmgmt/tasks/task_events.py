# src/taskmgmt/tasks/task_events.py

from __future__ import annotations

"""
Lifecycle event notifier.

Handlers run synchronously, in registration order, after the storage write
has been committed. A failing handler is logged and skipped: it never undoes
the task change and never stops the remaining handlers.
"""

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import StrEnum

from ..core.ports import EventHandler
from .task_models import Task

logger = logging.getLogger(__name__)


class TaskEventKind(StrEnum):
    CREATED = "TaskCreated"
    REASSIGNED = "TaskReassigned"
    REPRIORITIZED = "TaskReprioritized"
    COMPLETED = "TaskCompleted"
    ARCHIVED = "TaskArchived"


@dataclass(slots=True, frozen=True)
class TaskEvent:
    kind: TaskEventKind
    task: Task
    previous: Task | None = None
    occurred_at: float = field(default_factory=time.time)


@dataclass(slots=True, frozen=True)
class Subscription:
    """Opaque handle returned by subscribe(); pass it back to unsubscribe()."""

    token: int
    kind: TaskEventKind


class EventNotifier:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._handlers: dict[TaskEventKind, dict[int, EventHandler]] = {
            kind: {} for kind in TaskEventKind
        }

    def subscribe(self, kind: TaskEventKind | str, handler: EventHandler) -> Subscription:
        kind = TaskEventKind(kind)
        if not callable(handler):
            raise TypeError("handler must be callable")
        with self._lock:
            token = next(self._tokens)
            self._handlers[kind][token] = handler
        logger.debug("Subscribed token=%s kind=%s handler=%r", token, kind.value, handler)
        return Subscription(token=token, kind=kind)

    def subscribe_all(self, handler: EventHandler) -> list[Subscription]:
        return [self.subscribe(kind, handler) for kind in TaskEventKind]

    def unsubscribe(self, handle: Subscription) -> None:
        """Idempotent: removing an unknown or already-removed handle is a no-op."""
        with self._lock:
            removed = self._handlers[handle.kind].pop(handle.token, None)
        if removed is not None:
            logger.debug("Unsubscribed token=%s kind=%s", handle.token, handle.kind.value)

    def handler_count(self, kind: TaskEventKind | str | None = None) -> int:
        with self._lock:
            if kind is None:
                return sum(len(h) for h in self._handlers.values())
            return len(self._handlers[TaskEventKind(kind)])

    def publish(self, event: TaskEvent) -> None:
        with self._lock:
            # Insertion-ordered dict == registration order.
            handlers = list(self._handlers[event.kind].items())

        for token, handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed token=%s kind=%s task_id=%s",
                    token,
                    event.kind.value,
                    event.task.id,
                )
