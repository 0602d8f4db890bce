# src/taskmgmt/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage backends and event consumers swappable and makes testing easier.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..tasks.task_events import TaskEvent

Payload = dict[str, Any]
# JSON-compatible record body as persisted by a Storage backend.

EventHandler = Callable[["TaskEvent"], None]


@dataclass(slots=True, frozen=True)
class StoredRecord:
    """One versioned record. `version` starts at 1 and grows by one per write."""

    scope: str
    key: str
    version: int
    payload: Payload


class Storage(Protocol):
    """
    Durable key-value persistence with optimistic-concurrency updates.

    Implementations must:
    - never share payload objects with callers (copy in, copy out)
    - raise StorageError when the medium is unreachable
    - make compare_and_set atomic per (scope, key)
    """

    def insert(self, scope: str, key: str, payload: Payload) -> StoredRecord:
        """Store a new record at version 1. StorageError if the key already exists."""
        ...

    def read(self, scope: str, key: str) -> StoredRecord | None: ...

    def compare_and_set(
            self,
            scope: str,
            key: str,
            expected_version: int,
            payload: Payload,
    ) -> StoredRecord | None:
        """Write only if the stored version still equals expected_version; None otherwise."""
        ...

    def scan(self, scope: str) -> Iterator[StoredRecord]: ...

    def scopes(self) -> list[str]: ...

    def count(self, scope: str | None = None) -> int: ...

    def close(self) -> None: ...
