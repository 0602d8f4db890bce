# src/taskmgmt/storage/memory_storage.py

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator

from ..core.errors import StorageError
from ..core.ports import Payload, StoredRecord


class MemoryStorage:
    """In-process storage; payloads are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[tuple[str, str], StoredRecord] = {}

    def close(self) -> None:
        return

    @staticmethod
    def _detach(rec: StoredRecord) -> StoredRecord:
        return StoredRecord(
            scope=rec.scope,
            key=rec.key,
            version=rec.version,
            payload=copy.deepcopy(rec.payload),
        )

    def insert(self, scope: str, key: str, payload: Payload) -> StoredRecord:
        rec = StoredRecord(scope=scope, key=key, version=1, payload=copy.deepcopy(payload))
        with self._lock:
            if (scope, key) in self._records:
                raise StorageError(f"record {scope}/{key} already exists")
            self._records[(scope, key)] = rec
        return self._detach(rec)

    def read(self, scope: str, key: str) -> StoredRecord | None:
        with self._lock:
            rec = self._records.get((scope, key))
        return self._detach(rec) if rec else None

    def compare_and_set(
        self,
        scope: str,
        key: str,
        expected_version: int,
        payload: Payload,
    ) -> StoredRecord | None:
        with self._lock:
            cur = self._records.get((scope, key))
            if cur is None or cur.version != expected_version:
                return None
            rec = StoredRecord(
                scope=scope,
                key=key,
                version=cur.version + 1,
                payload=copy.deepcopy(payload),
            )
            self._records[(scope, key)] = rec
        return self._detach(rec)

    def scan(self, scope: str) -> Iterator[StoredRecord]:
        # Dicts keep insertion order; snapshot so callers may write while iterating.
        with self._lock:
            snapshot = [r for (s, _), r in self._records.items() if s == scope]
        for rec in snapshot:
            yield self._detach(rec)

    def scopes(self) -> list[str]:
        with self._lock:
            return sorted({s for (s, _) in self._records})

    def count(self, scope: str | None = None) -> int:
        with self._lock:
            if scope is None:
                return len(self._records)
            return sum(1 for (s, _) in self._records if s == scope)
