# src/taskmgmt/storage/sqlite_storage.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from ..core.errors import StorageError
from ..core.ports import Payload, StoredRecord

logger = logging.getLogger(__name__)


class SQLiteStorage:
    """
    SQLite record storage.

    One table of versioned JSON payloads keyed by (scope, key).
    Updates are compare-and-set on the version column, so two writers that read
    the same version cannot both succeed.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    _SCAN_BATCH = 64

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = float(timeout)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create storage directory for {self._db_path}") from e
        self._ensure_schema()
        logger.info("SQLiteStorage ready db=%s total=%s", self._db_path, self.count())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=self._timeout)
        except sqlite3.Error as e:
            raise StorageError(f"cannot open {self._db_path}") from e
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    scope TEXT NOT NULL,
                    key TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    payload TEXT NOT NULL DEFAULT '{}',
                    PRIMARY KEY (scope, key)
                )
                """
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"cannot initialise schema in {self._db_path}") from e
        finally:
            conn.close()

    @staticmethod
    def _payload_to_str(payload: Payload) -> str:
        try:
            return json.dumps(payload, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise StorageError("payload is not JSON-serialisable") from e

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> StoredRecord:
        payload: Any = json.loads(row["payload"] or "{}")
        return StoredRecord(
            scope=str(row["scope"]),
            key=str(row["key"]),
            version=int(row["version"]),
            payload=payload if isinstance(payload, dict) else {},
        )

    # ---- Storage port ----

    def insert(self, scope: str, key: str, payload: Payload) -> StoredRecord:
        body = self._payload_to_str(payload)
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute(
                "INSERT INTO records(scope, key, version, payload) VALUES (?, ?, 1, ?)",
                (scope, key, body),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise StorageError(f"record {scope}/{key} already exists") from e
        except sqlite3.Error as e:
            raise StorageError(f"insert failed for {scope}/{key}") from e
        finally:
            conn.close()
        logger.debug("Record inserted scope=%s key=%s", scope, key)
        return StoredRecord(scope=scope, key=key, version=1, payload=json.loads(body))

    def read(self, scope: str, key: str) -> StoredRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM records WHERE scope = ? AND key = ?",
                (scope, key),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"read failed for {scope}/{key}") from e
        finally:
            conn.close()
        return self._row_to_record(row) if row else None

    def compare_and_set(
        self,
        scope: str,
        key: str,
        expected_version: int,
        payload: Payload,
    ) -> StoredRecord | None:
        body = self._payload_to_str(payload)
        new_version = int(expected_version) + 1
        conn = self._get_conn()
        try:
            # Take the write lock before reading the version so a stale snapshot cannot win.
            conn.execute("BEGIN IMMEDIATE")
            cur = conn.execute(
                """
                UPDATE records
                SET version = ?, payload = ?
                WHERE scope = ?
                  AND key = ?
                  AND version = ?
                """,
                (new_version, body, scope, key, int(expected_version)),
            )
            conn.commit()
            if cur.rowcount != 1:
                return None
        except sqlite3.Error as e:
            raise StorageError(f"update failed for {scope}/{key}") from e
        finally:
            conn.close()
        return StoredRecord(scope=scope, key=key, version=new_version, payload=json.loads(body))

    def scan(self, scope: str) -> Iterator[StoredRecord]:
        """Yield records of one scope in insertion order, fetching in small batches."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT * FROM records WHERE scope = ? ORDER BY rowid ASC",
                (scope,),
            )
            while True:
                rows = cur.fetchmany(self._SCAN_BATCH)
                if not rows:
                    break
                for row in rows:
                    yield self._row_to_record(row)
        except sqlite3.Error as e:
            raise StorageError(f"scan failed for scope {scope}") from e
        finally:
            conn.close()

    def scopes(self) -> list[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT DISTINCT scope FROM records ORDER BY scope").fetchall()
        except sqlite3.Error as e:
            raise StorageError("listing scopes failed") from e
        finally:
            conn.close()
        return [str(r["scope"]) for r in rows]

    def count(self, scope: str | None = None) -> int:
        conn = self._get_conn()
        try:
            if scope is None:
                (n,) = conn.execute("SELECT COUNT(*) FROM records").fetchone()
            else:
                (n,) = conn.execute(
                    "SELECT COUNT(*) FROM records WHERE scope = ?", (scope,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError("count failed") from e
        finally:
            conn.close()
        return int(n)
