"""SqliteBackend — relational storage for components and their history.

Two tables:
    components(id, name, content, updated_at)
    component_history(id AUTOINCREMENT, component_id, content, created_at)

Timestamps are integer epoch milliseconds. History is ordered by
created_at DESC with the autoincrement id as tie-break, so versions
written in the same millisecond keep insertion order.
"""

from __future__ import annotations

import contextlib
import sqlite3
import threading
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import structlog

from memorybank.exceptions import BackendError
from memorybank.schemas.component import Component, HistoryVersion
from memorybank.storage.base import Backend, utc_now

logger = structlog.get_logger()

MEMORY_DATABASE = ":memory:"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS components (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        content TEXT NOT NULL,
        updated_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS component_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        component_id TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        FOREIGN KEY (component_id) REFERENCES components (id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_component_history_component_id
    ON component_history (component_id)
    """,
)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(ts: datetime) -> int:
    return (ts - _EPOCH) // timedelta(milliseconds=1)


def from_millis(ms: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


class SqliteBackend(Backend):
    """SQLite storage strategy.

    Holds a single connection guarded by a lock; the connection is
    opened lazily by initialize() and released by close().
    """

    name = "sqlite"

    def __init__(self, database_path: Path | str) -> None:
        self._database_path = database_path if database_path == MEMORY_DATABASE else Path(database_path)
        self._lock = threading.RLock()
        self._connection: sqlite3.Connection | None = None

    @property
    def database_path(self) -> Path | str:
        return self._database_path

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        with self._lock:
            try:
                if self._connection is None:
                    if isinstance(self._database_path, Path):
                        self._database_path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(str(self._database_path), check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    self._connection = conn
                with self._connection:
                    for statement in _SCHEMA:
                        self._connection.execute(statement)
            except (OSError, sqlite3.Error) as exc:
                raise BackendError(
                    f"Failed to initialize database at {self._database_path}: {exc}",
                    operation="initialize",
                ) from exc
        logger.debug("SQLite backend initialized", database_path=str(self._database_path))

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                try:
                    self._connection.close()
                except sqlite3.Error as exc:
                    raise BackendError(
                        f"Failed to close database: {exc}",
                        operation="close",
                    ) from exc
                finally:
                    self._connection = None

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def get_component(self, component_id: str) -> Component | None:
        with self._transaction("get_component", component_id) as conn:
            row = conn.execute(
                "SELECT id, content, updated_at FROM components WHERE id = ?",
                (component_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_component(row)

    def save_component(self, component_id: str, content: str) -> Component:
        now = utc_now()
        now_ms = to_millis(now)
        with self._transaction("save_component", component_id) as conn:
            conn.execute(
                """
                INSERT INTO components (id, name, content, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    content = excluded.content,
                    updated_at = excluded.updated_at
                """,
                (component_id, component_id, content, now_ms),
            )
        return Component(id=component_id, content=content, updated_at=from_millis(now_ms))

    def delete_component(self, component_id: str) -> bool:
        with self._transaction("delete_component", component_id) as conn:
            history = conn.execute(
                "DELETE FROM component_history WHERE component_id = ?",
                (component_id,),
            )
            current = conn.execute(
                "DELETE FROM components WHERE id = ?",
                (component_id,),
            )
            return (history.rowcount + current.rowcount) > 0

    def get_all_components(self) -> list[Component]:
        with self._transaction("get_all_components") as conn:
            rows = conn.execute(
                "SELECT id, content, updated_at FROM components ORDER BY id",
            ).fetchall()
        return [self._row_to_component(row) for row in rows]

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def save_history_version(self, component_id: str, content: str) -> HistoryVersion:
        created_ms = to_millis(utc_now())
        with self._transaction("save_history_version", component_id) as conn:
            cursor = conn.execute(
                """
                INSERT INTO component_history (component_id, content, created_at)
                VALUES (?, ?, ?)
                """,
                (component_id, content, created_ms),
            )
            row_id = cursor.lastrowid
        return HistoryVersion(
            component_id=component_id,
            version_id=str(row_id),
            content=content,
            timestamp=from_millis(created_ms),
        )

    def get_history_versions(
        self,
        component_id: str,
        limit: int | None = None,
    ) -> list[HistoryVersion]:
        if limit is not None and limit <= 0:
            return []
        with self._transaction("get_history_versions", component_id) as conn:
            rows = conn.execute(
                """
                SELECT id, component_id, content, created_at FROM component_history
                WHERE component_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (component_id, -1 if limit is None else limit),
            ).fetchall()
        return [self._row_to_version(row) for row in rows]

    def get_history_version(self, component_id: str, version_id: str) -> HistoryVersion | None:
        with self._transaction("get_history_version", component_id) as conn:
            row = None
            if version_id.isdecimal() and version_id.isascii():
                row = conn.execute(
                    """
                    SELECT id, component_id, content, created_at FROM component_history
                    WHERE component_id = ? AND id = ?
                    """,
                    (component_id, int(version_id)),
                ).fetchone()
            if row is None:
                created_ms = self._parse_timestamp(version_id)
                if created_ms is not None:
                    row = conn.execute(
                        """
                        SELECT id, component_id, content, created_at FROM component_history
                        WHERE component_id = ? AND created_at = ?
                        ORDER BY id DESC
                        LIMIT 1
                        """,
                        (component_id, created_ms),
                    ).fetchone()
        if row is None:
            return None
        return self._row_to_version(row)

    def prune_history(self, component_id: str, keep_count: int) -> int:
        if keep_count < 0:
            raise ValueError(f"keep_count must be >= 0, got {keep_count}")
        with self._transaction("prune_history", component_id) as conn:
            # Two steps: select the ids to keep, then delete the rest.
            rows = conn.execute(
                """
                SELECT id FROM component_history
                WHERE component_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (component_id, keep_count),
            ).fetchall()
            keep_ids = [row["id"] for row in rows]

            if keep_ids:
                placeholders = ",".join("?" for _ in keep_ids)
                cursor = conn.execute(
                    f"""
                    DELETE FROM component_history
                    WHERE component_id = ? AND id NOT IN ({placeholders})
                    """,
                    (component_id, *keep_ids),
                )
            else:
                cursor = conn.execute(
                    "DELETE FROM component_history WHERE component_id = ?",
                    (component_id,),
                )
            removed = cursor.rowcount

        if removed:
            logger.debug(
                "History pruned",
                component_id=component_id,
                removed=removed,
                kept=keep_count,
            )
        return removed

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _transaction(
        self,
        operation: str,
        component_id: str | None = None,
    ) -> Iterator[sqlite3.Connection]:
        """Run a block in one transaction, wrapping sqlite errors."""
        with self._lock:
            if self._connection is None:
                self.initialize()
            conn = self._connection
            try:
                with conn:
                    yield conn
            except sqlite3.Error as exc:
                target = f" for component {component_id}" if component_id else ""
                raise BackendError(
                    f"Database error during {operation}{target}: {exc}",
                    component_id=component_id,
                    operation=operation,
                ) from exc

    @staticmethod
    def _parse_timestamp(value: str) -> int | None:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return to_millis(parsed)

    @staticmethod
    def _row_to_component(row: sqlite3.Row) -> Component:
        return Component(
            id=row["id"],
            content=row["content"],
            updated_at=from_millis(row["updated_at"]),
        )

    @staticmethod
    def _row_to_version(row: sqlite3.Row) -> HistoryVersion:
        return HistoryVersion(
            component_id=row["component_id"],
            version_id=str(row["id"]),
            content=row["content"],
            timestamp=from_millis(row["created_at"]),
        )

    def __repr__(self) -> str:
        return f"SqliteBackend(database_path={str(self._database_path)!r})"
