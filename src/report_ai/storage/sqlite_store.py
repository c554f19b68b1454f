"""SQLite-backed on-device report store used as the offline fallback."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from report_ai.domain.exceptions import StorageError

from .models import IReportStore, Report, ReportCreate, ReportUpdate, utc_now

ID_PREFIX = "local_report_"

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS reports (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    payload TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS counters (
    name TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);
"""

_BUMP_COUNTER_SQL = """
INSERT INTO counters (name, value) VALUES ('reports', 1)
ON CONFLICT(name) DO UPDATE SET value = value + 1;
"""
_READ_COUNTER_SQL = "SELECT value FROM counters WHERE name = 'reports';"

_UPSERT_SQL = """
INSERT INTO reports (id, created_at, payload) VALUES (?, ?, ?)
ON CONFLICT(id) DO UPDATE SET payload = excluded.payload;
"""

_SELECT_ONE_SQL = "SELECT payload FROM reports WHERE id = ?;"
_DELETE_SQL = "DELETE FROM reports WHERE id = ?;"
_SELECT_PAGE_SQL = """
SELECT payload FROM reports
ORDER BY created_at DESC, rowid DESC
LIMIT ? OFFSET ?;
"""


class SQLiteReportStore(IReportStore):
    """Stores whole records as JSON; ids come from an auto-incrementing counter."""

    def __init__(
        self, db_path: str | Path, *, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._db_path = str(db_path)
        self._clock = clock
        self._ensure_schema()

    async def create(self, report: ReportCreate) -> Report:
        return await asyncio.to_thread(self._create, report)

    async def update(self, report_id: str, patch: ReportUpdate) -> Optional[Report]:
        return await asyncio.to_thread(self._update, report_id, patch)

    async def get(self, report_id: str) -> Optional[Report]:
        return await asyncio.to_thread(self._get, report_id)

    async def delete(self, report_id: str) -> bool:
        return await asyncio.to_thread(self._delete, report_id)

    async def list(self, page: int = 1, page_size: int = 20) -> List[Report]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        return await asyncio.to_thread(self._list, page, page_size)

    # ------------------------------------------------------------------
    # Blocking operations, run off the event loop
    # ------------------------------------------------------------------
    def _create(self, report: ReportCreate) -> Report:
        with self._connect() as conn:
            conn.execute(_BUMP_COUNTER_SQL)
            (counter,) = conn.execute(_READ_COUNTER_SQL).fetchone()
            record = Report.new(f"{ID_PREFIX}{counter}", report, self._clock())
            self._save(conn, record)
        return record

    def _update(self, report_id: str, patch: ReportUpdate) -> Optional[Report]:
        with self._connect() as conn:
            existing = self._load(conn, report_id)
            if existing is None:
                return None
            record = existing.updated(patch, self._clock())
            self._save(conn, record)
        return record

    def _get(self, report_id: str) -> Optional[Report]:
        with self._connect() as conn:
            return self._load(conn, report_id)

    def _delete(self, report_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(_DELETE_SQL, (report_id,))
        return cursor.rowcount > 0

    def _list(self, page: int, page_size: int) -> List[Report]:
        with self._connect() as conn:
            rows = conn.execute(
                _SELECT_PAGE_SQL, (page_size, (page - 1) * page_size)
            ).fetchall()
        return [Report.model_validate_json(payload) for (payload,) in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _connect(self) -> "_Connection":
        return _Connection(self._db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(_CREATE_TABLES_SQL)

    @staticmethod
    def _save(conn: sqlite3.Connection, record: Report) -> None:
        conn.execute(
            _UPSERT_SQL,
            (record.id, record.created_at.isoformat(), record.model_dump_json()),
        )

    @staticmethod
    def _load(conn: sqlite3.Connection, report_id: str) -> Optional[Report]:
        row = conn.execute(_SELECT_ONE_SQL, (report_id,)).fetchone()
        return Report.model_validate_json(row[0]) if row else None


class _Connection:
    """Commit-on-success connection that maps driver errors to ``StorageError``."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection

    def __enter__(self) -> sqlite3.Connection:
        try:
            self._conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StorageError("Cannot open local report store") from exc
        return self._conn

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self._conn.commit()
            else:
                self._conn.rollback()
        finally:
            self._conn.close()
        if exc_type is not None and issubclass(exc_type, sqlite3.Error):
            raise StorageError(
                "Local report store operation failed", context={"reason": str(exc)}
            ) from exc
        return False
