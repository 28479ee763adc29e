from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ...errors import StoreError
from ...logging_config import logger
from ..cron import truncate_to_minute
from .models import HookRecord
from .utils import parse_iso, to_storage_timestamp, utc_now


class ClaimResult(str, Enum):
    """Outcome of an atomic watermark claim."""

    CLAIMED = "claimed"
    ALREADY_FIRED = "already_fired"
    MISSING = "missing"


class HookStore:
    """Low-level persistence for hooks and their watermarks backed by SQLite."""

    def __init__(self, db_path: Path):
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._ensure_directory()
        self._ensure_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _ensure_directory(self) -> None:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:  # pragma: no cover - defensive
            logger.warning(
                "hook store directory creation failed",
                extra={"path": str(self._db_path.parent), "error": str(exc)},
            )

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                conn = sqlite3.connect(self._db_path, timeout=30, isolation_level=None)
            except sqlite3.Error as exc:
                raise StoreError(f"cannot open hook store at {self._db_path}: {exc}") from exc
            conn.row_factory = sqlite3.Row
            try:
                conn.execute("PRAGMA foreign_keys=ON;")
                yield conn
            except sqlite3.Error as exc:
                raise StoreError(str(exc)) from exc
            finally:
                conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._session() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _ensure_schema(self) -> None:
        hooks_sql = """
        CREATE TABLE IF NOT EXISTS hooks (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            url TEXT NOT NULL,
            schedule TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
        watermarks_sql = """
        CREATE TABLE IF NOT EXISTS watermarks (
            hook_id TEXT PRIMARY KEY REFERENCES hooks (id) ON DELETE CASCADE,
            last_fired TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
        with self._session() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute(hooks_sql)
            conn.execute(watermarks_sql)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def insert(self, record: Dict[str, Any]) -> str:
        columns = ", ".join(record.keys())
        placeholders = ", ".join([":" + key for key in record.keys()])
        sql = f"INSERT INTO hooks ({columns}) VALUES ({placeholders})"
        with self._session() as conn:
            conn.execute(sql, record)
        return str(record["id"])

    def fetch_one(self, hook_id: str) -> Optional[HookRecord]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM hooks WHERE id = ?", (hook_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def list_all(self) -> List[HookRecord]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM hooks ORDER BY created_at, rowid").fetchall()
        return [self._row_to_record(row) for row in rows]

    def update(self, hook_id: str, fields: Dict[str, Any]) -> bool:
        if not fields:
            return False
        assignments = ", ".join(f"{key} = :{key}" for key in fields.keys())
        sql = f"UPDATE hooks SET {assignments}, updated_at = :updated_at WHERE id = :hook_id"
        payload = {
            **fields,
            "updated_at": to_storage_timestamp(utc_now()),
            "hook_id": hook_id,
        }
        with self._session() as conn:
            cursor = conn.execute(sql, payload)
            return cursor.rowcount > 0

    def delete(self, hook_id: str) -> bool:
        with self._transaction() as conn:
            conn.execute("DELETE FROM watermarks WHERE hook_id = ?", (hook_id,))
            cursor = conn.execute("DELETE FROM hooks WHERE id = ?", (hook_id,))
            return cursor.rowcount > 0

    def count(self) -> int:
        with self._session() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM hooks").fetchone()[0])

    def clear_all(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM watermarks")
            conn.execute("DELETE FROM hooks")

    # ------------------------------------------------------------------
    # Watermarks
    # ------------------------------------------------------------------
    def get_watermark(self, hook_id: str) -> Optional[datetime]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT last_fired FROM watermarks WHERE hook_id = ?", (hook_id,)
            ).fetchone()
        return parse_iso(row["last_fired"]) if row else None

    def set_watermark(self, hook_id: str, fired_at: datetime) -> bool:
        """Overwrite the watermark; a no-op when the hook no longer exists."""
        with self._transaction() as conn:
            return self._write_watermark(conn, hook_id, fired_at)

    def claim_watermark(self, hook_id: str, minute: datetime) -> ClaimResult:
        """Atomically record *minute* unless it is already the watermark."""
        minute = truncate_to_minute(minute)
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT last_fired FROM watermarks WHERE hook_id = ?", (hook_id,)
            ).fetchone()
            if row and truncate_to_minute(parse_iso(row["last_fired"])) == minute:
                return ClaimResult.ALREADY_FIRED
            if not self._write_watermark(conn, hook_id, minute):
                return ClaimResult.MISSING
            return ClaimResult.CLAIMED

    def _write_watermark(self, conn: sqlite3.Connection, hook_id: str, fired_at: datetime) -> bool:
        cursor = conn.execute(
            """
            INSERT INTO watermarks (hook_id, last_fired, updated_at)
            SELECT id, :last_fired, :updated_at FROM hooks WHERE id = :hook_id
            ON CONFLICT (hook_id) DO UPDATE SET
                last_fired = excluded.last_fired,
                updated_at = excluded.updated_at
            """,
            {
                "hook_id": hook_id,
                "last_fired": to_storage_timestamp(fired_at),
                "updated_at": to_storage_timestamp(utc_now()),
            },
        )
        return cursor.rowcount > 0

    def _row_to_record(self, row: sqlite3.Row) -> HookRecord:
        return HookRecord.model_validate(dict(row))


__all__ = ["ClaimResult", "HookStore"]
