"""SQLite implementation of the durable store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any, List, Optional

from ..errors import StorageError
from .base import DurableStore, child_names, normalize_path


class SQLiteStore(DurableStore):
    """Persist values as JSON text in a single SQLite table."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                path TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        try:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()
            return cur.rowcount
        except sqlite3.Error as e:
            raise StorageError(f"SQLite write failed: {e}") from e

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        try:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"SQLite read failed: {e}") from e

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        try:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"SQLite read failed: {e}") from e

    # ------------------------------------------------------------------
    # Store API
    async def load(self, path: str) -> Optional[Any]:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT value FROM kv_store WHERE path = ?",
            normalize_path(path),
        )
        if not row:
            return None
        return json.loads(row["value"])

    async def save(self, path: str, value: Any) -> None:
        try:
            encoded = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {path} is not JSON serializable: {e}") from e
        await asyncio.to_thread(
            self._execute,
            "INSERT OR REPLACE INTO kv_store (path, value) VALUES (?, ?)",
            normalize_path(path),
            encoded,
        )

    async def exists(self, path: str) -> bool:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT 1 FROM kv_store WHERE path = ?",
            normalize_path(path),
        )
        return row is not None

    async def delete(self, path: str) -> bool:
        deleted = await asyncio.to_thread(
            self._execute,
            "DELETE FROM kv_store WHERE path = ?",
            normalize_path(path),
        )
        return deleted > 0

    async def list(self, prefix: str) -> List[str]:
        base = normalize_path(prefix)
        pattern = f"{base}/%" if base else "%"
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT path FROM kv_store WHERE path LIKE ?",
            pattern,
        )
        return child_names((r["path"] for r in rows), prefix)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)
