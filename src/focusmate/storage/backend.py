# src/focusmate/storage/backend.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

from ..core.errors import StorageError, StorageQuotaExceeded

logger = logging.getLogger(__name__)


class SqliteKVBackend:
    """
    SQLite key -> string medium shared by the keyed stores.

    One table, one row per store snapshot:
    - key:   storage key of the store (e.g. "focusmate_cache")
    - value: JSON snapshot written by the store

    quota_bytes bounds the total size of all values (0 or None = unlimited).
    A write that would exceed it raises StorageQuotaExceeded; so does SQLite's
    own "database or disk is full".

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "store.sqlite3", *, quota_bytes: int | None = None) -> None:
        self._db_path = Path(db_path)
        self._quota = int(quota_bytes) if quota_bytes else 0
        self._available = False
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
            self._available = True
        except (OSError, sqlite3.Error):
            logger.warning("KV store unavailable at %s; running memory-only", self._db_path, exc_info=True)
            return
        logger.info("KV store ready db=%s quota=%s", self._db_path, self._quota or "none")

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _is_full_error(exc: sqlite3.Error) -> bool:
        return "full" in str(exc).lower()

    # ---- public API ----

    def available(self) -> bool:
        return self._available

    def read(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._db_path}: {e}") from e
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row[0])
        except sqlite3.Error as e:
            raise StorageError(f"Read failed key={key!r}: {e}") from e
        finally:
            conn.close()

    def write(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._db_path}: {e}") from e
        try:
            if self._quota:
                (others,) = conn.execute(
                    "SELECT COALESCE(SUM(LENGTH(CAST(value AS BLOB))), 0) FROM kv WHERE key != ?",
                    (key,),
                ).fetchone()
                if int(others) + size > self._quota:
                    raise StorageQuotaExceeded(key, size, self._quota)

            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
            logger.debug("KV write key=%s bytes=%d", key, size)
        except sqlite3.Error as e:
            if self._is_full_error(e):
                raise StorageQuotaExceeded(key, size, self._quota) from e
            raise StorageError(f"Write failed key={key!r}: {e}") from e
        finally:
            conn.close()
