from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from queue import Empty, Full, Queue
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)


class SqliteConnectionPool:
    """Thread-safe connection pool for SQLite."""

    def __init__(self, db_path: Path, max_connections: int = 5) -> None:
        self._db_path = db_path
        self._max_connections = max_connections
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=max_connections)
        self._schema_lock = threading.Lock()
        self._schema_initialized = False

    def _ensure_initialized(self, conn: sqlite3.Connection) -> None:
        if self._schema_initialized:
            return
        with self._schema_lock:
            if self._schema_initialized:
                return
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                "CREATE TABLE IF NOT EXISTS items ("
                "  key TEXT PRIMARY KEY,"
                "  value TEXT NOT NULL"
                ")"
            )
            conn.commit()
            self._schema_initialized = True

    def _create_connection(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA busy_timeout=5000")
        self._ensure_initialized(conn)
        logger.debug("Opened SQLite connection to %s", self._db_path)
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Acquire a connection from the pool, returning it when done."""
        try:
            conn = self._pool.get_nowait()
        except Empty:
            conn = self._create_connection()

        try:
            yield conn
        finally:
            try:
                self._pool.put_nowait(conn)
            except Full:
                conn.close()


class SqliteKeyValueStore:
    """Persistent string-only KeyValueStore backed by a single SQLite table.

    Offers exactly the three primitives a cache needs (no enumeration, no
    expiration); each call commits on its own.
    """

    def __init__(self, db_path: Path) -> None:
        self._pool = SqliteConnectionPool(db_path)

    def get_item(self, key: str) -> str | None:
        with self._pool.connection() as conn:
            row = conn.execute("SELECT value FROM items WHERE key = ?", (key,)).fetchone()
            if row is None:
                return None
            return str(row[0])

    def set_item(self, key: str, value: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("INSERT OR REPLACE INTO items (key, value) VALUES (?, ?)", (key, value))
            conn.commit()

    def remove_item(self, key: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM items WHERE key = ?", (key,))
            conn.commit()
