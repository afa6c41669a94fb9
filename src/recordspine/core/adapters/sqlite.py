"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
import threading
from typing import Any

from recordspine.core.errors import DatabaseConnectionError
from recordspine.core.protocols import Connection
from recordspine.core.settings import DatabaseBackend

from .base import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module with one shared connection whose use is
    serialized by a lock, so an in-memory database is visible to every worker
    thread.  Suitable for:
    - Development and testing
    - Single-process applications
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        super().__init__(DatabaseBackend.SQLITE)
        self._path = path
        self._timeout = timeout
        self._options = kwargs
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def connect(self) -> None:
        """Connect to SQLite database."""
        if self._conn is not None:
            return
        uri = self._path.startswith("file:")
        try:
            self._conn = sqlite3.connect(
                self._path,
                timeout=self._timeout,
                check_same_thread=False,
                uri=uri,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._connected = True
            self._closed = False
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close SQLite connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        self._connected = False
        self._closed = True

    def _acquire(self) -> Connection:
        self._lock.acquire()
        if self._conn is None:
            self._lock.release()
            raise DatabaseConnectionError("SQLite connection is not open", retryable=False)
        return self._conn

    def _release(self, conn: Connection) -> None:
        self._lock.release()


__all__ = [
    "SQLiteAdapter",
]
