"""Database adapter base class.

Manifesto:
    Every database operation in recordspine borrows a connection for exactly
    its own duration.  The base class owns that scoped-acquisition contract
    (acquire, commit or roll back, release) plus the cursor plumbing; concrete
    adapters only say how to open the pool and hand out a connection.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``_acquire()``, ``_release()``
    - ``transaction()`` context manager with deterministic release
    - ``execute()`` / ``query()`` / ``query_one()`` over DB-API cursors
    - Pool failures surface as ``DatabaseConnectionError``
    - Context-manager protocol for adapter lifecycle

Tags:
    recordspine, database, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from recordspine.core.dialect import Dialect, get_dialect
from recordspine.core.errors import DatabaseConnectionError, RecordSpineError
from recordspine.core.logging import get_logger
from recordspine.core.protocols import Connection
from recordspine.core.settings import DatabaseBackend

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of a data-modifying statement."""

    rowcount: int
    lastrowid: Any = None


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Subclasses implement pool lifecycle and connection hand-out; the base
    class implements scoped transactions and statement execution.
    """

    def __init__(self, backend: DatabaseBackend):
        self._backend = backend
        self._connected = False
        self._closed = False
        self._dialect: Dialect = get_dialect(backend.value)

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def backend(self) -> DatabaseBackend:
        """Database backend."""
        return self._backend

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """Open the connection pool."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection pool."""
        ...

    @abstractmethod
    def _acquire(self) -> Connection:
        """Borrow one connection from the pool."""
        ...

    @abstractmethod
    def _release(self, conn: Connection) -> None:
        """Return a borrowed connection to the pool."""
        ...

    def _checkout(self) -> Connection:
        if self._closed:
            raise DatabaseConnectionError(
                f"{self._backend.value} adapter has been closed", retryable=False
            )
        if not self._connected:
            self.connect()
        try:
            return self._acquire()
        except RecordSpineError:
            raise
        except Exception as e:
            raise DatabaseConnectionError(
                f"Could not acquire a {self._backend.value} connection: {e}",
                cause=e,
            ) from e

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Scoped connection: commit on success, roll back on failure, always release."""
        conn = self._checkout()
        try:
            yield conn
            conn.commit()
        except BaseException:
            try:
                conn.rollback()
            except Exception as rollback_error:
                logger.warning("adapter.rollback_failed", error=str(rollback_error))
            raise
        finally:
            self._release(conn)

    def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        """Execute a data-modifying or DDL statement in its own transaction."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, tuple(params))
                return ExecuteResult(rowcount=cursor.rowcount, lastrowid=cursor.lastrowid)
            finally:
                cursor.close()

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts keyed by column name."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, tuple(params))
                rows = cursor.fetchall()
                columns = [desc[0] for desc in cursor.description or ()]
            finally:
                cursor.close()
        return [dict(zip(columns, tuple(row), strict=False)) for row in rows]

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "DatabaseAdapter",
    "ExecuteResult",
]
