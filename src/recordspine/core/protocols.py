"""
Canonical protocol definitions for recordspine.

Components depend on these shapes, never on a driver module, so the same
engine runs on ``sqlite3``, ``mysql.connector`` or a test double.

Architecture:
    ::

        Connection      DB-API 2.0 connection (cursor/commit/rollback/close)
        Cursor          DB-API 2.0 cursor (execute/fetch*/description/lastrowid)
        ConnectionPool  scoped acquisition + dialect; implemented by
                        recordspine.core.adapters.DatabaseAdapter

Guardrails:
    ❌ DON'T: Import sqlite3 or mysql.connector outside core.adapters
    ✅ DO: Type against Connection / ConnectionPool

Tags:
    protocol, connection, database, recordspine, contracts
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from recordspine.core.dialect import Dialect


@runtime_checkable
class Cursor(Protocol):
    """Minimal DB-API 2.0 cursor."""

    description: Sequence[Sequence[Any]] | None
    rowcount: int
    lastrowid: Any

    def execute(self, sql: str, params: Sequence[Any] = ...) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list[Any]: ...

    def close(self) -> None: ...


@runtime_checkable
class Connection(Protocol):
    """Minimal DB-API 2.0 connection."""

    def cursor(self) -> Any: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class ConnectionPool(Protocol):
    """Source of scoped connections.

    ``transaction()`` acquires a connection, commits on success, rolls back
    on failure and always releases it.
    """

    @property
    def dialect(self) -> Dialect: ...

    def transaction(self) -> AbstractContextManager[Connection]: ...


__all__ = ["Cursor", "Connection", "ConnectionPool"]
