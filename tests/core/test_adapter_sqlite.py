"""Tests for the SQLite adapter and the scoped-acquisition base class."""

import threading
from unittest.mock import MagicMock

import pytest

from recordspine.core.adapters import SQLiteAdapter
from recordspine.core.adapters.base import DatabaseAdapter, ExecuteResult
from recordspine.core.errors import DatabaseConnectionError
from recordspine.core.settings import DatabaseBackend


class TestSQLiteAdapter:
    def test_execute_and_query(self, sqlite_adapter):
        sqlite_adapter.execute("CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
        result = sqlite_adapter.execute("INSERT INTO t (name) VALUES (?)", ("a",))
        assert isinstance(result, ExecuteResult)
        assert result.rowcount == 1
        assert result.lastrowid == 1
        assert sqlite_adapter.query("SELECT id, name FROM t") == [{"id": 1, "name": "a"}]

    def test_query_one_returns_none_when_empty(self, sqlite_adapter):
        sqlite_adapter.execute("CREATE TABLE t (id INTEGER)")
        assert sqlite_adapter.query_one("SELECT id FROM t") is None

    def test_failed_statement_rolls_back(self, sqlite_adapter):
        sqlite_adapter.execute("CREATE TABLE t (id INTEGER UNIQUE)")
        sqlite_adapter.execute("INSERT INTO t (id) VALUES (1)")
        with pytest.raises(Exception):
            with sqlite_adapter.transaction() as conn:
                conn.cursor().execute("INSERT INTO t (id) VALUES (2)")
                conn.cursor().execute("INSERT INTO t (id) VALUES (1)")
        assert sqlite_adapter.query("SELECT id FROM t") == [{"id": 1}]

    def test_connection_released_after_failure(self, sqlite_adapter):
        with pytest.raises(Exception):
            sqlite_adapter.execute("SELECT * FROM missing_table")
        # lock was released: a second statement does not deadlock
        assert sqlite_adapter.query("SELECT 1 AS one") == [{"one": 1}]

    def test_foreign_keys_enforced(self, sqlite_adapter):
        assert sqlite_adapter.query("PRAGMA foreign_keys") == [{"foreign_keys": 1}]

    def test_usable_from_worker_threads(self, sqlite_adapter):
        sqlite_adapter.execute("CREATE TABLE t (id INTEGER)")
        threads = [
            threading.Thread(target=sqlite_adapter.execute, args=("INSERT INTO t (id) VALUES (?)", (i,)))
            for i in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(sqlite_adapter.query("SELECT id FROM t")) == 8

    def test_closed_adapter_raises(self):
        adapter = SQLiteAdapter()
        adapter.connect()
        adapter.disconnect()
        with pytest.raises(DatabaseConnectionError, match="closed"):
            adapter.query("SELECT 1")

    def test_context_manager(self):
        with SQLiteAdapter() as adapter:
            assert adapter.is_connected
            assert adapter.dialect.name == "sqlite"
        assert not adapter.is_connected


class _BrokenAdapter(DatabaseAdapter):
    """Adapter whose pool hands out nothing."""

    def __init__(self):
        super().__init__(DatabaseBackend.MYSQL)

    def connect(self):
        self._connected = True

    def disconnect(self):
        self._connected = False

    def _acquire(self):
        raise OSError("pool exhausted")

    def _release(self, conn):
        raise AssertionError("nothing was acquired")


class TestScopedAcquisition:
    def test_acquire_failure_becomes_connection_error(self):
        adapter = _BrokenAdapter()
        with pytest.raises(DatabaseConnectionError) as exc_info:
            adapter.execute("SELECT 1")
        assert isinstance(exc_info.value.cause, OSError)
        assert exc_info.value.retryable

    def test_commit_and_release_on_success(self):
        conn = MagicMock()
        adapter = _BrokenAdapter()
        adapter._acquire = MagicMock(return_value=conn)
        adapter._release = MagicMock()
        adapter.execute("UPDATE t SET x = %s", (1,))
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        adapter._release.assert_called_once_with(conn)

    def test_rollback_and_release_on_failure(self):
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = RuntimeError("deadlock")
        adapter = _BrokenAdapter()
        adapter._acquire = MagicMock(return_value=conn)
        adapter._release = MagicMock()
        with pytest.raises(RuntimeError):
            adapter.execute("UPDATE t SET x = 1")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        adapter._release.assert_called_once_with(conn)
