"""Tests for the adapter registry and the MySQL adapter (driver mocked)."""

import sys
from unittest.mock import MagicMock, patch

import pytest

from recordspine.core.adapters import (
    AdapterRegistry,
    MySQLAdapter,
    SQLiteAdapter,
    adapter_registry,
    get_adapter,
)
from recordspine.core.errors import ConfigError, DatabaseConnectionError
from recordspine.core.settings import DatabaseSettings


class TestAdapterRegistry:
    def test_defaults_registered(self):
        assert adapter_registry.list_adapters() == ["mysql", "sqlite"]

    def test_sqlite_from_settings(self):
        adapter = get_adapter(DatabaseSettings(backend="sqlite", sqlite_path="/tmp/x.db"))
        assert isinstance(adapter, SQLiteAdapter)
        assert adapter.path == "/tmp/x.db"
        assert not adapter.is_connected

    def test_mysql_from_settings(self):
        adapter = get_adapter(
            DatabaseSettings(backend="mysql", database="game", user="app", max_pool_size=8)
        )
        assert isinstance(adapter, MySQLAdapter)
        assert adapter.pool_size == 8
        assert adapter.dialect.name == "mysql"

    def test_custom_factory(self):
        registry = AdapterRegistry()
        sentinel = MagicMock()
        registry.register("SQLITE", lambda settings: sentinel)
        assert registry.create(DatabaseSettings(backend="sqlite")) is sentinel


@pytest.fixture
def fake_pooling():
    """Stand-in for ``mysql.connector.pooling``."""
    pooling = MagicMock()
    connector = MagicMock(pooling=pooling)
    modules = {"mysql": MagicMock(connector=connector), "mysql.connector": connector,
               "mysql.connector.pooling": pooling}
    with patch.dict(sys.modules, modules):
        yield pooling


class TestMySQLAdapter:
    def test_pool_size_validated(self):
        with pytest.raises(ConfigError):
            MySQLAdapter(pool_size=33)
        with pytest.raises(ConfigError):
            MySQLAdapter(pool_size=0)

    def test_connect_builds_pool(self, fake_pooling):
        adapter = MySQLAdapter(host="db", database="game", username="app", password="pw", pool_size=5)
        adapter.connect()
        kwargs = fake_pooling.MySQLConnectionPool.call_args.kwargs
        assert kwargs["pool_size"] == 5
        assert kwargs["host"] == "db"
        assert kwargs["user"] == "app"
        assert kwargs["autocommit"] is False
        assert adapter.is_connected

    def test_execute_borrows_and_returns_connection(self, fake_pooling):
        conn = MagicMock()
        conn.cursor.return_value.rowcount = 1
        conn.cursor.return_value.lastrowid = 7
        fake_pooling.MySQLConnectionPool.return_value.get_connection.return_value = conn

        adapter = MySQLAdapter(database="game")
        result = adapter.execute("INSERT INTO t (a) VALUES (%s)", ("x",))

        assert result.lastrowid == 7
        conn.cursor.return_value.execute.assert_called_once_with("INSERT INTO t (a) VALUES (%s)", ("x",))
        conn.commit.assert_called_once()
        conn.close.assert_called_once()

    def test_disconnect_closes_idle_connections(self, fake_pooling):
        pool = fake_pooling.MySQLConnectionPool.return_value
        adapter = MySQLAdapter(database="game")
        adapter.connect()

        adapter.disconnect()
        adapter.disconnect()

        pool._remove_connections.assert_called_once_with()
        assert not adapter.is_connected

    def test_exhausted_pool(self, fake_pooling):
        fake_pooling.MySQLConnectionPool.return_value.get_connection.side_effect = RuntimeError(
            "Failed getting connection; pool exhausted"
        )
        adapter = MySQLAdapter(database="game")
        with pytest.raises(DatabaseConnectionError, match="pool exhausted"):
            adapter.query("SELECT 1")

    def test_unreachable_server(self, fake_pooling):
        fake_pooling.MySQLConnectionPool.side_effect = OSError("Can't connect")
        with pytest.raises(DatabaseConnectionError, match="Failed to connect to MySQL"):
            MySQLAdapter(database="game").connect()

    def test_missing_driver(self):
        with patch.dict(sys.modules, {"mysql": None, "mysql.connector": None}):
            with pytest.raises(ConfigError, match="mysql-connector-python"):
                MySQLAdapter(database="game").connect()
