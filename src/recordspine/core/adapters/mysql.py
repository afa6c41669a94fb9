"""MySQL database adapter.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package.
MySQL uses **format** (``%s``) placeholder style.

Install the driver::

    pip install mysql-connector-python
    # or:  pip install recordspine[mysql]

This adapter is import-guarded: if ``mysql.connector`` is not installed
a clear :class:`~recordspine.core.errors.ConfigError` is raised at
``connect()`` time.
"""

from __future__ import annotations

import uuid
from typing import Any

from recordspine.core.errors import ConfigError, DatabaseConnectionError
from recordspine.core.logging import get_logger
from recordspine.core.protocols import Connection
from recordspine.core.settings import MYSQL_MAX_POOL_SIZE, DatabaseBackend

from .base import DatabaseAdapter

logger = get_logger(__name__)


class MySQLAdapter(DatabaseAdapter):
    """MySQL / MariaDB database adapter.

    Uses a ``mysql.connector`` connection pool bounded by ``pool_size``.
    Borrowing from an exhausted pool raises ``DatabaseConnectionError``
    rather than blocking.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 20,
        connect_timeout: int = 10,
        charset: str = "utf8mb4",
        **kwargs: Any,
    ):
        super().__init__(DatabaseBackend.MYSQL)
        if not 1 <= pool_size <= MYSQL_MAX_POOL_SIZE:
            raise ConfigError(f"MySQL pool_size must be between 1 and {MYSQL_MAX_POOL_SIZE}")
        self._host = host
        self._port = port
        self._database = database
        self._username = username
        self._password = password
        self._pool_size = pool_size
        self._connect_timeout = connect_timeout
        self._charset = charset
        self._options = kwargs
        self._pool: Any = None

    @property
    def pool_size(self) -> int:
        return self._pool_size

    def connect(self) -> None:
        """Create the MySQL connection pool."""
        if self._pool is not None:
            return
        try:
            from mysql.connector import pooling
        except ImportError:
            raise ConfigError(
                "mysql-connector-python is required for MySQL. "
                "Install with: pip install mysql-connector-python"
            ) from None

        try:
            self._pool = pooling.MySQLConnectionPool(
                pool_name=f"recordspine_{uuid.uuid4().hex[:8]}",
                pool_size=self._pool_size,
                host=self._host,
                port=self._port,
                database=self._database,
                user=self._username,
                password=self._password,
                charset=self._charset,
                connect_timeout=self._connect_timeout,
                autocommit=False,
                **self._options,
            )
            self._connected = True
            self._closed = False
            logger.info(
                "adapter.connected",
                backend="mysql",
                host=self._host,
                database=self._database,
                pool_size=self._pool_size,
            )
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close idle pooled connections; borrowed ones close when released."""
        pool, self._pool = self._pool, None
        if pool is not None:
            try:
                pool._remove_connections()
            except Exception as e:
                logger.warning("adapter.pool_close_failed", backend="mysql", error=str(e))
        self._connected = False
        self._closed = True

    def _acquire(self) -> Connection:
        if self._pool is None:
            raise DatabaseConnectionError("MySQL pool is not open", retryable=False)
        return self._pool.get_connection()

    def _release(self, conn: Connection) -> None:
        # pooled connections return to the pool on close()
        try:
            conn.close()
        except Exception as e:
            logger.warning("adapter.release_failed", backend="mysql", error=str(e))


__all__ = [
    "MySQLAdapter",
]
