"""Database adapters -- scoped connection pools for MySQL and SQLite.

Each adapter is **import-guarded**: the MySQL driver is only required at
``connect()`` time, not at import time.  Install the extra::

    pip install recordspine[mysql]   # mysql-connector-python

Architecture::

    DatabaseAdapter (base.py)        Scoped transactions, execute/query
        |-- MySQLAdapter             mysql.connector pooling (optional)
        |-- SQLiteAdapter            stdlib sqlite3 (always available)

    AdapterRegistry (registry.py)    backend name -> adapter factory

Guardrails:
    ❌ ``conn.execute("SELECT * FROM t WHERE id=" + user_input)``
    ✅ ``adapter.query("SELECT * FROM t WHERE id = %s", (user_input,))``
    ❌ Importing optional drivers at module scope
    ✅ Import-guarded at ``connect()`` time with clear ``ConfigError``
"""

from .base import DatabaseAdapter, ExecuteResult
from .mysql import MySQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter
from .sqlite import SQLiteAdapter

__all__ = [
    "DatabaseAdapter",
    "ExecuteResult",
    "MySQLAdapter",
    "SQLiteAdapter",
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
