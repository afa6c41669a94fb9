"""SQL dialect abstraction for the schema synchronizer and query builder.

Provides a ``Dialect`` protocol and concrete implementations for the
supported backends.  Every piece of SQL that differs between MySQL and
SQLite (placeholders, DDL types, identity columns, catalog introspection)
comes from a ``Dialect`` method; the rest of the library only interpolates
the returned fragments.

Architecture::

    ┌────────────────────────────────────────────────────────────────┐
    │  sql = f"SELECT * FROM {t} WHERE {c} = {d.placeholder(0)}"      │
    │  ddl = f"{col} {d.column_type(ColumnType.STRING, 32)}"          │
    └────────────────────────────────────────────────────────────────┘
                              │
                              ▼
              ┌────────────────────┐  ┌─────────────────────────┐
              │ MySQL              │  │ SQLite                  │
              │ %s placeholders    │  │ ? placeholders          │
              │ INT PRIMARY KEY    │  │ INTEGER PRIMARY KEY     │
              │   AUTO_INCREMENT   │  │   AUTOINCREMENT         │
              │ INFORMATION_SCHEMA │  │ pragma_table_info()     │
              └────────────────────┘  └─────────────────────────┘

Examples:
    >>> from recordspine.core.dialect import get_dialect
    >>> d = get_dialect("mysql")
    >>> d.placeholders(3)
    '%s, %s, %s'
    >>> d.column_type(ColumnType.UUID)
    'VARCHAR(36)'

Guardrails:
    ❌ DON'T: Write backend-specific SQL outside this module
    ✅ DO: Add a Dialect method and implement it for every backend

Tags:
    dialect, sql, ddl, portability, database, recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from recordspine.core.errors import ConfigError
from recordspine.core.types import DEFAULT_STRING_LENGTH, UUID_LENGTH, ColumnType


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a SQL fragment (or full statement) valid for the
    target database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'mysql'``)."""
        ...

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    # -- DDL ---------------------------------------------------------------

    def column_type(self, column_type: ColumnType, length: int | None = None) -> str:
        """DDL type for a semantic column type."""
        ...

    def identity_type(self, column_type: ColumnType) -> str:
        """Full DDL type of an auto-incrementing primary key column."""
        ...

    def catalog_query(self) -> str:
        """Query returning ``(column_name, type_name)`` rows for one table.

        Accepts exactly one placeholder: the table name.  Returns no rows
        when the table does not exist.
        """
        ...

    def add_reference_column(self, table: str, column: str, type_sql: str, reference: str) -> tuple[str, ...]:
        """ALTER statements appending a foreign-key column to an existing table.

        ``reference`` is the rendered target, e.g. ``guilds(id)``.
        """
        ...

    # -- DML ---------------------------------------------------------------

    def empty_insert(self, table: str) -> str:
        """INSERT statement for a row with only generated values."""
        ...

    def limit(self, count: int) -> str:
        """Row-limit clause appended to a SELECT."""
        ...


class _BaseDialect:
    """Shared type mapping; subclasses override the backend differences."""

    _types: dict[ColumnType, str] = {
        ColumnType.INTEGER: "INT",
        ColumnType.BIGINT: "BIGINT",
        ColumnType.FLOAT: "DOUBLE",
        ColumnType.BOOLEAN: "BOOLEAN",
        ColumnType.TEXT: "TEXT",
        ColumnType.UUID: f"VARCHAR({UUID_LENGTH})",
        ColumnType.TIMESTAMP: "DATETIME",
        ColumnType.LIST: "TEXT",
        ColumnType.CUSTOM: "TEXT",
    }

    def column_type(self, column_type: ColumnType, length: int | None = None) -> str:
        if column_type.has_length:
            return f"VARCHAR({length or DEFAULT_STRING_LENGTH})"
        return self._types.get(column_type, "TEXT")

    def limit(self, count: int) -> str:
        return f"LIMIT {int(count)}"


class MySQLDialect(_BaseDialect):
    """MySQL dialect: ``%s`` placeholders (mysql.connector), ``AUTO_INCREMENT``."""

    # Fractional seconds are dropped by a plain DATETIME
    _types = {**_BaseDialect._types, ColumnType.TIMESTAMP: "DATETIME(6)"}

    @property
    def name(self) -> str:
        return "mysql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def identity_type(self, column_type: ColumnType) -> str:
        return f"{self.column_type(column_type)} PRIMARY KEY AUTO_INCREMENT"

    def catalog_query(self) -> str:
        return (
            "SELECT COLUMN_NAME, UPPER(DATA_TYPE) FROM INFORMATION_SCHEMA.COLUMNS "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s "
            "ORDER BY ORDINAL_POSITION"
        )

    def add_reference_column(self, table: str, column: str, type_sql: str, reference: str) -> tuple[str, ...]:
        # InnoDB ignores an inline REFERENCES clause on a column definition
        return (
            f"ALTER TABLE {table} ADD COLUMN {column} {type_sql}",
            f"ALTER TABLE {table} ADD FOREIGN KEY ({column}) REFERENCES {reference}",
        )

    def empty_insert(self, table: str) -> str:
        return f"INSERT INTO {table} () VALUES ()"


class SQLiteDialect(_BaseDialect):
    """SQLite dialect: ``?`` placeholders, rowid-aliased identity."""

    _types = {**_BaseDialect._types, ColumnType.FLOAT: "REAL"}

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def identity_type(self, column_type: ColumnType) -> str:  # noqa: ARG002
        # Only the exact INTEGER spelling aliases the rowid
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def catalog_query(self) -> str:
        return "SELECT name, UPPER(type) FROM pragma_table_info(?) ORDER BY cid"

    def add_reference_column(self, table: str, column: str, type_sql: str, reference: str) -> tuple[str, ...]:
        # SQLite cannot add a table constraint later, only a column constraint
        return (f"ALTER TABLE {table} ADD COLUMN {column} {type_sql} REFERENCES {reference}",)

    def empty_insert(self, table: str) -> str:
        return f"INSERT INTO {table} DEFAULT VALUES"


_DIALECTS: dict[str, Dialect] = {
    "mysql": MySQLDialect(),
    "sqlite": SQLiteDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name (``'mysql'`` or ``'sqlite'``).

    Raises:
        ConfigError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ConfigError(f"Unknown dialect '{db_type}'. Supported: {sorted(_DIALECTS)}")
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (third-party drivers, test doubles)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "MySQLDialect",
    "SQLiteDialect",
    "get_dialect",
    "register_dialect",
]
