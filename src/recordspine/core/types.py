"""Semantic column types shared by the mapping layer and the SQL dialects."""

from __future__ import annotations

from enum import Enum


class ColumnType(str, Enum):
    """Semantic storage type of a mapped column.

    The dialect turns each member into concrete DDL (``INT``, ``VARCHAR(255)``...).
    """

    INTEGER = "integer"
    BIGINT = "bigint"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    TEXT = "text"
    UUID = "uuid"
    TIMESTAMP = "timestamp"
    ENUM = "enum"
    LIST = "list"
    CUSTOM = "custom"

    @property
    def has_length(self) -> bool:
        """Whether a length limit applies (``VARCHAR(n)`` columns)."""
        return self in (ColumnType.STRING, ColumnType.ENUM)


DEFAULT_STRING_LENGTH = 255
UUID_LENGTH = 36

__all__ = ["ColumnType", "DEFAULT_STRING_LENGTH", "UUID_LENGTH"]
