"""
Structured error types for recordspine.

Every failure a caller can observe is one of the typed errors below. Each
carries a category, a retry hint, structured context (entity, table,
column, operation) and the chained driver exception, so write failures that
surface through a :class:`~recordspine.persistence.scheduler.WriteHandle`
are as inspectable as synchronous ones.

Manifesto:
    - **Typed Error Hierarchy:** One error type per failure domain
    - **No silent failures:** Driver exceptions are wrapped, never dropped
    - **Rich Context:** Errors carry the entity/table they concern
    - **Error Chaining:** The original exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     RecordSpineError                         │
        │          (category, retryable, context, cause)               │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  MappingError        SchemaError          ConfigError        │
        │  (MAPPING)           (SCHEMA)             (CONFIG)           │
        │                                                              │
        │  DatabaseConnectionError   WriteError     ReadError          │
        │  (CONNECTION, retryable)   (WRITE)        (READ)             │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = MappingError("Player has no identity field")
    >>> error.with_context(entity="Player")
    MappingError('Player has no identity field', category=MAPPING)
    >>> error.to_dict()["context"]
    {'entity': 'Player'}

Guardrails:
    ❌ DON'T: Catch a driver error and only log it
    ✅ DO: Wrap it in WriteError/ReadError with cause=

    ❌ DON'T: Raise the builtin ConnectionError for pool failures
    ✅ DO: Raise DatabaseConnectionError

Tags:
    error-handling, exception-hierarchy, error-context, recordspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    MAPPING = "MAPPING"          # Model metadata, accessors
    SCHEMA = "SCHEMA"            # DDL / synchronization
    CONNECTION = "CONNECTION"    # Pool unavailable or exhausted
    WRITE = "WRITE"              # Insert / update / delete
    READ = "READ"                # Select / row mapping
    CONFIG = "CONFIG"            # Invalid settings
    INTERNAL = "INTERNAL"        # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        entity: Model class name the operation concerned
        table: Table name
        column: Column name, when a single column is at fault
        operation: ``insert``, ``update``, ``delete``, ``select``, ``create``, ``alter``
        metadata: Additional key-value pairs
    """

    entity: str | None = None
    table: str | None = None
    column: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["entity", "table", "column", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecordSpineError(Exception):
    """
    Base exception for all recordspine errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecordSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise WriteError("Insert failed", cause=exc).with_context(
                entity="Player", table="players", operation="insert"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class MappingError(RecordSpineError):
    """Model metadata is missing or an accessor does not resolve to a column."""

    default_category = ErrorCategory.MAPPING


class SchemaError(RecordSpineError):
    """
    DDL execution failed during schema synchronization.

    ``result`` holds the :class:`~recordspine.schema.synchronizer.MigrationResult`
    of the run, including the statements that did succeed.  When raised from
    ``initialize()``, ``record_context`` is the still-open context with the
    models that did migrate bound; the caller owns closing it.
    """

    default_category = ErrorCategory.SCHEMA

    def __init__(self, message: str, *, result: Any = None, record_context: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.result = result
        self.record_context = record_context


class DatabaseConnectionError(RecordSpineError):
    """Connection pool unavailable, exhausted, or not initialized."""

    default_category = ErrorCategory.CONNECTION
    default_retryable = True


class WriteError(RecordSpineError):
    """Insert, update or delete failed. Delivered through the write handle."""

    default_category = ErrorCategory.WRITE


class ReadError(RecordSpineError):
    """Select or row materialization failed."""

    default_category = ErrorCategory.READ


class ConfigError(RecordSpineError):
    """Invalid settings or unknown database backend."""

    default_category = ErrorCategory.CONFIG


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, RecordSpineError):
        return error.retryable
    return isinstance(error, (ConnectionError, BrokenPipeError))


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordSpineError",
    "MappingError",
    "SchemaError",
    "DatabaseConnectionError",
    "WriteError",
    "ReadError",
    "ConfigError",
    "is_retryable",
]
