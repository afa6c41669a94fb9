"""Type-safe SELECT builder.

Queries are assembled from field accessors rather than column strings:
either the field name or the ``Model.field`` reference installed by
``@table``.  Each accessor is resolved through the entity descriptor when
the clause is added, so a typo fails immediately with ``MappingError``
instead of reaching the database.

Examples:
    >>> find(Player).where(Player.level, ">", 10).order_by("name").get()
    [Player(name='Alex', level=20, ...)]
    >>> find(Player).where("name", "Steve").first()
    Player(name='Steve', level=5, ...)

Rendered SQL (SQLite dialect)::

    SELECT id, name, level, guild_id FROM players
    WHERE level > ? ORDER BY name ASC

Values are always bound parameters and go through the same storage
coercion as writes (UUID -> text, enum -> value, model -> identity).

Tags:
    query, predicates, select, sql-builder, recordspine
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from recordspine.core.dialect import Dialect
from recordspine.core.errors import DatabaseConnectionError, MappingError
from recordspine.core.logging import get_logger
from recordspine.mapping.descriptors import EntityDescriptor
from recordspine.mapping.fields import ENGINE_ATTR, FieldRef
from recordspine.mapping.mapper import bind_value

logger = get_logger(__name__)

T = TypeVar("T")

_UNSET: Any = object()

OPERATORS = ("=", "!=", "<>", "<", "<=", ">", ">=")
DIRECTIONS = ("ASC", "DESC")

Accessor = str | FieldRef


class RowSource(Protocol):
    """What a query needs from the engine to run."""

    @property
    def dialect(self) -> Dialect: ...

    def fetch(self, descriptor: EntityDescriptor, sql: str, params: Sequence[Any]) -> list[Any]: ...


@dataclass(frozen=True)
class Predicate:
    """One ``column <operator> value`` condition."""

    column: str
    operator: str
    value: Any

    def render(self, dialect: Dialect, index: int) -> tuple[str, tuple[Any, ...]]:
        if self.value is None:
            if self.operator == "=":
                return f"{self.column} IS NULL", ()
            if self.operator == "!=":
                return f"{self.column} IS NOT NULL", ()
        return f"{self.column} {self.operator} {dialect.placeholder(index)}", (self.value,)


@dataclass(frozen=True)
class Ordering:
    column: str
    direction: str

    def render(self) -> str:
        return f"{self.column} {self.direction}"


class Query(Generic[T]):
    """A SELECT against one model's table.

    ``where`` calls compose with AND in call order.  Only the first
    ``order_by`` takes effect.
    """

    def __init__(self, descriptor: EntityDescriptor, source: RowSource | None = None):
        self._descriptor = descriptor
        self._source = source
        self._predicates: list[Predicate] = []
        self._ordering: Ordering | None = None

    @property
    def descriptor(self) -> EntityDescriptor:
        return self._descriptor

    @property
    def predicates(self) -> list[Predicate]:
        return list(self._predicates)

    def where(self, accessor: Accessor, operator: Any, value: Any = _UNSET) -> Query[T]:
        """Add a condition.

        ``where(field, value)`` is shorthand for ``where(field, "=", value)``.

        Raises:
            MappingError: Unknown field or unsupported operator.
        """
        if value is _UNSET:
            operator, value = "=", operator
        if not isinstance(operator, str) or operator not in OPERATORS:
            raise MappingError(
                f"Unsupported operator {operator!r}; expected one of {', '.join(OPERATORS)}"
            ).with_context(entity=self._descriptor.name, table=self._descriptor.table)
        if operator == "<>":
            operator = "!="
        item = self._descriptor.resolve(accessor)
        try:
            bound = bind_value(item, value)
        except MappingError:
            raise
        except Exception as e:
            raise MappingError(
                f"Cannot bind {value!r} to column {item.name!r}: {e}", cause=e
            ).with_context(entity=self._descriptor.name, column=item.name) from e
        self._predicates.append(Predicate(item.name, operator, bound))
        return self

    def order_by(self, accessor: Accessor, direction: str = "asc") -> Query[T]:
        """Sort by one field. Later calls are ignored.

        Raises:
            MappingError: Unknown field or a direction other than asc/desc.
        """
        normalized = direction.upper() if isinstance(direction, str) else direction
        if normalized not in DIRECTIONS:
            raise MappingError(
                f"Unsupported sort direction {direction!r}; expected 'asc' or 'desc'"
            ).with_context(entity=self._descriptor.name, table=self._descriptor.table)
        item = self._descriptor.resolve(accessor)
        if self._ordering is not None:
            logger.debug(
                "query.order_by_ignored",
                table=self._descriptor.table,
                kept=self._ordering.column,
                ignored=item.name,
            )
            return self
        self._ordering = Ordering(item.name, normalized)
        return self

    def to_sql(self, dialect: Dialect | None = None, *, limit: int | None = None) -> tuple[str, tuple[Any, ...]]:
        """Render the statement and its bound parameters."""
        dialect = dialect or self._require_source().dialect
        sql = f"SELECT {', '.join(self._descriptor.column_names)} FROM {self._descriptor.table}"
        params: list[Any] = []
        if self._predicates:
            clauses = []
            for predicate in self._predicates:
                clause, values = predicate.render(dialect, len(params))
                clauses.append(clause)
                params.extend(values)
            sql += " WHERE " + " AND ".join(clauses)
        if self._ordering is not None:
            sql += " ORDER BY " + self._ordering.render()
        if limit is not None:
            sql += " " + dialect.limit(limit)
        return sql, tuple(params)

    def get(self) -> list[T]:
        """All matching rows in database order."""
        source = self._require_source()
        sql, params = self.to_sql(source.dialect)
        return source.fetch(self._descriptor, sql, params)

    def first(self) -> T | None:
        """The first matching row, or None."""
        source = self._require_source()
        sql, params = self.to_sql(source.dialect, limit=1)
        rows = source.fetch(self._descriptor, sql, params)
        return rows[0] if rows else None

    def _require_source(self) -> RowSource:
        if self._source is None:
            raise DatabaseConnectionError(
                f"{self._descriptor.name} query is not bound to an engine", retryable=False
            )
        return self._source

    def __repr__(self) -> str:
        return (
            f"Query({self._descriptor.name}, predicates={len(self._predicates)}, "
            f"order={self._ordering.render() if self._ordering else None})"
        )


def find(model: type[T]) -> Query[T]:
    """Start a query on a model bound by ``initialize()``."""
    engine = getattr(model, ENGINE_ATTR, None)
    if engine is None:
        raise DatabaseConnectionError(
            f"{getattr(model, '__name__', model)!r} is not bound to a database; call initialize() first",
            retryable=False,
        )
    return engine.find(model)


__all__ = [
    "OPERATORS",
    "Ordering",
    "Predicate",
    "Query",
    "RowSource",
    "find",
]
