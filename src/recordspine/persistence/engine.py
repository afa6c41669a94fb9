"""Persistence engine: save/delete through the write pool, synchronous reads.

Manifesto:
    The engine is the one place that turns an entity into SQL.  It decides
    insert-vs-update from the identity, snapshots the field values on the
    caller's thread, hands the statement to the
    :class:`~recordspine.persistence.scheduler.WriteScheduler` and writes
    the generated identity back once the insert has run.  Every failure,
    whether it happens while snapshotting or inside the worker, reaches the
    caller through the returned handle.

ARCHITECTURE
────────────
::

    save(entity)
      ├── describe(type)                (MetadataRegistry, cached)
      ├── snapshot values               (caller thread: adapters, coercion)
      │     identity None/0 → INSERT    else → UPDATE ... WHERE id = ?
      └── scheduler.submit(_apply)      → WriteHandle[entity]
                 └── adapter.execute()  (scoped connection)
                       └── lastrowid → entity.id

    find_by_id / find().get()
      └── adapter.query() → ResultMapper.map() (+ one-level relation lookup)

Tags:
    persistence, active-record, insert, update, delete, recordspine

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from recordspine.core.adapters.base import DatabaseAdapter
from recordspine.core.dialect import Dialect
from recordspine.core.errors import (
    MappingError,
    ReadError,
    RecordSpineError,
    WriteError,
)
from recordspine.core.logging import get_logger
from recordspine.mapping.descriptors import EntityDescriptor, ForeignKeyDescriptor
from recordspine.mapping.mapper import ResultMapper, relation_identity, to_storage
from recordspine.mapping.registry import MetadataRegistry
from recordspine.persistence.scheduler import WriteHandle, WriteScheduler
from recordspine.query.builder import Query

logger = get_logger(__name__)

T = TypeVar("T")

RelationLoading = Literal["eager", "none"]
Operation = Literal["insert", "update", "delete"]


@dataclass(frozen=True)
class WriteStatement:
    """A fully bound write, captured before it is enqueued."""

    operation: Operation
    sql: str
    params: tuple[Any, ...]


class PersistenceEngine:
    """Active-record surface over one adapter, registry and write scheduler."""

    def __init__(
        self,
        adapter: DatabaseAdapter,
        registry: MetadataRegistry,
        scheduler: WriteScheduler,
        *,
        relation_loading: RelationLoading = "eager",
    ):
        if relation_loading not in ("eager", "none"):
            raise ValueError(f"relation_loading must be 'eager' or 'none', got {relation_loading!r}")
        self._adapter = adapter
        self._registry = registry
        self._scheduler = scheduler
        self._mapper = ResultMapper(
            self._load_related,
            resolve_relations=relation_loading == "eager",
        )

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    @property
    def registry(self) -> MetadataRegistry:
        return self._registry

    @property
    def scheduler(self) -> WriteScheduler:
        return self._scheduler

    @property
    def mapper(self) -> ResultMapper:
        return self._mapper

    @property
    def dialect(self) -> Dialect:
        return self._adapter.dialect

    def describe(self, model: type) -> EntityDescriptor:
        return self._registry.describe(model)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, entity: T) -> WriteHandle[T]:
        """Insert (identity unset) or update (identity set) ``entity``.

        Returns immediately.  The handle resolves to the same entity, whose
        identity is assigned once an insert has completed.
        """
        try:
            descriptor = self.describe(type(entity))
            statement = self.write_statement(descriptor, entity)
        except RecordSpineError as e:
            return WriteHandle.failed(e)
        except Exception as e:
            return WriteHandle.failed(
                WriteError(f"Cannot extract values of {type(entity).__name__}: {e}", cause=e)
                .with_context(entity=type(entity).__name__, operation="extract")
            )
        if statement is None:
            return WriteHandle.completed(entity)
        return self._scheduler.submit(self._apply, descriptor, entity, statement)

    def delete(self, entity: Any) -> WriteHandle[None]:
        """Delete the row of ``entity`` by its identity."""
        try:
            descriptor = self.describe(type(entity))
        except RecordSpineError as e:
            return WriteHandle.failed(e)
        if descriptor.is_new(entity):
            return WriteHandle.failed(
                WriteError(f"Cannot delete {descriptor.name} without an identity").with_context(
                    entity=descriptor.name, table=descriptor.table, operation="delete"
                )
            )
        return self._submit_delete(descriptor, descriptor.identity_of(entity))

    def delete_by_id(self, model: type, identity: Any) -> WriteHandle[None]:
        """Delete the row of ``model`` whose identity is ``identity``."""
        try:
            descriptor = self.describe(model)
        except RecordSpineError as e:
            return WriteHandle.failed(e)
        if identity is None:
            return WriteHandle.failed(
                WriteError(f"Cannot delete {descriptor.name} without an identity").with_context(
                    entity=descriptor.name, table=descriptor.table, operation="delete"
                )
            )
        return self._submit_delete(descriptor, identity)

    def write_statement(self, descriptor: EntityDescriptor, entity: Any) -> WriteStatement | None:
        """Bind the INSERT or UPDATE for ``entity`` from its current field values.

        Returns None when there is nothing to update (identity-only model).
        """
        placeholder = self.dialect.placeholder
        identity = descriptor.identity
        names: list[str] = []
        params: list[Any] = []
        for item in descriptor.fields:
            if item is identity:
                continue
            names.append(item.name)
            params.append(self._storage_value(descriptor, item, getattr(entity, item.field_name)))

        if descriptor.is_new(entity):
            if not names:
                return WriteStatement("insert", self.dialect.empty_insert(descriptor.table), ())
            sql = (
                f"INSERT INTO {descriptor.table} ({', '.join(names)}) "
                f"VALUES ({self.dialect.placeholders(len(names))})"
            )
            return WriteStatement("insert", sql, tuple(params))

        if not names:
            return None
        assignments = ", ".join(f"{name} = {placeholder(i)}" for i, name in enumerate(names))
        sql = (
            f"UPDATE {descriptor.table} SET {assignments} "
            f"WHERE {identity.name} = {placeholder(len(names))}"
        )
        return WriteStatement("update", sql, (*params, descriptor.identity_of(entity)))

    def _storage_value(self, descriptor: EntityDescriptor, item: Any, value: Any) -> Any:
        if isinstance(item, ForeignKeyDescriptor):
            try:
                return relation_identity(item, value)
            except MappingError as e:
                raise WriteError(str(e), cause=e).with_context(
                    entity=descriptor.name, table=descriptor.table, column=item.name
                ) from e
        return to_storage(item, value)

    def _apply(self, descriptor: EntityDescriptor, entity: T, statement: WriteStatement) -> T:
        try:
            result = self._adapter.execute(statement.sql, statement.params)
        except Exception as e:
            raise self._write_failure(descriptor, statement.operation, e) from e
        if statement.operation == "insert":
            object.__setattr__(entity, descriptor.identity.field_name, result.lastrowid)
        elif result.rowcount == 0:
            logger.debug(
                "write.update_no_rows",
                table=descriptor.table,
                identity=descriptor.identity_of(entity),
            )
        logger.debug(
            "write.applied",
            operation=statement.operation,
            table=descriptor.table,
            identity=descriptor.identity_of(entity),
        )
        return entity

    def _submit_delete(self, descriptor: EntityDescriptor, identity: Any) -> WriteHandle[None]:
        sql = (
            f"DELETE FROM {descriptor.table} "
            f"WHERE {descriptor.identity_column} = {self.dialect.placeholder(0)}"
        )
        return self._scheduler.submit(
            self._apply_delete, descriptor, WriteStatement("delete", sql, (identity,))
        )

    def _apply_delete(self, descriptor: EntityDescriptor, statement: WriteStatement) -> None:
        try:
            self._adapter.execute(statement.sql, statement.params)
        except Exception as e:
            raise self._write_failure(descriptor, "delete", e) from e
        logger.debug("write.applied", operation="delete", table=descriptor.table, identity=statement.params[0])
        return None

    def _write_failure(self, descriptor: EntityDescriptor, operation: str, error: Exception) -> RecordSpineError:
        logger.error(
            "write.failed",
            operation=operation,
            table=descriptor.table,
            entity=descriptor.name,
            error=str(error),
        )
        if isinstance(error, RecordSpineError):
            return error
        return WriteError(
            f"{operation.capitalize()} on {descriptor.table} failed: {error}", cause=error
        ).with_context(entity=descriptor.name, table=descriptor.table, operation=operation)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(self, model: type[T]) -> Query[T]:
        """Start a query on ``model``."""
        return Query(self.describe(model), self)

    def find_by_id(self, model: type[T], identity: Any) -> T | None:
        """Load one entity by identity (synchronous)."""
        if identity is None:
            return None
        descriptor = self.describe(model)
        return self.find(model).where(descriptor.identity.field_name, identity).first()

    def fetch(self, descriptor: EntityDescriptor, sql: str, params: Sequence[Any]) -> list[Any]:
        """Run a SELECT and materialize every row."""
        rows = self._select(descriptor, sql, params)
        return [self._mapper.map(row, descriptor) for row in rows]

    def _select(self, descriptor: EntityDescriptor, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        try:
            return self._adapter.query(sql, params)
        except RecordSpineError:
            raise
        except Exception as e:
            logger.error("read.failed", table=descriptor.table, error=str(e))
            raise ReadError(f"Select on {descriptor.table} failed: {e}", cause=e).with_context(
                entity=descriptor.name, table=descriptor.table, operation="select"
            ) from e

    def _load_related(self, model: type, identity: Any) -> Any:
        """Relation loader for the mapper: one row, its own relations left unset."""
        descriptor = self.describe(model)
        sql, params = (
            Query(descriptor, self)
            .where(descriptor.identity.field_name, identity)
            .to_sql(self.dialect, limit=1)
        )
        rows = self._select(descriptor, sql, params)
        if not rows:
            return None
        return self._mapper.map(rows[0], descriptor, resolve_relations=False)


__all__ = [
    "PersistenceEngine",
    "RelationLoading",
    "WriteStatement",
]
