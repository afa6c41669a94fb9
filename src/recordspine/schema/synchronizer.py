"""Additive schema synchronizer.

Compares each model's desired columns against the columns the database
actually reports and issues the DDL that closes the gap: a ``CREATE TABLE``
for a missing table, one ``ALTER TABLE ... ADD COLUMN`` per missing column
otherwise.  Columns are never dropped, renamed or retyped, so running the
synchronizer against an up-to-date database issues no statements at all.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from recordspine.core.adapters.base import DatabaseAdapter
from recordspine.core.errors import SchemaError
from recordspine.core.logging import get_logger
from recordspine.mapping.descriptors import (
    ColumnDescriptor,
    EntityDescriptor,
    FieldDescriptor,
    ForeignKeyDescriptor,
)

logger = get_logger(__name__)

PlanAction = Literal["create", "alter", "none"]


@dataclass(frozen=True)
class SchemaSnapshot:
    """Columns of one table as reported by the database catalog."""

    table: str
    columns: dict[str, str] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return bool(self.columns)

    def has_column(self, name: str) -> bool:
        lowered = name.lower()
        return any(existing.lower() == lowered for existing in self.columns)


@dataclass(frozen=True)
class MigrationPlan:
    """DDL needed to bring one table up to its descriptor."""

    table: str
    action: PlanAction
    columns: tuple[str, ...] = ()
    statements: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.statements


@dataclass
class MigrationResult:
    """Result of a synchronization run."""

    applied: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    altered: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


def dependency_order(descriptors: Iterable[EntityDescriptor]) -> list[EntityDescriptor]:
    """Order descriptors so referenced tables come before referencing ones.

    Stable: unrelated descriptors keep their given order.  Self-references
    and cycles are tolerated (the cycle is broken at the first revisit).
    """
    given = list(descriptors)
    by_model = {d.model: d for d in given}
    ordered: list[EntityDescriptor] = []
    visiting: set[type] = set()
    done: set[type] = set()

    def visit(descriptor: EntityDescriptor) -> None:
        if descriptor.model in done or descriptor.model in visiting:
            return
        visiting.add(descriptor.model)
        for fk in descriptor.foreign_keys:
            target = by_model.get(fk.target)
            if target is not None and target.model is not descriptor.model:
                visit(target)
        visiting.discard(descriptor.model)
        done.add(descriptor.model)
        ordered.append(descriptor)

    for descriptor in given:
        visit(descriptor)
    return ordered


class SchemaSynchronizer:
    """Reconciles live tables with entity descriptors, additively.

    Example::

        sync = SchemaSynchronizer(adapter)
        result = sync.migrate(registry.register(Guild, Player))
        print(result.created, result.altered)
    """

    def __init__(self, adapter: DatabaseAdapter) -> None:
        self._adapter = adapter

    @property
    def dialect(self):
        return self._adapter.dialect

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def snapshot(self, table: str) -> SchemaSnapshot:
        """Read the live column catalog of ``table`` (empty when it does not exist)."""
        rows = self._adapter.query(self.dialect.catalog_query(), (table,))
        columns: dict[str, str] = {}
        for row in rows:
            name, type_name = list(row.values())[:2]
            columns[str(name)] = str(type_name)
        return SchemaSnapshot(table=table, columns=columns)

    def plan(self, descriptor: EntityDescriptor) -> MigrationPlan:
        """Compute the DDL for one table without executing it."""
        snapshot = self.snapshot(descriptor.table)
        if not snapshot.exists:
            return MigrationPlan(
                table=descriptor.table,
                action="create",
                columns=tuple(descriptor.column_names),
                statements=(self.create_statement(descriptor),),
            )

        missing = [f for f in descriptor.fields if not snapshot.has_column(f.name)]
        if not missing:
            return MigrationPlan(table=descriptor.table, action="none")
        return MigrationPlan(
            table=descriptor.table,
            action="alter",
            columns=tuple(f.name for f in missing),
            statements=tuple(s for f in missing for s in self.add_column_statements(descriptor, f)),
        )

    def plan_all(self, descriptors: Iterable[EntityDescriptor]) -> list[MigrationPlan]:
        """Plans for every descriptor, in dependency order."""
        return [self.plan(d) for d in dependency_order(descriptors)]

    def migrate(self, descriptors: Iterable[EntityDescriptor]) -> MigrationResult:
        """Apply additive DDL for every descriptor.

        Every model is attempted; statements that succeeded stay applied.

        Raises:
            SchemaError: One or more tables failed; ``error.result`` holds
                the full :class:`MigrationResult`.
        """
        result = MigrationResult()
        first_failure: Exception | None = None

        for descriptor in dependency_order(descriptors):
            try:
                plan = self.plan(descriptor)
                for statement in plan.statements:
                    self._adapter.execute(statement)
                    result.applied.append(statement)
                    logger.debug("schema.statement_applied", table=plan.table, sql=statement)
            except Exception as exc:
                result.errors[descriptor.table] = str(exc)
                first_failure = first_failure or exc
                logger.error(
                    "schema.migration_failed",
                    table=descriptor.table,
                    entity=descriptor.name,
                    error=str(exc),
                )
                continue

            if plan.action == "create":
                result.created.append(plan.table)
                logger.info("schema.table_created", table=plan.table, columns=len(plan.columns))
            elif plan.action == "alter":
                result.altered.append(plan.table)
                logger.info("schema.table_altered", table=plan.table, added=list(plan.columns))

        if not result.success:
            raise SchemaError(
                f"Schema synchronization failed for {sorted(result.errors)}",
                result=result,
                cause=first_failure,
            ).with_context(operation="migrate", failed_tables=sorted(result.errors))
        return result

    # ------------------------------------------------------------------
    # DDL rendering
    # ------------------------------------------------------------------

    def create_statement(self, descriptor: EntityDescriptor) -> str:
        parts = [self._column_definition(f) for f in descriptor.fields]
        parts.extend(
            f"FOREIGN KEY ({fk.name}) REFERENCES {fk.target_table}({fk.target_column})"
            for fk in descriptor.foreign_keys
        )
        return f"CREATE TABLE {descriptor.table} ({', '.join(parts)})"

    def add_column_statements(self, descriptor: EntityDescriptor, item: FieldDescriptor) -> tuple[str, ...]:
        """ALTER statements appending ``item`` to the existing table.

        Existing rows have no value for the new column, so it carries no
        NOT NULL or UNIQUE clause.  A relation keeps its foreign key.
        """
        type_sql = self._type_of(item)
        if isinstance(item, ForeignKeyDescriptor):
            return self.dialect.add_reference_column(
                descriptor.table, item.name, type_sql, f"{item.target_table}({item.target_column})"
            )
        return (f"ALTER TABLE {descriptor.table} ADD COLUMN {item.name} {type_sql}",)

    def _column_definition(self, item: FieldDescriptor) -> str:
        if isinstance(item, ColumnDescriptor) and item.identity:
            return f"{item.name} {self.dialect.identity_type(item.type)}"
        definition = f"{item.name} {self._type_of(item)}"
        if not item.nullable:
            definition += " NOT NULL"
        if isinstance(item, ColumnDescriptor) and item.unique:
            definition += " UNIQUE"
        return definition

    def _type_of(self, item: FieldDescriptor) -> str:
        if isinstance(item, ForeignKeyDescriptor):
            return self.dialect.column_type(item.type)
        return self.dialect.column_type(item.storage_type, item.length)


__all__ = [
    "MigrationPlan",
    "MigrationResult",
    "SchemaSnapshot",
    "SchemaSynchronizer",
    "dependency_order",
]
