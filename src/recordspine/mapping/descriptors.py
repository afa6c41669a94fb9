"""Structural descriptors derived from model declarations.

Descriptors are frozen: built once by the
:class:`~recordspine.mapping.registry.MetadataRegistry` and shared read-only
with the synchronizer, query builder, mapper and engine.

Architecture::

    EntityDescriptor(model, table, identity_column)
      └── fields (declaration order)
            ├── ColumnDescriptor      id, name, level, tags ...
            └── ForeignKeyDescriptor  guild -> guild_id -> guilds(id)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from recordspine.core.errors import MappingError
from recordspine.core.types import ColumnType
from recordspine.mapping.fields import Adapter, FieldRef


@dataclass(frozen=True)
class ColumnDescriptor:
    """A scalar column mapped from one dataclass field."""

    name: str
    field_name: str
    type: ColumnType
    nullable: bool = False
    unique: bool = False
    length: int | None = None
    identity: bool = False
    adapter: Adapter | None = None
    python_type: Any = None

    @property
    def storage_type(self) -> ColumnType:
        """Type used for DDL: the adapter's storage type for custom columns."""
        if self.adapter is not None:
            return self.adapter.storage_type
        return self.type


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    """A single-valued relationship stored as the related row's identity."""

    field_name: str
    name: str
    target: type
    target_table: str
    target_column: str
    type: ColumnType
    nullable: bool = False


FieldDescriptor = ColumnDescriptor | ForeignKeyDescriptor


@dataclass(frozen=True)
class EntityDescriptor:
    """Table layout of one model type."""

    model: type
    table: str
    identity_column: str
    fields: tuple[FieldDescriptor, ...]

    @property
    def columns(self) -> tuple[ColumnDescriptor, ...]:
        return tuple(f for f in self.fields if isinstance(f, ColumnDescriptor))

    @property
    def foreign_keys(self) -> tuple[ForeignKeyDescriptor, ...]:
        return tuple(f for f in self.fields if isinstance(f, ForeignKeyDescriptor))

    @property
    def identity(self) -> ColumnDescriptor:
        for column in self.columns:
            if column.identity:
                return column
        raise MappingError(f"{self.model.__name__} has no identity column")

    @property
    def column_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def name(self) -> str:
        return self.model.__name__

    def field(self, field_name: str) -> FieldDescriptor:
        """Look up a persistent field by its attribute name."""
        for f in self.fields:
            if f.field_name == field_name:
                return f
        raise MappingError(
            f"{self.model.__name__}.{field_name} is not a persistent field"
        ).with_context(entity=self.model.__name__, table=self.table)

    def resolve(self, accessor: str | FieldRef) -> FieldDescriptor:
        """Resolve a query accessor (field name or ``Model.field``) to its descriptor."""
        if isinstance(accessor, FieldRef):
            if not issubclass(self.model, accessor.model):
                raise MappingError(
                    f"{accessor!r} does not belong to {self.model.__name__}"
                ).with_context(entity=self.model.__name__, table=self.table)
            return self.field(accessor.name)
        if isinstance(accessor, str):
            return self.field(accessor)
        raise MappingError(
            f"Unsupported field accessor {accessor!r}; use a field name or {self.model.__name__}.<field>"
        )

    def identity_of(self, entity: Any) -> Any:
        """Current identity value of ``entity`` (None when never set)."""
        return getattr(entity, self.identity.field_name, None)

    def is_new(self, entity: Any) -> bool:
        """Identity absent or zero means the row has not been inserted yet.

        A legitimately assigned identity of 0 is indistinguishable from "new".
        """
        value = self.identity_of(entity)
        return value is None or value == 0


__all__ = [
    "ColumnDescriptor",
    "EntityDescriptor",
    "FieldDescriptor",
    "ForeignKeyDescriptor",
]
