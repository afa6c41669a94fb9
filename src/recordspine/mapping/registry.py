"""Metadata registry: model declarations -> cached entity descriptors.

Manifesto:
    Field introspection happens exactly once per model type.  After the
    first ``describe()`` the descriptor is the static contract every other
    component works from; there is no hot reload.

Derivation rules:
    - ``identity()``  -> identity column ``id`` (or explicit name), integer,
      auto-incrementing primary key
    - ``relation()``  -> ``<snake_field>_id`` column typed like the target's identity
    - ``column()``    -> column named after the snake_cased field, type
      inferred from the annotation (lists become JSON text), anything
      unrecognised needs an adapter
    - untagged fields -> ignored

Examples:
    >>> registry = MetadataRegistry()
    >>> descriptor = registry.describe(Player)
    >>> descriptor.table, descriptor.identity_column
    ('players', 'id')

Tags:
    mapping, metadata, registry, descriptors, recordspine
"""

from __future__ import annotations

import dataclasses
import re
import threading
import types
import typing
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Union, get_args, get_origin

from recordspine.core.errors import MappingError
from recordspine.core.logging import get_logger
from recordspine.core.types import ColumnType
from recordspine.mapping.descriptors import (
    ColumnDescriptor,
    EntityDescriptor,
    FieldDescriptor,
    ForeignKeyDescriptor,
)
from recordspine.mapping.fields import FieldSpec, field_spec

logger = get_logger(__name__)

_CAMEL_HEAD = re.compile(r"(.)([A-Z][a-z]+)")
_CAMEL_TAIL = re.compile(r"([a-z0-9])([A-Z])")

_SCALARS: dict[type, ColumnType] = {
    bool: ColumnType.BOOLEAN,
    int: ColumnType.INTEGER,
    float: ColumnType.FLOAT,
    str: ColumnType.STRING,
    uuid.UUID: ColumnType.UUID,
    datetime: ColumnType.TIMESTAMP,
}

_LIST_ELEMENTS = (str, int, float, bool)


def snake_case(name: str) -> str:
    """Convert ``camelCase`` / ``PascalCase`` to ``snake_case``."""
    return _CAMEL_TAIL.sub(r"\1_\2", _CAMEL_HEAD.sub(r"\1_\2", name)).lower()


def unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into ``(X, True)``; other hints return ``(hint, False)``."""
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1 and len(get_args(hint)) > 1:
            return args[0], True
    return hint, False


def infer_column_type(hint: Any) -> ColumnType | None:
    """Storage type for a native annotation, or None when an adapter is required."""
    origin = get_origin(hint)
    if hint in (list, tuple) or origin in (list, tuple):
        args = [a for a in get_args(hint) if a is not Ellipsis]
        if all(a is Any or a in _LIST_ELEMENTS for a in args):
            return ColumnType.LIST
        return None
    if not isinstance(hint, type):
        return None
    # str- and int-based enums must not fall through to STRING / INTEGER
    if issubclass(hint, Enum):
        return ColumnType.ENUM
    for native, column_type in _SCALARS.items():
        if hint is native:
            return column_type
    return None


class MetadataRegistry:
    """Derives and caches one :class:`EntityDescriptor` per model type.

    Thread-safe; descriptors are immutable once built.
    """

    def __init__(self) -> None:
        self._cache: dict[type, EntityDescriptor] = {}
        self._lock = threading.RLock()

    def register(self, *models: type) -> list[EntityDescriptor]:
        """Describe every model up front, in the given order."""
        return [self.describe(model) for model in models]

    def describe(self, model: type) -> EntityDescriptor:
        """Return the cached descriptor of ``model``, building it on first use.

        Raises:
            MappingError: Missing table metadata, missing/duplicate identity,
                duplicate column names, or an unmappable field type.
        """
        with self._lock:
            cached = self._cache.get(model)
            if cached is not None:
                return cached
            descriptor = self._build(model)
            self._cache[model] = descriptor
            logger.debug(
                "mapping.described",
                entity=model.__name__,
                table=descriptor.table,
                columns=descriptor.column_names,
            )
            return descriptor

    def descriptors(self) -> list[EntityDescriptor]:
        """All descriptors built so far, in build order."""
        with self._lock:
            return list(self._cache.values())

    def __contains__(self, model: object) -> bool:
        return model in self._cache

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def _build(self, model: type) -> EntityDescriptor:
        table = self._table_name(model)
        hints = self._type_hints(model)

        built: list[FieldDescriptor] = []
        for f in dataclasses.fields(model):
            spec = field_spec(f)
            if spec is None:
                continue
            hint = hints.get(f.name, Any)
            if spec.kind == "identity":
                built.append(self._identity_column(model, f.name, spec, hint))
            elif spec.kind == "relation":
                built.append(self._foreign_key(model, f.name, spec, hint))
            else:
                built.append(self._column(model, f.name, spec, hint))

        identities = [c for c in built if isinstance(c, ColumnDescriptor) and c.identity]
        if not identities:
            raise MappingError(f"{model.__name__} declares no identity field").with_context(
                entity=model.__name__, table=table
            )
        if len(identities) > 1:
            raise MappingError(
                f"{model.__name__} declares {len(identities)} identity fields; exactly one is allowed"
            ).with_context(entity=model.__name__, table=table)

        seen: set[str] = set()
        for item in built:
            key = item.name.lower()
            if key in seen:
                raise MappingError(
                    f"Column {item.name!r} is mapped twice in {model.__name__}"
                ).with_context(entity=model.__name__, table=table, column=item.name)
            seen.add(key)

        return EntityDescriptor(
            model=model,
            table=table,
            identity_column=identities[0].name,
            fields=tuple(built),
        )

    def _table_name(self, model: Any) -> str:
        if not isinstance(model, type):
            raise MappingError(f"Expected a model class, got {model!r}")
        table = getattr(model, "__tablename__", None)
        if not isinstance(table, str) or not table:
            raise MappingError(
                f"{model.__name__} carries no table name; decorate it with @table(...)"
            ).with_context(entity=model.__name__)
        if not dataclasses.is_dataclass(model):
            raise MappingError(f"{model.__name__} must be a dataclass").with_context(
                entity=model.__name__
            )
        return table

    def _type_hints(self, model: type) -> dict[str, Any]:
        try:
            return typing.get_type_hints(model)
        except (NameError, TypeError) as e:
            raise MappingError(
                f"Cannot resolve type annotations of {model.__name__}: {e}", cause=e
            ).with_context(entity=model.__name__) from e

    def _identity_column(
        self, model: type, field_name: str, spec: FieldSpec, hint: Any
    ) -> ColumnDescriptor:
        native, _ = unwrap_optional(hint)
        column_type = spec.type or ColumnType.INTEGER
        if column_type not in (ColumnType.INTEGER, ColumnType.BIGINT) or (
            native is not Any and native is not int
        ):
            raise MappingError(
                f"Identity field {model.__name__}.{field_name} must be an integer"
            ).with_context(entity=model.__name__, column=field_name)
        return ColumnDescriptor(
            name=spec.name or "id",
            field_name=field_name,
            type=column_type,
            nullable=False,
            identity=True,
            python_type=int,
        )

    def _foreign_key(
        self, model: type, field_name: str, spec: FieldSpec, hint: Any
    ) -> ForeignKeyDescriptor:
        annotated, optional = unwrap_optional(hint)
        target = spec.target or annotated
        if not isinstance(target, type):
            raise MappingError(
                f"Relation {model.__name__}.{field_name} has no resolvable target type"
            ).with_context(entity=model.__name__, column=field_name)
        target_table, target_identity = self._target_identity(target)
        return ForeignKeyDescriptor(
            field_name=field_name,
            name=spec.name or f"{snake_case(field_name)}_id",
            target=target,
            target_table=target_table,
            target_column=target_identity.name,
            type=target_identity.type,
            nullable=spec.nullable or optional,
        )

    def _target_identity(self, target: type) -> tuple[str, ColumnDescriptor]:
        """Table and identity column of a relation target.

        Only the target's identity field is inspected, so self-references
        and cycles between models do not recurse.
        """
        cached = self._cache.get(target)
        if cached is not None:
            return cached.table, cached.identity
        table = self._table_name(target)
        hints = self._type_hints(target)
        for f in dataclasses.fields(target):
            spec = field_spec(f)
            if spec is not None and spec.kind == "identity":
                return table, self._identity_column(target, f.name, spec, hints.get(f.name, Any))
        raise MappingError(
            f"Relation target {target.__name__} declares no identity field"
        ).with_context(entity=target.__name__, table=table)

    def _column(
        self, model: type, field_name: str, spec: FieldSpec, hint: Any
    ) -> ColumnDescriptor:
        native, optional = unwrap_optional(hint)
        if spec.adapter is not None:
            column_type = ColumnType.CUSTOM
        else:
            column_type = spec.type or infer_column_type(native)
        if column_type is None:
            raise MappingError(
                f"Cannot map {model.__name__}.{field_name} of type {native!r}; "
                "declare an adapter or an explicit type"
            ).with_context(entity=model.__name__, column=field_name)
        return ColumnDescriptor(
            name=spec.name or snake_case(field_name),
            field_name=field_name,
            type=column_type,
            nullable=spec.nullable or optional,
            unique=spec.unique,
            length=spec.length,
            adapter=spec.adapter,
            python_type=native,
        )


__all__ = [
    "MetadataRegistry",
    "infer_column_type",
    "snake_case",
    "unwrap_optional",
]
