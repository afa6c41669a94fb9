"""
Value coercion and row materialization.

Writes and reads go through the same pair of conversions so a value saved
by the engine, bound by the query builder and read back by the mapper is
always handled consistently.

Architecture:
    ::

        native value ──to_storage()──► bound parameter ──► driver
                                                             │
        typed instance ◄──ResultMapper.map()◄──from_storage()◄┘

Coercion table:
    ========== ========================== ==========================
    type       to_storage                 from_storage
    ========== ========================== ==========================
    UUID       ``str(value)``             ``uuid.UUID(text)``
    LIST       JSON array text            ``list`` (``tuple`` if annotated)
    TIMESTAMP  ISO text, space separator  ``datetime``
    ENUM       ``member.value``           enum member
    BOOLEAN    ``bool``                   ``bool(int)``
    CUSTOM     ``adapter.to_storage``     ``adapter.from_storage``
    ========== ========================== ==========================

NULL is never handed to an adapter in either direction.

Tags:
    mapping, coercion, result-set, materialization, recordspine
"""

from __future__ import annotations

import dataclasses
import json
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any, get_origin

from recordspine.core.errors import MappingError, ReadError
from recordspine.core.logging import get_logger
from recordspine.core.types import ColumnType
from recordspine.mapping.descriptors import (
    ColumnDescriptor,
    EntityDescriptor,
    FieldDescriptor,
    ForeignKeyDescriptor,
)
from recordspine.mapping.fields import field_spec

logger = get_logger(__name__)

RelationLoader = Callable[[type, Any], Any]


def to_storage(column: ColumnDescriptor, value: Any) -> Any:
    """Convert a native field value into the scalar bound for ``column``."""
    if value is None:
        return None
    if column.adapter is not None:
        return column.adapter.to_storage(value)
    match column.type:
        case ColumnType.UUID:
            return str(value)
        case ColumnType.LIST:
            return json.dumps(list(value))
        case ColumnType.TIMESTAMP:
            return value.isoformat(sep=" ") if isinstance(value, datetime) else value
        case ColumnType.ENUM:
            return value.value if isinstance(value, Enum) else value
        case ColumnType.BOOLEAN:
            return bool(value)
    return value


def from_storage(column: ColumnDescriptor, value: Any) -> Any:
    """Convert a driver value of ``column`` back to its native type."""
    if value is None:
        return None
    if column.adapter is not None:
        return column.adapter.from_storage(value)
    match column.type:
        case ColumnType.UUID:
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        case ColumnType.LIST:
            items = json.loads(value) if isinstance(value, (str, bytes)) else list(value)
            if column.python_type is tuple or get_origin(column.python_type) is tuple:
                return tuple(items)
            return items
        case ColumnType.TIMESTAMP:
            return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
        case ColumnType.ENUM:
            return _enum_member(column.python_type, value)
        case ColumnType.BOOLEAN:
            return bool(value)
        case ColumnType.INTEGER | ColumnType.BIGINT:
            return int(value)
        case ColumnType.FLOAT:
            return float(value)
    return value


def _enum_member(enum_type: Any, value: Any) -> Any:
    if not (isinstance(enum_type, type) and issubclass(enum_type, Enum)):
        return value
    try:
        return enum_type(value)
    except ValueError:
        # VARCHAR storage hands numeric enum values back as text
        for member in enum_type:
            if str(member.value) == str(value):
                return member
        raise


def relation_identity(fk: ForeignKeyDescriptor, value: Any) -> Any:
    """Identity bound for a relation field: the related object's id, or the raw id."""
    if value is None:
        return None
    if isinstance(value, fk.target):
        for f in dataclasses.fields(fk.target):
            spec = field_spec(f)
            if spec is not None and spec.kind == "identity":
                related_id = getattr(value, f.name, None)
                if related_id is None or related_id == 0:
                    raise MappingError(
                        f"Related {fk.target.__name__} of field {fk.field_name!r} has no identity; "
                        "save it first"
                    ).with_context(entity=fk.target.__name__, column=fk.name)
                return related_id
    return value


def bind_value(field: FieldDescriptor, value: Any) -> Any:
    """Storage value for any mapped field (column or relation)."""
    if isinstance(field, ForeignKeyDescriptor):
        return relation_identity(field, value)
    return to_storage(field, value)


class ResultMapper:
    """
    Builds typed instances from database rows.

    The instance is created without calling ``__init__``: dataclass defaults
    are applied to every field first (``None`` where a field has no default),
    then mapped columns overwrite them.  With ``resolve_relations`` enabled
    and a ``loader`` supplied, each foreign key is looked up and the related
    object (itself loaded without relations) is assigned to the field.
    An unresolved relation holds the stored identity instead, so saving the
    instance again keeps the foreign key.
    """

    def __init__(
        self,
        loader: RelationLoader | None = None,
        *,
        resolve_relations: bool = True,
    ):
        self._loader = loader
        self._resolve_relations = resolve_relations

    @property
    def resolves_relations(self) -> bool:
        return self._resolve_relations and self._loader is not None

    def map(
        self,
        row: Mapping[str, Any],
        descriptor: EntityDescriptor,
        *,
        resolve_relations: bool | None = None,
    ) -> Any:
        """Materialize one row as an instance of ``descriptor.model``.

        Raises:
            ReadError: A mapped column is absent from the row, or a value
                cannot be converted to its declared type.
        """
        resolve = self.resolves_relations if resolve_relations is None else resolve_relations
        values = {str(key).lower(): value for key, value in row.items()}
        instance = self._blank(descriptor.model)

        for field in descriptor.fields:
            key = field.name.lower()
            if key not in values:
                raise ReadError(
                    f"Column {field.name!r} missing from result row"
                ).with_context(
                    entity=descriptor.name, table=descriptor.table, column=field.name, operation="select"
                )
            raw = values[key]
            if isinstance(field, ForeignKeyDescriptor):
                value = self._related(field, raw) if resolve and self._loader else raw
            else:
                value = self._convert(descriptor, field, raw)
            object.__setattr__(instance, field.field_name, value)
        return instance

    def map_all(self, rows: list[Mapping[str, Any]], descriptor: EntityDescriptor) -> list[Any]:
        return [self.map(row, descriptor) for row in rows]

    def _blank(self, model: type) -> Any:
        instance = model.__new__(model)
        for f in dataclasses.fields(model):
            if f.default is not dataclasses.MISSING:
                object.__setattr__(instance, f.name, f.default)
            elif f.default_factory is not dataclasses.MISSING:
                object.__setattr__(instance, f.name, f.default_factory())
            else:
                object.__setattr__(instance, f.name, None)
        return instance

    def _convert(self, descriptor: EntityDescriptor, column: ColumnDescriptor, raw: Any) -> Any:
        try:
            return from_storage(column, raw)
        except Exception as e:
            raise ReadError(
                f"Cannot convert column {column.name!r} value {raw!r}: {e}", cause=e
            ).with_context(
                entity=descriptor.name, table=descriptor.table, column=column.name, operation="select"
            ) from e

    def _related(self, fk: ForeignKeyDescriptor, raw: Any) -> Any:
        if raw is None:
            return None
        related = self._loader(fk.target, raw)
        if related is None:
            logger.debug(
                "mapper.dangling_relation",
                field=fk.field_name,
                target=fk.target_table,
                identity=raw,
            )
            return raw
        return related


__all__ = [
    "RelationLoader",
    "ResultMapper",
    "bind_value",
    "from_storage",
    "relation_identity",
    "to_storage",
]
