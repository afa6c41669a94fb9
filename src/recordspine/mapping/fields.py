"""Declarative persistence metadata for dataclass models.

A model is a plain dataclass whose persistent fields are declared with the
markers below.  Untagged fields are never persisted.

Examples:
    >>> @table("players")
    ... @dataclass
    ... class Player(ActiveRecord):
    ...     name: str = column(unique=True, length=32)
    ...     level: int = column(default=1)
    ...     guild: Guild | None = relation()
    ...     tags: list[str] = column(default_factory=list)
    ...     id: int | None = identity()
    ...     cached_rank: int = 0          # not persisted

``identity()`` and ``relation()`` produce keyword-only fields defaulting to
``None``, so they can be declared anywhere without breaking dataclass field
ordering.

Tags:
    mapping, metadata, dataclasses, declarative, recordspine
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import MISSING, dataclass, field
from typing import Any, Literal

from recordspine.core.errors import MappingError
from recordspine.core.types import ColumnType

METADATA_KEY = "recordspine"

# Class attribute holding the engine a model is bound to
ENGINE_ATTR = "__recordspine_engine__"

FieldKind = Literal["identity", "column", "relation"]


@dataclass(frozen=True)
class Adapter:
    """Paired conversion between a native value and a storage scalar.

    ``from_storage`` need not invert ``to_storage`` exactly; adapters are
    allowed to lose information.
    """

    to_storage: Callable[[Any], Any]
    from_storage: Callable[[Any], Any]
    storage_type: ColumnType = ColumnType.TEXT


@dataclass(frozen=True)
class FieldSpec:
    """Persistence metadata stored on a dataclass field."""

    kind: FieldKind
    name: str | None = None
    unique: bool = False
    length: int | None = None
    nullable: bool = False
    adapter: Adapter | None = None
    type: ColumnType | None = None
    target: type | None = None


def field_spec(f: dataclasses.Field) -> FieldSpec | None:
    """Return the persistence metadata of a dataclass field, if any."""
    return f.metadata.get(METADATA_KEY)


def identity(*, name: str | None = None, type: ColumnType | None = None) -> Any:
    """Mark the identity field (auto-incrementing integer primary key)."""
    spec = FieldSpec(kind="identity", name=name, type=type)
    return field(default=None, kw_only=True, metadata={METADATA_KEY: spec})


def column(
    *,
    name: str | None = None,
    unique: bool = False,
    length: int | None = None,
    nullable: bool = False,
    adapter: Adapter | None = None,
    type: ColumnType | None = None,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | Any = MISSING,
) -> Any:
    """Mark a persistent column.

    Args:
        name: Explicit column name (defaults to the snake_cased field name)
        unique: Add a UNIQUE constraint on table creation
        length: VARCHAR length for string and enum columns (default 255)
        nullable: Allow NULL; absence implies NOT NULL
        adapter: Custom native/storage conversion
        type: Override the storage type inferred from the annotation
    """
    if length is not None and length <= 0:
        raise MappingError(f"Column length must be positive, got {length}")
    spec = FieldSpec(
        kind="column",
        name=name,
        unique=unique,
        length=length,
        nullable=nullable,
        adapter=adapter,
        type=type,
    )
    kwargs: dict[str, Any] = {}
    if default is not MISSING:
        kwargs["default"] = default
    if default_factory is not MISSING:
        kwargs["default_factory"] = default_factory
    return field(metadata={METADATA_KEY: spec}, **kwargs)


def relation(
    target: type | None = None,
    *,
    name: str | None = None,
    nullable: bool = False,
) -> Any:
    """Mark a single-valued relationship stored as ``<field>_id``.

    ``target`` defaults to the field's annotated type.
    """
    spec = FieldSpec(kind="relation", name=name, nullable=nullable, target=target)
    return field(default=None, kw_only=True, metadata={METADATA_KEY: spec})


class FieldRef:
    """Class-level handle on a persistent field, e.g. ``Player.level``.

    Installed by :func:`table`; resolved to a column through the entity
    descriptor when used in a query.
    """

    __slots__ = ("model", "name")

    def __init__(self, model: type, name: str):
        self.model = model
        self.name = name

    def __get__(self, instance: Any, owner: type) -> FieldRef:
        if instance is None:
            return self if owner is self.model else FieldRef(owner, self.name)
        raise AttributeError(
            f"{type(instance).__name__!r} object has no attribute {self.name!r}"
        )

    def __repr__(self) -> str:
        return f"{self.model.__name__}.{self.name}"


def table(name: str) -> Callable[[type], type]:
    """Class decorator giving a dataclass model its table name.

    Apply it on top of ``@dataclass``.  Persistent fields become available
    as :class:`FieldRef` class attributes for the query builder.
    """
    if not name or not isinstance(name, str):
        raise MappingError(f"Table name must be a non-empty string, got {name!r}")

    def decorate(cls: type) -> type:
        if not dataclasses.is_dataclass(cls):
            raise MappingError(
                f"{cls.__name__} must be a dataclass; apply @table above @dataclass"
            )
        cls.__tablename__ = name
        if "__slots__" not in cls.__dict__:
            for f in dataclasses.fields(cls):
                if field_spec(f) is not None:
                    setattr(cls, f.name, FieldRef(cls, f.name))
        return cls

    return decorate


__all__ = [
    "Adapter",
    "FieldRef",
    "FieldSpec",
    "ENGINE_ATTR",
    "METADATA_KEY",
    "column",
    "field_spec",
    "identity",
    "relation",
    "table",
]
