"""Model declarations, entity descriptors and row mapping.

Architecture::

    fields.py        @table, identity(), column(), relation(), FieldRef
    descriptors.py   EntityDescriptor / ColumnDescriptor / ForeignKeyDescriptor
    registry.py      MetadataRegistry (describe once, cache forever)
    mapper.py        to_storage / from_storage, ResultMapper
"""

from .descriptors import (
    ColumnDescriptor,
    EntityDescriptor,
    FieldDescriptor,
    ForeignKeyDescriptor,
)
from .fields import Adapter, FieldRef, column, identity, relation, table
from .mapper import ResultMapper, bind_value, from_storage, to_storage
from .registry import MetadataRegistry, snake_case

__all__ = [
    "Adapter",
    "ColumnDescriptor",
    "EntityDescriptor",
    "FieldDescriptor",
    "FieldRef",
    "ForeignKeyDescriptor",
    "MetadataRegistry",
    "ResultMapper",
    "bind_value",
    "column",
    "from_storage",
    "identity",
    "relation",
    "snake_case",
    "table",
    "to_storage",
]
