"""Typed CRUD repository over the persistence engine.

Provides :class:`Repository` for code that prefers an explicit data-access
object over active-record methods on the model itself.

Architecture::

    ┌───────────────────────────────────────────────────────────┐
    │                   Repository[Player]                      │
    │                                                           │
    │   engine: PersistenceEngine    model: type[Player]        │
    │                                                           │
    │   save(entity)        → WriteHandle[Player]               │
    │   find_by_id(id)      → Player | None                     │
    │   delete(entity)      → WriteHandle[None]                 │
    │   delete_by_id(id)    → WriteHandle[None]                 │
    │   find()              → Query[Player]                     │
    │   all()               → list[Player]                      │
    └───────────────────────────────────────────────────────────┘

Usage:
    >>> players = Repository(ctx.engine, Player)
    >>> players.save(Player(name="Steve")).result()
    >>> players.find().where("level", ">", 10).get()

Tags:
    repository, crud, persistence, recordspine
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from recordspine.mapping.descriptors import EntityDescriptor
from recordspine.persistence.engine import PersistenceEngine
from recordspine.persistence.scheduler import WriteHandle
from recordspine.query.builder import Query

T = TypeVar("T")


class Repository(Generic[T]):
    """CRUD access to one model type.

    Parameters:
        engine: Engine of an initialized context.
        model: Model class; described (and validated) on construction.
    """

    def __init__(self, engine: PersistenceEngine, model: type[T]) -> None:
        self.engine = engine
        self.model = model
        self.descriptor: EntityDescriptor = engine.describe(model)

    def save(self, entity: T) -> WriteHandle[T]:
        return self.engine.save(entity)

    def find_by_id(self, identity: Any) -> T | None:
        return self.engine.find_by_id(self.model, identity)

    def delete(self, entity: T) -> WriteHandle[None]:
        return self.engine.delete(entity)

    def delete_by_id(self, identity: Any) -> WriteHandle[None]:
        return self.engine.delete_by_id(self.model, identity)

    def find(self) -> Query[T]:
        return self.engine.find(self.model)

    def all(self) -> list[T]:
        """Every row of the table, in database order."""
        return self.find().get()

    def __repr__(self) -> str:
        return f"Repository({self.model.__name__}, table={self.descriptor.table!r})"


__all__ = ["Repository"]
