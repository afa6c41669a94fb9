"""Active-record mixin.

Models that subclass :class:`ActiveRecord` persist themselves::

    @table("players")
    @dataclass
    class Player(ActiveRecord):
        name: str = column(unique=True)
        level: int = column(default=1)
        id: int | None = identity()

    ctx = initialize(settings, [Player])
    Player(name="Steve").save().result()
    Player.find_by_id(1)
    Player.find().where(Player.level, ">", 10).get()

The mixin only forwards to the engine the model was bound to by
``initialize()``; it adds no fields of its own.
"""

from __future__ import annotations

from typing import Any, TypeVar

from recordspine.core.errors import DatabaseConnectionError
from recordspine.mapping.fields import ENGINE_ATTR
from recordspine.persistence.engine import PersistenceEngine
from recordspine.persistence.scheduler import WriteHandle
from recordspine.query.builder import Query

R = TypeVar("R", bound="ActiveRecord")


def bind(model: type, engine: PersistenceEngine | None) -> None:
    """Attach ``model`` to ``engine`` (``None`` detaches it)."""
    setattr(model, ENGINE_ATTR, engine)


def bound_engine(model: type) -> PersistenceEngine:
    engine = getattr(model, ENGINE_ATTR, None)
    if engine is None:
        raise DatabaseConnectionError(
            f"{model.__name__} is not bound to a database; call initialize() first",
            retryable=False,
        ).with_context(entity=model.__name__)
    return engine


class ActiveRecord:
    """Mixin giving a dataclass model ``save``/``delete``/``find`` methods."""

    def save(self: R) -> WriteHandle[R]:
        return bound_engine(type(self)).save(self)

    def delete(self) -> WriteHandle[None]:
        return bound_engine(type(self)).delete(self)

    @classmethod
    def find_by_id(cls: type[R], identity: Any) -> R | None:
        return bound_engine(cls).find_by_id(cls, identity)

    @classmethod
    def find(cls: type[R]) -> Query[R]:
        return bound_engine(cls).find(cls)

    @classmethod
    def delete_by_id(cls, identity: Any) -> WriteHandle[None]:
        return bound_engine(cls).delete_by_id(cls, identity)


__all__ = ["ActiveRecord", "bind", "bound_engine"]
