"""Active-record persistence: engine, write scheduler, repository.

Architecture::

    scheduler.py    WriteScheduler (ThreadPool) + WriteHandle
    engine.py       PersistenceEngine: save/delete/find_by_id/find
    record.py       ActiveRecord mixin bound per context
    repository.py   Repository[T] CRUD facade
"""

from .engine import PersistenceEngine, WriteStatement
from .record import ActiveRecord, bind, bound_engine
from .repository import Repository
from .scheduler import WriteHandle, WriteScheduler

__all__ = [
    "ActiveRecord",
    "PersistenceEngine",
    "Repository",
    "WriteHandle",
    "WriteScheduler",
    "WriteStatement",
    "bind",
    "bound_engine",
]
