"""recordspine: typed dataclass records over MySQL (and SQLite).

Declare models as dataclasses, let ``initialize()`` create or extend their
tables, then save and query them as objects.

Quick start::

    from dataclasses import dataclass
    from recordspine import ActiveRecord, DatabaseSettings, column, find, identity, initialize, table

    @table("players")
    @dataclass
    class Player(ActiveRecord):
        name: str = column(unique=True, length=32)
        level: int = column(default=1)
        id: int | None = identity()

    ctx = initialize(DatabaseSettings(backend="sqlite"), [Player])
    Player(name="Steve", level=5).save().result()
    find(Player).where(Player.level, ">", 1).get()
    ctx.close()

Architecture::

    core/          errors, logging, settings, dialects, database adapters
    mapping/       @table / column() / identity() / relation(), MetadataRegistry, ResultMapper
    schema/        SchemaSynchronizer (additive CREATE / ALTER ADD COLUMN)
    query/         Query builder, find()
    persistence/   PersistenceEngine, WriteScheduler, ActiveRecord, Repository
    context.py     RecordContext, initialize()
    discovery.py   discover_models()
    cli/           ``recordspine describe|migrate``
"""

__version__ = "0.1.0"

from recordspine.context import RecordContext, initialize
from recordspine.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    MappingError,
    ReadError,
    RecordSpineError,
    SchemaError,
    WriteError,
)
from recordspine.core.settings import DatabaseBackend, DatabaseSettings
from recordspine.core.types import ColumnType
from recordspine.discovery import discover_models
from recordspine.mapping import (
    Adapter,
    EntityDescriptor,
    MetadataRegistry,
    ResultMapper,
    column,
    identity,
    relation,
    table,
)
from recordspine.persistence import (
    ActiveRecord,
    PersistenceEngine,
    Repository,
    WriteHandle,
    WriteScheduler,
)
from recordspine.query import Query, find
from recordspine.schema import MigrationPlan, MigrationResult, SchemaSynchronizer

__all__ = [
    "ActiveRecord",
    "Adapter",
    "ColumnType",
    "ConfigError",
    "DatabaseBackend",
    "DatabaseConnectionError",
    "DatabaseSettings",
    "EntityDescriptor",
    "MappingError",
    "MetadataRegistry",
    "MigrationPlan",
    "MigrationResult",
    "PersistenceEngine",
    "Query",
    "ReadError",
    "RecordContext",
    "RecordSpineError",
    "Repository",
    "ResultMapper",
    "SchemaError",
    "SchemaSynchronizer",
    "WriteError",
    "WriteHandle",
    "WriteScheduler",
    "__version__",
    "column",
    "discover_models",
    "find",
    "identity",
    "initialize",
    "relation",
    "table",
]
