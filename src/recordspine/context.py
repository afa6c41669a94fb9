"""Runtime context and the ``initialize()`` entry point.

A :class:`RecordContext` owns everything one database needs: the adapter,
the metadata registry, the write scheduler, the schema synchronizer and
the persistence engine.  There is no module-level state; models are bound
to the engine of the context that initialized them and unbound again when
it closes.

Startup sequence::

    initialize(settings, [Guild, Player])
      1. adapter = get_adapter(settings); adapter.connect()
      2. registry.register(Guild, Player)          (MappingError stops here)
      3. synchronizer.migrate(descriptors)
      4. bind(Guild, engine); bind(Player, engine)
         (on SchemaError only the tables that migrated are bound)
      -> RecordContext

Example:
    >>> settings = DatabaseSettings(backend="sqlite")
    >>> with initialize(settings, [Player]) as ctx:
    ...     Player(name="Steve").save().result()
    ...     Player.find_by_id(1)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from recordspine.core.adapters import DatabaseAdapter, get_adapter
from recordspine.core.errors import DatabaseConnectionError, SchemaError
from recordspine.core.logging import get_logger
from recordspine.core.settings import DatabaseSettings
from recordspine.mapping.registry import MetadataRegistry
from recordspine.persistence.engine import PersistenceEngine
from recordspine.persistence.record import bind
from recordspine.persistence.repository import Repository
from recordspine.persistence.scheduler import WriteScheduler
from recordspine.schema.synchronizer import MigrationResult, SchemaSynchronizer

logger = get_logger(__name__)


class RecordContext:
    """Explicit holder of one database's persistence machinery."""

    def __init__(
        self,
        settings: DatabaseSettings,
        adapter: DatabaseAdapter,
        *,
        registry: MetadataRegistry | None = None,
    ):
        self.settings = settings
        self.adapter = adapter
        self.registry = registry or MetadataRegistry()
        self.scheduler = WriteScheduler(max_workers=settings.worker_count)
        self.synchronizer = SchemaSynchronizer(adapter)
        self.engine = PersistenceEngine(
            adapter,
            self.registry,
            self.scheduler,
            relation_loading=settings.relation_loading,
        )
        self.migration: MigrationResult | None = None
        self._models: list[type] = []
        self._closed = False

    @property
    def models(self) -> list[type]:
        return list(self._models)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def register(self, models: Iterable[type]) -> MigrationResult:
        """Describe, migrate and bind ``models``.

        Raises:
            MappingError: A model declaration is invalid; nothing is migrated.
            SchemaError: DDL failed for at least one model.  Models whose
                tables migrated are still bound; the failed ones are not.
        """
        if self._closed:
            raise DatabaseConnectionError("Context has been closed", retryable=False)
        models = list(models)
        descriptors = self.registry.register(*models)
        try:
            result = self.synchronizer.migrate(descriptors)
        except SchemaError as e:
            self._bind(m for m, d in zip(models, descriptors) if d.table not in e.result.errors)
            self.migration = e.result
            raise
        self._bind(models)
        self.migration = result
        return result

    def _bind(self, models: Iterable[type]) -> None:
        for model in models:
            bind(model, self.engine)
            if model not in self._models:
                self._models.append(model)

    def repository(self, model: type) -> Repository[Any]:
        return Repository(self.engine, model)

    def close(self, wait: bool = True) -> None:
        """Drain pending writes, unbind models and close the adapter."""
        if self._closed:
            return
        self._closed = True
        self.scheduler.shutdown(wait=wait)
        for model in self._models:
            bind(model, None)
        self.adapter.disconnect()
        logger.info("context.closed", models=len(self._models))

    def __enter__(self) -> RecordContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def initialize(
    settings: DatabaseSettings | None = None,
    models: Iterable[type] = (),
    *,
    adapter: DatabaseAdapter | None = None,
) -> RecordContext:
    """Connect, describe and migrate ``models``, then bind them to a new context.

    Args:
        settings: Connection settings (defaults to ``DatabaseSettings()``,
            i.e. ``RECORDSPINE_*`` environment variables).
        models: Model classes to manage.
        adapter: Pre-built adapter (tests, custom drivers); built from
            ``settings`` when omitted.

    Raises:
        DatabaseConnectionError: The database is unreachable.
        MappingError: A model declaration is invalid.
        SchemaError: Migration failed for some tables; ``error.result`` lists
            what was applied and ``error.record_context`` is the open context
            with the other models bound.
    """
    settings = settings or DatabaseSettings()
    adapter = adapter or get_adapter(settings)
    adapter.connect()
    context = RecordContext(settings, adapter)
    try:
        result = context.register(models)
    except SchemaError as e:
        e.record_context = context
        logger.error(
            "context.partially_initialized",
            failed_tables=sorted(e.result.errors),
            models=len(context.models),
        )
        raise
    except BaseException:
        context.close(wait=False)
        raise
    logger.info(
        "context.initialized",
        backend=adapter.backend.value,
        models=len(context.models),
        created=result.created,
        altered=result.altered,
    )
    return context


__all__ = ["RecordContext", "initialize"]
