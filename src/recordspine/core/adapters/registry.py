"""Database adapter registry and factory.

Manifesto:
    Consumers never hard-code adapter class names.  The registry maps backend
    names to adapter factories, and ``get_adapter()`` builds a configured
    instance straight from :class:`~recordspine.core.settings.DatabaseSettings`.

Tags:
    recordspine, database, registry, factory

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable

from recordspine.core.errors import ConfigError
from recordspine.core.settings import DatabaseBackend, DatabaseSettings

from .base import DatabaseAdapter
from .mysql import MySQLAdapter
from .sqlite import SQLiteAdapter

AdapterFactory = Callable[[DatabaseSettings], DatabaseAdapter]


def _mysql_from_settings(settings: DatabaseSettings) -> DatabaseAdapter:
    return MySQLAdapter(
        host=settings.host,
        port=settings.port,
        database=settings.database,
        username=settings.user,
        password=settings.password,
        pool_size=settings.max_pool_size,
        connect_timeout=settings.connect_timeout,
    )


def _sqlite_from_settings(settings: DatabaseSettings) -> DatabaseAdapter:
    return SQLiteAdapter(path=settings.sqlite_path, timeout=float(settings.connect_timeout))


class AdapterRegistry:
    """
    Registry for database adapter factories.

    Pre-registered adapters:
    - ``mysql``: :class:`MySQLAdapter`
    - ``sqlite``: :class:`SQLiteAdapter`
    """

    def __init__(self):
        self._factories: dict[str, AdapterFactory] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories[DatabaseBackend.MYSQL.value] = _mysql_from_settings
        self._factories[DatabaseBackend.SQLITE.value] = _sqlite_from_settings

    def register(self, name: str, factory: AdapterFactory) -> None:
        """Register an adapter factory."""
        self._factories[name.lower()] = factory

    def create(self, settings: DatabaseSettings) -> DatabaseAdapter:
        """Create an adapter for ``settings.backend``."""
        name = settings.backend.value
        if name not in self._factories:
            raise ConfigError(f"Unknown database adapter: {name}")
        return self._factories[name](settings)

    def list_adapters(self) -> list[str]:
        """List registered adapter names."""
        return sorted(self._factories.keys())


adapter_registry = AdapterRegistry()


def get_adapter(settings: DatabaseSettings) -> DatabaseAdapter:
    """
    Get an (unconnected) database adapter for the configured backend.

    Usage:
        adapter = get_adapter(DatabaseSettings(backend="sqlite"))
    """
    return adapter_registry.create(settings)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
