"""Model discovery: find table-mapped dataclasses in a module or package.

Used by the CLI and by applications that prefer::

    initialize(settings, discover_models("game.models"))

over listing every model by hand.  A package is walked recursively; every
submodule is imported.
"""

from __future__ import annotations

import dataclasses
import importlib
import inspect
import pkgutil
from types import ModuleType

from recordspine.core.errors import ConfigError
from recordspine.core.logging import get_logger

logger = get_logger(__name__)


def is_model(obj: object) -> bool:
    """A class that is a dataclass and carries a table name."""
    return (
        inspect.isclass(obj)
        and dataclasses.is_dataclass(obj)
        and isinstance(getattr(obj, "__tablename__", None), str)
    )


def _models_of(module: ModuleType) -> list[type]:
    found = [
        obj
        for _, obj in inspect.getmembers(module, is_model)
        if obj.__module__ == module.__name__
    ]
    # definition order, not alphabetical
    return sorted(found, key=lambda cls: _source_line(cls))


def _source_line(cls: type) -> int:
    try:
        return inspect.getsourcelines(cls)[1]
    except (OSError, TypeError):
        return 0


def discover_models(target: str | ModuleType) -> list[type]:
    """Import ``target`` (dotted name or module) and return its models.

    Raises:
        ConfigError: The module cannot be imported.
    """
    if isinstance(target, str):
        try:
            module = importlib.import_module(target)
        except ImportError as e:
            raise ConfigError(f"Cannot import model module {target!r}: {e}", cause=e) from e
    else:
        module = target

    models = _models_of(module)
    if hasattr(module, "__path__"):
        for info in pkgutil.walk_packages(module.__path__, prefix=f"{module.__name__}."):
            try:
                submodule = importlib.import_module(info.name)
            except ImportError as e:
                raise ConfigError(f"Cannot import model module {info.name!r}: {e}", cause=e) from e
            models.extend(m for m in _models_of(submodule) if m not in models)

    logger.debug("discovery.models_found", module=module.__name__, models=[m.__name__ for m in models])
    return models


__all__ = ["discover_models", "is_model"]
