"""recordspine core -- errors, logging, settings, dialects and adapters.

Architecture::

    errors.py      Typed error hierarchy (MappingError, WriteError, ...)
    logging.py     structlog configuration + get_logger()
    settings.py    DatabaseSettings (pydantic-settings)
    types.py       Semantic ColumnType enum
    dialect.py     MySQL / SQLite SQL fragments
    protocols.py   Connection / ConnectionPool protocols
    adapters/      Scoped-acquisition database adapters
"""
