"""Connection and runtime settings for recordspine.

``DatabaseSettings`` is the single initialization input: where the database
lives, how large the connection pool may grow, and how many workers execute
asynchronous writes.  Values come from keyword arguments, ``RECORDSPINE_*``
environment variables, or a ``.env`` file.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    A bad pool size must fail at startup, not on the first write.

    - **Pydantic validation:** Type-checked at construction
    - **Environment-driven:** ``RECORDSPINE_HOST``, ``RECORDSPINE_MAX_POOL_SIZE``...
    - **Sensible defaults:** MySQL on localhost:3306, pool of 20, 4 writers

Examples:
    >>> from recordspine.core.settings import DatabaseSettings
    >>> s = DatabaseSettings(database="game", user="app", password="secret")
    >>> s.max_pool_size
    20

Tags:
    settings, configuration, pydantic, environment, recordspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# mysql-connector-python refuses pools larger than this
MYSQL_MAX_POOL_SIZE = 32


class DatabaseBackend(str, Enum):
    """Supported database backends."""

    MYSQL = "mysql"
    SQLITE = "sqlite"


class DatabaseSettings(BaseSettings):
    """Database connection and persistence runtime settings.

    Fields
    ──────
    backend          : ``mysql`` (production) or ``sqlite`` (dev/tests)
    host/port        : MySQL server address
    database         : Schema name
    user/password    : Credentials
    max_pool_size    : Upper bound of pooled connections (default 20)
    worker_count     : Threads executing asynchronous writes (default 4)
    sqlite_path      : SQLite file path, ``:memory:`` by default
    relation_loading : ``eager`` resolves foreign keys on read, ``none`` leaves them unset
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backend ──────────────────────────────────────────────────
    backend: DatabaseBackend = Field(default=DatabaseBackend.MYSQL)

    # ── Server ───────────────────────────────────────────────────
    host: str = Field(default="localhost")
    port: int = Field(default=3306, ge=1, le=65535)
    database: str = Field(default="")
    user: str | None = Field(default=None)
    password: str | None = Field(default=None)
    connect_timeout: int = Field(default=10, ge=1)

    # ── SQLite ───────────────────────────────────────────────────
    sqlite_path: str = Field(default=":memory:")

    # ── Pools ────────────────────────────────────────────────────
    max_pool_size: int = Field(default=20, ge=1)
    worker_count: int = Field(default=4, ge=1)

    # ── Mapping ──────────────────────────────────────────────────
    relation_loading: Literal["eager", "none"] = Field(default="eager")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")

    @model_validator(mode="after")
    def _validate_pool(self) -> DatabaseSettings:
        if self.backend == DatabaseBackend.MYSQL and self.max_pool_size > MYSQL_MAX_POOL_SIZE:
            raise ValueError(
                f"max_pool_size must be <= {MYSQL_MAX_POOL_SIZE} for the mysql backend"
            )
        return self


__all__ = [
    "DatabaseBackend",
    "DatabaseSettings",
    "MYSQL_MAX_POOL_SIZE",
]
