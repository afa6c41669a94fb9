"""
Shared pytest fixtures for recordspine tests.

This module provides:
- An in-memory SQLite adapter (no MySQL server needed)
- SQLite ``DatabaseSettings``
- An initialized ``RecordContext`` with the game models bound

Usage:
    def test_round_trip(ctx):
        player = Player(name="Steve").save().result(timeout=5)
        assert Player.find_by_id(player.id) == player
"""

import logging
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Ensure recordspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from recordspine import DatabaseSettings, RecordContext, initialize  # noqa: E402
from recordspine.core.adapters import SQLiteAdapter  # noqa: E402

from game_models import Guild, Player  # noqa: E402

WRITE_TIMEOUT = 5


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Undo configure_logging() calls made by a test (CLI commands configure logging)."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def sqlite_adapter() -> Generator[SQLiteAdapter, None, None]:
    """Connected in-memory SQLite adapter."""
    adapter = SQLiteAdapter(":memory:")
    adapter.connect()
    yield adapter
    adapter.disconnect()


@pytest.fixture
def sqlite_settings() -> DatabaseSettings:
    return DatabaseSettings(backend="sqlite", sqlite_path=":memory:", worker_count=2)


@pytest.fixture
def ctx(sqlite_settings, sqlite_adapter) -> Generator[RecordContext, None, None]:
    """Context with Guild and Player migrated and bound."""
    context = initialize(sqlite_settings, [Guild, Player], adapter=sqlite_adapter)
    yield context
    context.close()


@pytest.fixture
def steve_and_alex(ctx) -> tuple[Player, Player]:
    """Steve (level 5, id=1) and Alex (level 20, id=2)."""
    steve = Player(name="Steve", level=5).save().result(timeout=WRITE_TIMEOUT)
    alex = Player(name="Alex", level=20).save().result(timeout=WRITE_TIMEOUT)
    return steve, alex
