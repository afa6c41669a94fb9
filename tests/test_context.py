"""Tests for initialize() and RecordContext lifecycle."""

from dataclasses import dataclass
from unittest.mock import patch

import pytest

from recordspine import (
    DatabaseConnectionError,
    DatabaseSettings,
    MappingError,
    RecordContext,
    SchemaError,
    column,
    identity,
    initialize,
    table,
)
from recordspine.core.adapters import SQLiteAdapter
from recordspine.mapping.fields import ENGINE_ATTR

from game_models import Guild, Player


@table("logs")
@dataclass
class Log:
    line: str = column()


class TestInitialize:
    def test_returns_bound_context(self, ctx):
        assert isinstance(ctx, RecordContext)
        assert ctx.models == [Guild, Player]
        assert ctx.migration.created == ["guilds", "players"]
        assert getattr(Player, ENGINE_ATTR) is ctx.engine

    def test_builds_adapter_from_settings(self, sqlite_settings):
        with initialize(sqlite_settings, [Guild]) as context:
            assert isinstance(context.adapter, SQLiteAdapter)
            assert context.adapter.is_connected
            assert context.scheduler.max_workers == 2
        assert context.is_closed
        assert not context.adapter.is_connected

    def test_second_run_is_a_no_op(self, tmp_path):
        settings = DatabaseSettings(backend="sqlite", sqlite_path=str(tmp_path / "game.db"))
        initialize(settings, [Guild, Player]).close()
        with initialize(settings, [Guild, Player]) as context:
            assert context.migration.applied == []

    def test_mapping_error_stops_startup(self, sqlite_settings, sqlite_adapter):
        with pytest.raises(MappingError):
            initialize(sqlite_settings, [Guild, Log], adapter=sqlite_adapter)
        assert not sqlite_adapter.is_connected
        assert getattr(Guild, ENGINE_ATTR, None) is None

    def test_schema_error_keeps_migrated_models_usable(self, sqlite_settings, sqlite_adapter):
        real_execute = sqlite_adapter.execute

        def failing_execute(sql, params=()):
            if sql.startswith("CREATE TABLE players"):
                raise RuntimeError("permission denied")
            return real_execute(sql, params)

        with patch.object(sqlite_adapter, "execute", side_effect=failing_execute):
            with pytest.raises(SchemaError) as exc_info:
                initialize(sqlite_settings, [Guild, Player], adapter=sqlite_adapter)

        error = exc_info.value
        context = error.record_context
        assert error.result.created == ["guilds"]
        assert list(error.result.errors) == ["players"]
        assert context.migration is error.result
        assert context.models == [Guild]
        assert sqlite_adapter.is_connected

        try:
            guild = Guild(name="Crafters")
            guild.save().result(timeout=5)
            assert Guild.find_by_id(guild.id) == guild
            assert getattr(Player, ENGINE_ATTR, None) is None
            with pytest.raises(DatabaseConnectionError):
                Player(name="Steve").save()
        finally:
            context.close()
        assert not sqlite_adapter.is_connected


class TestRecordContext:
    def test_close_unbinds_models(self, ctx):
        ctx.close()
        assert ctx.is_closed
        assert getattr(Player, ENGINE_ATTR) is None
        with pytest.raises(DatabaseConnectionError):
            Player(name="Steve").save()

    def test_close_drains_pending_writes(self, ctx):
        handles = [Player(name=f"p{i}").save() for i in range(25)]
        ctx.close(wait=True)
        assert all(h.succeeded() for h in handles)

    def test_close_is_idempotent(self, ctx):
        ctx.close()
        ctx.close()

    def test_register_after_close(self, ctx):
        ctx.close()
        with pytest.raises(DatabaseConnectionError):
            ctx.register([Guild])

    def test_register_more_models_later(self, ctx):
        @table("quests")
        @dataclass
        class Quest:
            title: str = column()
            id: int | None = identity()

        result = ctx.register([Quest])
        assert result.created == ["quests"]
        assert ctx.models == [Guild, Player, Quest]
        assert getattr(Quest, ENGINE_ATTR) is ctx.engine

    def test_register_rejects_invalid_model(self, ctx):
        with pytest.raises(MappingError):
            ctx.register([Log])
        assert Log not in ctx.models
