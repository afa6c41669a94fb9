"""Tests for PersistenceEngine writes and reads against in-memory SQLite."""

import uuid
from dataclasses import dataclass
from datetime import datetime

import pytest

from recordspine import (
    DatabaseConnectionError,
    MappingError,
    PersistenceEngine,
    ReadError,
    WriteError,
    column,
    identity,
    table,
)
from recordspine.persistence.engine import WriteStatement

from conftest import WRITE_TIMEOUT
from game_models import Guild, Player, Tier


class TestInsert:
    def test_assigns_identity(self, ctx):
        player = Player(name="Steve")
        returned = player.save().result(timeout=WRITE_TIMEOUT)
        assert returned is player
        assert player.id == 1

    def test_round_trip(self, ctx):
        player = Player(name="Steve", level=5)
        player.save().result(timeout=WRITE_TIMEOUT)
        assert Player.find_by_id(player.id) == player

    def test_identity_zero_is_new(self, ctx):
        player = Player(name="Zero", id=0)
        player.save().result(timeout=WRITE_TIMEOUT)
        assert player.id == 1

    def test_rich_types_round_trip(self, ctx):
        player = Player(
            name="Alex",
            tier=Tier.GOLD,
            tags=["builder", "redstone"],
            external_id=uuid.UUID("12345678-1234-5678-1234-567812345678"),
            joined_at=datetime(2024, 3, 1, 12, 30, 15, 250000),
        )
        player.save().result(timeout=WRITE_TIMEOUT)

        loaded = Player.find_by_id(player.id)
        assert loaded.tier is Tier.GOLD
        assert loaded.tags == ["builder", "redstone"]
        assert loaded.external_id == player.external_id
        assert loaded.joined_at == player.joined_at

    def test_untagged_field_not_persisted(self, ctx):
        player = Player(name="Steve", cached_score=900)
        player.save().result(timeout=WRITE_TIMEOUT)
        assert Player.find_by_id(player.id).cached_score == 0

    def test_values_captured_at_save_time(self, ctx):
        player = Player(name="Steve", level=3)
        handle = player.save()
        player.level = 99
        handle.result(timeout=WRITE_TIMEOUT)
        assert Player.find_by_id(player.id).level == 3

    def test_identity_only_model(self, ctx):
        @table("tokens")
        @dataclass
        class Token:
            id: int | None = identity()

        ctx.register([Token])
        token = ctx.engine.save(Token()).result(timeout=WRITE_TIMEOUT)
        assert token.id == 1
        assert ctx.engine.save(token).result(timeout=WRITE_TIMEOUT) is token


class TestUpdate:
    def test_updates_only_the_identified_row(self, steve_and_alex):
        steve, alex = steve_and_alex
        steve.level = 6
        steve.save().result(timeout=WRITE_TIMEOUT)
        assert Player.find_by_id(steve.id).level == 6
        assert Player.find_by_id(alex.id).level == 20

    def test_missing_row_is_not_an_error(self, ctx):
        ghost = Player(name="Ghost", id=42)
        assert ghost.save().result(timeout=WRITE_TIMEOUT) is ghost
        assert Player.find_by_id(42) is None


class TestDelete:
    def test_delete(self, steve_and_alex):
        steve, alex = steve_and_alex
        assert steve.delete().result(timeout=WRITE_TIMEOUT) is None
        assert Player.find_by_id(steve.id) is None
        assert Player.find_by_id(alex.id) == alex

    def test_delete_by_id(self, steve_and_alex):
        Player.delete_by_id(2).result(timeout=WRITE_TIMEOUT)
        assert [p.name for p in Player.find().get()] == ["Steve"]

    def test_delete_unsaved_entity(self, ctx):
        error = Player(name="Nobody").delete().exception(timeout=WRITE_TIMEOUT)
        assert isinstance(error, WriteError)
        assert error.context.operation == "delete"

    def test_delete_by_none(self, ctx):
        assert isinstance(Player.delete_by_id(None).exception(timeout=WRITE_TIMEOUT), WriteError)

    def test_referenced_row_cannot_be_deleted(self, ctx):
        guild = Guild(name="Builders")
        guild.save().result(timeout=WRITE_TIMEOUT)
        Player(name="Steve", guild=guild).save().result(timeout=WRITE_TIMEOUT)

        error = guild.delete().exception(timeout=WRITE_TIMEOUT)
        assert isinstance(error, WriteError)
        assert Guild.find_by_id(guild.id) == guild


class TestWriteFailures:
    def test_unique_violation(self, steve_and_alex):
        steve, _ = steve_and_alex
        handle = Player(name="Steve", level=50).save()
        error = handle.exception(timeout=WRITE_TIMEOUT)
        assert isinstance(error, WriteError)
        assert error.context.table == "players"
        assert error.context.operation == "insert"
        with pytest.raises(WriteError):
            handle.result(timeout=WRITE_TIMEOUT)
        assert Player.find().where("name", "Steve").get() == [steve]

    def test_unsaved_related_entity(self, ctx):
        handle = Player(name="Steve", guild=Guild(name="Unsaved")).save()
        error = handle.exception(timeout=WRITE_TIMEOUT)
        assert isinstance(error, WriteError)
        assert "no identity" in str(error)
        assert Player.find().get() == []

    def test_unregistered_type(self, ctx):
        handle = ctx.engine.save(object())
        assert isinstance(handle.exception(timeout=WRITE_TIMEOUT), MappingError)

    def test_connection_errors_pass_through(self, ctx):
        ctx.adapter.disconnect()
        error = Player(name="Steve").save().exception(timeout=WRITE_TIMEOUT)
        assert type(error) is DatabaseConnectionError


class TestWriteStatement:
    def test_insert(self, ctx):
        descriptor = ctx.engine.describe(Player)
        statement = ctx.engine.write_statement(descriptor, Player(name="Steve"))
        assert statement == WriteStatement(
            "insert",
            "INSERT INTO players (name, level, tier, tags, external_id, joined_at, guild_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            ("Steve", 1, "bronze", "[]", None, None, None),
        )

    def test_update_binds_identity_last(self, ctx):
        descriptor = ctx.engine.describe(Guild)
        statement = ctx.engine.write_statement(descriptor, Guild(name="Builders", id=3))
        assert statement.operation == "update"
        assert statement.sql == "UPDATE guilds SET name = ? WHERE id = ?"
        assert statement.params == ("Builders", 3)


class TestReads:
    def test_find_by_missing_id(self, ctx):
        assert Player.find_by_id(99) is None
        assert Player.find_by_id(None) is None

    def test_relation_loaded_eagerly(self, ctx):
        guild = Guild(name="Builders")
        guild.save().result(timeout=WRITE_TIMEOUT)
        player = Player(name="Steve", guild=guild)
        player.save().result(timeout=WRITE_TIMEOUT)

        loaded = Player.find_by_id(player.id)
        assert loaded.guild == Guild(name="Builders", id=guild.id)
        assert loaded.guild is not guild

    def test_relation_loading_disabled(self, ctx):
        guild = Guild(name="Builders")
        guild.save().result(timeout=WRITE_TIMEOUT)
        player = Player(name="Steve", guild=guild)
        player.save().result(timeout=WRITE_TIMEOUT)

        lazy = PersistenceEngine(ctx.adapter, ctx.registry, ctx.scheduler, relation_loading="none")
        assert lazy.find_by_id(Player, player.id).guild == guild.id

    def test_unresolved_relation_survives_resave(self, ctx):
        guild = Guild(name="Builders")
        guild.save().result(timeout=WRITE_TIMEOUT)
        Player(name="Steve", guild=guild).save().result(timeout=WRITE_TIMEOUT)

        lazy = PersistenceEngine(ctx.adapter, ctx.registry, ctx.scheduler, relation_loading="none")
        loaded = lazy.find_by_id(Player, 1)
        loaded.level = 7
        lazy.save(loaded).result(timeout=WRITE_TIMEOUT)

        assert ctx.adapter.query("SELECT level, guild_id FROM players") == [{"level": 7, "guild_id": guild.id}]
        assert Player.find_by_id(1).guild == Guild(name="Builders", id=guild.id)

    def test_untagged_field_without_default(self, ctx):
        @table("sessions")
        @dataclass
        class Session:
            handle: object
            token: str = column()
            id: int | None = identity()

        ctx.register([Session])
        ctx.engine.save(Session(object(), token="abc")).result(timeout=WRITE_TIMEOUT)

        loaded = ctx.engine.find_by_id(Session, 1)
        assert loaded.handle is None
        assert loaded == Session(None, token="abc", id=1)
        assert "token='abc'" in repr(loaded)

    def test_invalid_relation_loading(self, ctx):
        with pytest.raises(ValueError):
            PersistenceEngine(ctx.adapter, ctx.registry, ctx.scheduler, relation_loading="lazy")

    def test_select_failure_is_read_error(self, ctx):
        ctx.adapter.execute("DROP TABLE players")
        with pytest.raises(ReadError) as exc_info:
            Player.find().get()
        assert exc_info.value.context.table == "players"
