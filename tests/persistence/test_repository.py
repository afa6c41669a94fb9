"""Tests for Repository."""

from dataclasses import dataclass

import pytest

from recordspine import MappingError, Repository, column, identity, table

from game_models import Guild, Player


@table("notes")
@dataclass
class Note:
    body: str = column()
    id: int | None = identity()


class TestRepository:
    def test_crud(self, ctx):
        ctx.register([Note])
        notes = Repository(ctx.engine, Note)

        note = notes.save(Note(body="hello")).result(timeout=5)
        assert notes.find_by_id(note.id) == Note(body="hello", id=1)

        note.body = "edited"
        notes.save(note).result(timeout=5)
        assert notes.find_by_id(1).body == "edited"

        notes.delete(note).result(timeout=5)
        assert notes.all() == []

    def test_find_and_delete_by_id(self, ctx, steve_and_alex):
        _, alex = steve_and_alex
        players = Repository(ctx.engine, Player)
        assert players.find().where("level", ">", 10).get() == [alex]
        players.delete_by_id(1).result(timeout=5)
        assert players.all() == [alex]

    def test_context_repository(self, ctx):
        guilds = ctx.repository(Guild)
        assert guilds.model is Guild
        assert guilds.descriptor.table == "guilds"
        assert repr(guilds) == "Repository(Guild, table='guilds')"

    def test_invalid_model_rejected_on_construction(self, ctx):
        class NotAModel:
            pass

        with pytest.raises(MappingError):
            Repository(ctx.engine, NotAModel)
