"""Tests for the ActiveRecord mixin and model binding."""

import pytest

from recordspine import DatabaseConnectionError
from recordspine.mapping.fields import ENGINE_ATTR
from recordspine.persistence.record import bind, bound_engine

from game_models import Guild, Player


class TestBinding:
    def test_initialize_binds_models(self, ctx):
        assert bound_engine(Player) is ctx.engine
        assert bound_engine(Guild) is ctx.engine

    def test_unbound_model(self):
        bind(Guild, None)
        with pytest.raises(DatabaseConnectionError) as exc_info:
            bound_engine(Guild)
        assert exc_info.value.context.entity == "Guild"

    def test_bind_sets_class_attribute(self, ctx):
        assert getattr(Player, ENGINE_ATTR) is ctx.engine
        assert ENGINE_ATTR not in vars(Player(name="x"))


class TestUnboundOperations:
    def test_save(self):
        with pytest.raises(DatabaseConnectionError):
            Player(name="Steve").save()

    def test_find_by_id(self):
        with pytest.raises(DatabaseConnectionError):
            Player.find_by_id(1)

    def test_find(self):
        with pytest.raises(DatabaseConnectionError):
            Player.find()


class TestActiveRecord:
    def test_save_find_delete(self, ctx):
        guild = Guild(name="Builders")
        handle = guild.save()
        assert handle.result(timeout=5).id == 1
        assert Guild.find_by_id(1) == guild
        guild.delete().result(timeout=5)
        assert Guild.find_by_id(1) is None

    def test_models_share_one_scheduler(self, ctx):
        handles = [Player(name=f"p{i}", level=i).save() for i in range(10)]
        ids = sorted(h.result(timeout=5).id for h in handles)
        assert ids == list(range(1, 11))
        assert len(Player.find().get()) == 10
