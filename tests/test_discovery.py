"""Tests for model discovery."""

import textwrap
from dataclasses import dataclass

import pytest

from recordspine import ConfigError, discover_models
from recordspine.discovery import is_model

import game_models
from game_models import Guild, Player, Tier

MODEL_SOURCE = '''
from dataclasses import dataclass

from recordspine import column, identity, table


@table("{table}")
@dataclass
class {name}:
    label: str = column()
    id: int | None = identity()
'''


@pytest.fixture
def model_package(tmp_path, monkeypatch):
    """A throwaway package ``quest_pkg`` with models in a nested submodule."""
    root = tmp_path / "quest_pkg"
    (root / "content").mkdir(parents=True)
    (root / "__init__.py").write_text("")
    (root / "content" / "__init__.py").write_text("")
    (root / "quests.py").write_text(textwrap.dedent(MODEL_SOURCE.format(table="quests", name="Quest")))
    (root / "content" / "items.py").write_text(textwrap.dedent(MODEL_SOURCE.format(table="items", name="Item")))
    monkeypatch.syspath_prepend(str(tmp_path))
    return "quest_pkg"


class TestIsModel:
    def test_models(self):
        assert is_model(Player)
        assert is_model(Guild)

    def test_non_models(self):
        @dataclass
        class Plain:
            x: int = 0

        assert not is_model(Tier)
        assert not is_model(Plain)
        assert not is_model(Player(name="Steve"))


class TestDiscoverModels:
    def test_module_by_name(self):
        assert discover_models("game_models") == [Guild, Player]

    def test_module_object(self):
        assert discover_models(game_models) == [Guild, Player]

    def test_package_is_walked(self, model_package):
        models = discover_models(model_package)
        assert sorted(m.__tablename__ for m in models) == ["items", "quests"]

    def test_imported_models_not_repeated(self, tmp_path, monkeypatch):
        (tmp_path / "reexports.py").write_text("from game_models import Guild, Player\n")
        monkeypatch.syspath_prepend(str(tmp_path))
        assert discover_models("reexports") == []

    def test_missing_module(self):
        with pytest.raises(ConfigError, match="no_such_models"):
            discover_models("no_such_models")
