"""Tests for match config loading."""

from pathlib import Path

import pytest

from tilebattle.config import CardEntry, MatchConfig, load_config, parse_config

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "match.yaml.example"


class TestExampleConfig:
    def test_example_config_loads(self):
        config = load_config(EXAMPLE_CONFIG)
        assert config.mode == "battle"
        assert config.battle_type == "hp"
        assert config.players == ["player", "cpu"]
        assert config.cpu.node_budget == 2000000
        assert config.storage.enabled is False
        assert config.paths.output_dir == Path("output/telemetry")

    def test_deck_entries_both_forms(self):
        config = load_config(EXAMPLE_CONFIG)
        deck = config.decks["player"]
        assert deck[0] == CardEntry("cat_bonus", 1)
        assert deck[1] == CardEntry("lion_multiplier", 3)


class TestParseConfig:
    def test_defaults(self):
        config = parse_config({})
        assert config.mode == "solo"
        assert config.players == ["player"]
        assert config.max_turns == 10
        assert config.rack_size == 7
        assert config.hand_size == 4
        assert config.max_hp == 100
        assert config.category == "animals"
        assert config.paths.dictionary is None
        assert config.paths.cards.name == "cards.yaml"

    def test_default_seats_per_mode(self):
        assert parse_config({"match": {"mode": "battle"}}).players == ["player", "cpu"]
        assert parse_config({"match": {"mode": "local_pvp"}}).players == ["player_a", "player_b"]

    def test_bundled_and_wildcard_categories(self):
        assert parse_config({"match": {"category": "food"}}).category == "food"
        assert parse_config({"match": {"category": "all"}}).category == "all"

    def test_unknown_category(self):
        with pytest.raises(ValueError, match="Unknown category 'planets'"):
            parse_config({"match": {"category": "planets"}})

    def test_explicit_dictionary_allows_any_category(self):
        config = parse_config({
            "match": {"category": "planets"},
            "paths": {"dictionary": "words/custom.json"},
        })
        assert config.category == "planets"
        assert config.paths.dictionary == Path("words/custom.json")

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="mode"):
            parse_config({"match": {"mode": "arena"}})

    def test_unknown_battle_type(self):
        with pytest.raises(ValueError, match="battle type"):
            parse_config({"match": {"mode": "battle", "battle_type": "chess"}})

    def test_wrong_seat_count(self):
        with pytest.raises(ValueError, match="needs 2 players"):
            parse_config({"match": {"mode": "local_pvp", "players": ["a"]}})

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == MatchConfig()
