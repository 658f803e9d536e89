"""End-to-end runs of the command-line entry point."""

import json
import sys

import pytest
import yaml

from tilebattle.__main__ import main


def _write_config(tmp_path, **match):
    config = {
        "match": {
            "mode": "battle",
            "category": "animals",
            "seed": 3,
            "max_turns": 2,
            "board_size": 9,
            **match,
        },
        "cpu": {"top_n": 3},
        "paths": {"output_dir": str(tmp_path / "telemetry")},
        "decks": {"player": ["cat_bonus", "dog_letters"]},
    }
    path = tmp_path / "match.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


class TestMain:
    @pytest.mark.parametrize("mode", ["solo", "battle", "local_pvp"])
    def test_match_runs_to_the_end(self, tmp_path, monkeypatch, capsys, mode):
        players = {"solo": ["player"], "battle": ["player", "cpu"],
                   "local_pvp": ["player", "rival"]}[mode]
        path = _write_config(tmp_path, mode=mode, players=players)
        monkeypatch.setattr(sys, "argv", ["tilebattle", str(path)])
        main()

        out = capsys.readouterr().out
        assert "FINAL" in out
        files = list((tmp_path / "telemetry").glob("*.jsonl"))
        assert len(files) == 1
        lines = [json.loads(l) for l in files[0].read_text().splitlines()]
        assert lines[-1]["record_type"] == "match_summary"
        assert lines[-1]["mode"] == mode

    def test_seed_override_names_the_match(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path, mode="solo", players=["player"])
        monkeypatch.setattr(sys, "argv", ["tilebattle", str(path), "--seed", "11"])
        main()
        assert (tmp_path / "telemetry" / "solo-animals-11.jsonl").exists()

    def test_missing_config_exits(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["tilebattle", str(tmp_path / "nope.yaml")])
        with pytest.raises(SystemExit):
            main()
