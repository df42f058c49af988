"""Tests for the command line entry point."""

import json
import os

import main
from replay_builders import make_document, make_move


def write_config(tmp_path, **export_settings):
    path = tmp_path / "config.json"
    settings = {"format": "csv", "csv_delimiter": ","}
    settings.update(export_settings)
    path.write_text(json.dumps({
        "export_settings": settings,
        "logging": {"level": "INFO", "log_file": ""},
    }), encoding="utf-8")
    return str(path)


def test_parse_directory_writes_files(tmp_path, sample_document):
    games = tmp_path / "games"
    games.mkdir()
    (games / "game_670153426.json").write_text(json.dumps(sample_document), encoding="utf-8")
    out = tmp_path / "out"

    status = main.main(["--config", write_config(tmp_path), "parse", str(games), "--output-dir", str(out)])

    assert status == 0
    assert (out / "670153426_cards.csv").exists()
    assert (out / "670153426_game_stats.csv").exists()


def test_failed_file_sets_exit_status(tmp_path, sample_document):
    games = tmp_path / "games"
    games.mkdir()
    (games / "good.json").write_text(json.dumps(sample_document), encoding="utf-8")
    (games / "bad_id.json").write_text(json.dumps(make_document([make_move(1)], replay_id="x")), encoding="utf-8")
    (games / "broken.json").write_text("{", encoding="utf-8")
    out = tmp_path / "out"

    status = main.main(["--config", write_config(tmp_path), "parse", str(games), "--output-dir", str(out), "--format", "json"])

    assert status == 1
    assert (out / "670153426_cards.json").exists()


def test_missing_target(tmp_path):
    status = main.main(["--config", write_config(tmp_path), "parse", str(tmp_path / "nope")])
    assert status == 1


def test_init_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "config.json"
    assert main.main(["--config", str(path), "init-config"]) == 0
    assert json.loads(path.read_text(encoding="utf-8"))["export_settings"]["format"] == "csv"
    assert main.main(["--config", str(path), "init-config"]) == 1
    assert main.main(["--config", str(path), "init-config", "--force"]) == 0


def test_collect_replay_files(tmp_path):
    (tmp_path / "b.json").write_text("{}", encoding="utf-8")
    (tmp_path / "a.json").write_text("{}", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")
    files = main.collect_replay_files(str(tmp_path))
    assert [os.path.basename(f) for f in files] == ["a.json", "b.json"]
