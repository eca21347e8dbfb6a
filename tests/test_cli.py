import json

import pytest

from gatorfeed.cli import build_registry, main
from gatorfeed.config import read_config


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    config = {"db_url": str(tmp_path / "gator.db"), "current_user_name": ""}
    (tmp_path / ".gatorconfig.json").write_text(json.dumps(config), encoding="utf-8")
    return tmp_path


def test_registry_has_all_commands():
    registry = build_registry()
    names = [
        "register", "login", "reset", "users", "agg", "addfeed",
        "feeds", "follow", "following", "unfollow", "browse",
    ]
    assert all(name in registry for name in names)
    assert "bogus" not in registry


def test_missing_config(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    assert main(["users"]) == 1
    assert "error reading config" in capsys.readouterr().err


def test_no_command(home, capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().err.lower()


def test_unknown_command(home, capsys):
    assert main(["bogus"]) == 1
    assert "command not found" in capsys.readouterr().err


def test_register_then_users(home, capsys):
    assert main(["register", "alice"]) == 0
    assert read_config(home / ".gatorconfig.json").current_user_name == "alice"
    assert main(["register", "bob"]) == 0
    assert main(["login", "alice"]) == 0
    capsys.readouterr()
    assert main(["users"]) == 0
    assert capsys.readouterr().out == "* alice (current)\n* bob\n"


def test_logged_in_command_requires_user(home, capsys):
    assert main(["addfeed", "news", "https://example.com/rss"]) == 1
    assert capsys.readouterr().err.strip() != ""
    assert main(["feeds"]) == 0
    assert capsys.readouterr().out == "No feeds found.\n"


def test_addfeed_and_following(home, capsys):
    assert main(["register", "alice"]) == 0
    assert main(["addfeed", "news", "https://example.com/rss"]) == 0
    capsys.readouterr()
    assert main(["following"]) == 0
    assert capsys.readouterr().out == "Feed follows for user alice:\n* news\n"


def test_command_error_is_reported(home, capsys):
    assert main(["login", "ghost"]) == 1
    assert "couldn't find user" in capsys.readouterr().err


def test_reset(home, capsys):
    assert main(["register", "alice"]) == 0
    assert main(["reset"]) == 0
    capsys.readouterr()
    assert main(["users"]) == 0
    assert capsys.readouterr().out == ""