"""
Tests for the smartcal command line interface.
Each test points the CLI at a throwaway config directory with an
absolute database path, so nothing touches the repository's data/.
"""

import json
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from smartcal.cli import build_parser, main
from smartcal.core.config import Config
from smartcal.core.errors import NotAuthenticatedError
from smartcal.core.store import SQLiteEventStore


@pytest.fixture
def config_dir(tmp_path):
    config = Config(tmp_path / "config")
    config.set("database_path", str(tmp_path / "calendar.db"))
    config.set("tombstones_file", str(tmp_path / "tombstones.json"))
    config.set("credentials_dir", str(tmp_path / "credentials"))
    return tmp_path / "config"


def run(config_dir, *args):
    return main(["--config-dir", str(config_dir), *args])


class TestParser:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_ask_joins_words(self):
        args = build_parser().parse_args(["ask", "view", "today", "--json"])
        assert args.text == ["view", "today"]
        assert args.json is True

    def test_pull_default_days(self):
        assert build_parser().parse_args(["pull"]).days == 30


class TestAsk:

    def test_create_persists(self, config_dir, tmp_path, capsys):
        assert run(config_dir, "ask", "create", "focus", "block", "tomorrow", "at", "10:00") == 0
        assert "focus block" in capsys.readouterr().out
        events = SQLiteEventStore(tmp_path / "calendar.db").query()
        assert [e.title for e in events] == ["focus block"]

    def test_json_output(self, config_dir, capsys):
        assert run(config_dir, "ask", "view", "today", "--json", "--compact") == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is True

    def test_conflict_exits_2(self, config_dir, capsys):
        run(config_dir, "ask", "create", "standup", "tomorrow", "at", "10:00")
        capsys.readouterr()
        assert run(config_dir, "ask", "create", "review", "tomorrow", "at", "10:30") == 2
        assert "standup" in capsys.readouterr().out


class TestFree:

    def test_empty_day(self, config_dir, capsys):
        assert run(config_dir, "free", "--date", "2030-01-07", "--json") == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["count"] == 9
        assert payload["slots"][0]["start"].startswith("2030-01-07T09:00")

    def test_work_hours_override(self, config_dir, capsys):
        assert run(config_dir, "free", "--date", "2030-01-07", "--work-start", "10",
                   "--work-end", "12", "--duration", "30", "--json") == 0
        assert json.loads(capsys.readouterr().out)["count"] == 4

    def test_text_output(self, config_dir, capsys):
        run(config_dir, "free", "--date", "2030-01-07")
        out = capsys.readouterr().out
        assert "Free slots on 2030-01-07 (9)" in out
        assert "09:00 - 10:00" in out


class TestSync:

    def test_not_authenticated(self, config_dir, capsys):
        assert run(config_dir, "sync", "--json") == 1
        payload = json.loads(capsys.readouterr().out)
        assert payload["kind"] == "NotAuthenticatedError"

    def test_push_with_provider(self, config_dir, tmp_path, capsys):
        provider = MagicMock()
        provider.list_events.return_value = []
        provider.create_event.side_effect = lambda calendar_id, body: {**body, "id": "remote-1"}
        run(config_dir, "ask", "create", "standup", "tomorrow", "at", "9:00")
        capsys.readouterr()

        with patch("smartcal.cli.build_provider", return_value=provider):
            assert run(config_dir, "sync", "--json") == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["created"] == 1
        stored = SQLiteEventStore(tmp_path / "calendar.db").query()
        assert stored[0].remote_id == "remote-1"

    def test_auth_failure_mid_pass_exits_1(self, config_dir, capsys):
        provider = MagicMock()
        provider.list_events.return_value = []
        provider.create_event.side_effect = NotAuthenticatedError("token revoked")
        run(config_dir, "ask", "create", "standup", "tomorrow", "at", "9:00")
        capsys.readouterr()

        with patch("smartcal.cli.build_provider", return_value=provider):
            assert run(config_dir, "sync", "--json") == 1

        payload = json.loads(capsys.readouterr().out)
        assert payload["kind"] == "NotAuthenticatedError"
        assert "token revoked" in payload["error"]

    def test_login_failure(self, config_dir, capsys):
        provider = MagicMock()
        provider.authenticate.side_effect = NotAuthenticatedError("no credentials.json")
        with patch("smartcal.cli.build_provider", return_value=provider):
            assert run(config_dir, "login") == 1
        assert "Setup instructions" in capsys.readouterr().err
