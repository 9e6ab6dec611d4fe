"""
Unit tests for the Config manager.
"""

import json
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from smartcal.core.config import Config


class TestConfig:
    """Tests for loading, defaults and persistence."""

    def test_creates_default_files(self, tmp_path):
        config = Config(tmp_path)
        assert (tmp_path / "settings.json").exists()
        assert (tmp_path / "preferences.json").exists()
        assert config.get("calendar_id") == "primary"
        assert config.get("slot_minutes", section="preferences") == 60

    def test_missing_keys_fall_back_to_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text(json.dumps({"timezone": "Europe/Berlin"}))
        config = Config(tmp_path)
        assert config.get("timezone") == "Europe/Berlin"
        assert config.get("first_day_of_week") == "monday"

    def test_set_persists(self, tmp_path):
        Config(tmp_path).set("work_hours_end", "17:00", section="preferences")
        reloaded = Config(tmp_path)
        assert reloaded.get("work_hours_end", section="preferences") == "17:00"
        assert reloaded.get_work_hours() == (9, 17)

    def test_unknown_section_returns_default(self, tmp_path):
        assert Config(tmp_path).get("x", section="nope", default=3) == 3

    def test_absolute_paths_are_kept(self, tmp_path):
        config = Config(tmp_path)
        config.set("database_path", str(tmp_path / "cal.db"))
        assert config.get_database_path() == tmp_path / "cal.db"
