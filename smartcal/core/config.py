"""
Configuration management for smartcal
Handles loading and saving user preferences and settings
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional, Tuple


class Config:
    """Configuration manager for the calendar engine"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to configuration directory (defaults to ./config)
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings_file = self.config_dir / "settings.json"
        self.preferences_file = self.config_dir / "preferences.json"

        # Load configurations
        self.settings = self._load_json(self.settings_file, self._default_settings())
        self.preferences = self._load_json(self.preferences_file, self._default_preferences())

    def _load_json(self, file_path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
        """Load JSON file or return default if file doesn't exist"""
        if file_path.exists():
            with open(file_path, 'r') as f:
                loaded = json.load(f)
            # Keys added in newer versions fall back to defaults
            return {**default, **loaded}
        else:
            # Create file with defaults
            self._save_json(file_path, default)
            return default

    def _save_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Save data to JSON file"""
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2)

    def _default_settings(self) -> Dict[str, Any]:
        """Default system settings"""
        return {
            "database_path": "data/database/calendar.db",
            "timezone": "UTC",
            "first_day_of_week": "monday",
            "calendar_id": "primary",
            "credentials_dir": "config/google_credentials",
            "tombstones_file": "data/sync/tombstones.json",
        }

    def _default_preferences(self) -> Dict[str, Any]:
        """Default user preferences"""
        return {
            "work_hours_start": "09:00",
            "work_hours_end": "18:00",
            "slot_minutes": 60,
            "default_event_minutes": 60,
            "default_category": "work",
        }

    def get(self, key: str, section: str = "settings", default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key
            section: Configuration section ('settings', 'preferences')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        section_map = {
            "settings": self.settings,
            "preferences": self.preferences
        }

        return section_map.get(section, {}).get(key, default)

    def set(self, key: str, value: Any, section: str = "settings") -> None:
        """
        Set configuration value and save to disk

        Args:
            key: Configuration key
            value: Value to set
            section: Configuration section ('settings', 'preferences')
        """
        section_map = {
            "settings": (self.settings, self.settings_file),
            "preferences": (self.preferences, self.preferences_file)
        }

        if section in section_map:
            config_dict, file_path = section_map[section]
            config_dict[key] = value
            self._save_json(file_path, config_dict)

    def get_work_hours(self) -> Tuple[int, int]:
        """Work window as whole hours, e.g. (9, 18)"""
        start = str(self.preferences.get("work_hours_start", "09:00"))
        end = str(self.preferences.get("work_hours_end", "18:00"))
        return int(start.split(":")[0]), int(end.split(":")[0])

    def _resolve(self, key: str) -> Path:
        path = Path(self.settings[key])
        if path.is_absolute():
            return path
        return Path(__file__).parent.parent.parent / path

    def get_database_path(self) -> Path:
        """Get full path to database file"""
        return self._resolve("database_path")

    def get_credentials_dir(self) -> Path:
        """Get full path to Google credentials directory"""
        return self._resolve("credentials_dir")

    def get_tombstones_path(self) -> Path:
        """Get full path to the sync tombstone ledger"""
        return self._resolve("tombstones_file")
