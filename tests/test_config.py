"""Tests for configuration management."""

from pathlib import Path

import pytest

from pantry_tracker.config import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text("""
[data]
storage_dir = "/custom/data"
backend = "sqlite"

[reminders]
enabled = false
lead_days = 3
hour = 8
minute = 30

[expiration]
soon_days = 5

[widget]
snapshot_path = "/shared/group/snapshot.json"
refresh_hour = 4

[logging]
level = "debug"
""")
    return config_path


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_from_file(self, config_file):
        config = ConfigManager(config_path=config_file)

        assert config.data.storage_dir == Path("/custom/data")
        assert config.data.backend == "sqlite"
        assert config.reminders.enabled is False
        assert config.reminders.lead_days == 3
        assert (config.reminders.hour, config.reminders.minute) == (8, 30)
        assert config.expiration.soon_days == 5
        assert config.widget.snapshot_path == Path("/shared/group/snapshot.json")
        assert config.widget.refresh_hour == 4
        assert config.widget.refresh_minute == 5
        assert config.logging.level == "DEBUG"

    def test_defaults_when_missing(self, tmp_path):
        config = ConfigManager(config_path=tmp_path / "missing.toml")

        assert config.data.storage_dir == Path.home() / "pantry-tracker" / "data"
        assert config.data.backend == "json"
        assert config.reminders.enabled is True
        assert config.reminders.lead_days == 2
        assert config.reminders.hour == 9
        assert config.expiration.soon_days == 3
        assert config.widget.snapshot_path is None
        assert config.logging.level == "WARNING"

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[data]\nstorage_dir = "/d"\n')
        config = ConfigManager(config_path=path)

        assert config.data.backend == "json"
        assert config.reminders.lead_days == 2

    def test_snapshot_path_defaults_next_to_data(self, tmp_path):
        config = ConfigManager(config_path=tmp_path / "missing.toml")
        assert config.snapshot_path(tmp_path) == tmp_path / "widget_snapshot.json"
        assert config.snapshot_path() == config.data.storage_dir / "widget_snapshot.json"

    def test_snapshot_path_from_file(self, config_file, tmp_path):
        config = ConfigManager(config_path=config_file)
        assert config.snapshot_path(tmp_path) == Path("/shared/group/snapshot.json")

    def test_get_dot_path(self, config_file):
        config = ConfigManager(config_path=config_file)
        assert config.get("reminders.lead_days") == 3
        assert config.get("expiration.soon_days") == 5
        assert config.get("reminders.nope", "fallback") == "fallback"
        assert config.get("nope.deeper") is None
