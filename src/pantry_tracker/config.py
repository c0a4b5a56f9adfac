"""Configuration management for Pantry Tracker."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path
    backend: str = "json"


@dataclass
class RemindersConfig:
    """Expiration reminder configuration."""

    enabled: bool = True
    lead_days: int = 2
    hour: int = 9
    minute: int = 0


@dataclass
class ExpirationConfig:
    """Expiration window configuration."""

    soon_days: int = 3


@dataclass
class WidgetConfig:
    """Summary snapshot configuration."""

    snapshot_path: Path | None = None
    refresh_hour: int = 3
    refresh_minute: int = 5


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    reminders: RemindersConfig = field(default_factory=RemindersConfig)
    expiration: ExpirationConfig = field(default_factory=ExpirationConfig)
    widget: WidgetConfig = field(default_factory=WidgetConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def reminders(self) -> RemindersConfig:
        """Get reminders configuration."""
        return self._config.reminders

    @property
    def expiration(self) -> ExpirationConfig:
        """Get expiration configuration."""
        return self._config.expiration

    @property
    def widget(self) -> WidgetConfig:
        """Get widget snapshot configuration."""
        return self._config.widget

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._config.logging

    def snapshot_path(self, storage_dir: Path | None = None) -> Path:
        """Resolve the snapshot slot path, defaulting next to the data."""
        if self.widget.snapshot_path is not None:
            return self.widget.snapshot_path
        return (storage_dir or self.data.storage_dir) / "widget_snapshot.json"

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "pantry-tracker" / "config.toml",
            Path.home() / ".pantry-tracker" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        # Return default location if none found
        return Path.home() / ".config" / "pantry-tracker" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        data_section = data.get("data", {})
        reminders = data.get("reminders", {})
        widget = data.get("widget", {})
        snapshot_path = widget.get("snapshot_path")

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data_section.get("storage_dir", "~/pantry-tracker/data")
                ).expanduser(),
                backend=data_section.get("backend", "json"),
            ),
            reminders=RemindersConfig(
                enabled=reminders.get("enabled", True),
                lead_days=reminders.get("lead_days", 2),
                hour=reminders.get("hour", 9),
                minute=reminders.get("minute", 0),
            ),
            expiration=ExpirationConfig(
                soon_days=data.get("expiration", {}).get("soon_days", 3),
            ),
            widget=WidgetConfig(
                snapshot_path=Path(snapshot_path).expanduser() if snapshot_path else None,
                refresh_hour=widget.get("refresh_hour", 3),
                refresh_minute=widget.get("refresh_minute", 5),
            ),
            logging=LoggingConfig(
                level=str(data.get("logging", {}).get("level", "WARNING")).upper(),
            ),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(data=DataConfig(storage_dir=Path.home() / "pantry-tracker" / "data"))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'reminders.lead_days'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default
