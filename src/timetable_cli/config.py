"""Configuration management for the Timetable CLI application."""

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_HEADER_NAMES = ["Tasks", "Estimate", "Start", "End"]


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used."""


@dataclass
class TimetableConfig:
    """Global configuration model for Timetable CLI."""

    # Source document
    file_path: Optional[str] = None

    # Table columns
    show_estimate: bool = False
    show_start_time: bool = False
    header_names: List[str] = field(default_factory=lambda: list(DEFAULT_HEADER_NAMES))

    # Task name display
    show_estimate_in_task_name: bool = False
    show_start_time_in_task_name: bool = True

    # Extra rows and indicators
    show_buffer_time: bool = True
    show_progress_bar: bool = True
    enable_overdue_notice: bool = True
    interval_time: int = 1  # seconds between progress refreshes

    # Task line grammar
    task_estimate_delimiter: str = ";"
    start_time_delimiter: str = "@"
    date_delimiter: str = ""  # regex; empty never matches

    # File paths
    data_dir: str = "~/.timetable"

    def __post_init__(self):
        """Post-initialization validation."""
        self.data_dir = os.path.expanduser(self.data_dir)
        self.header_names = [str(name).strip() for name in self.header_names]

        if not self.task_estimate_delimiter:
            raise ConfigError("task_estimate_delimiter must not be empty")
        if not self.start_time_delimiter:
            raise ConfigError("start_time_delimiter must not be empty")
        if self.interval_time <= 0:
            raise ConfigError(f"interval_time must be positive, got {self.interval_time}")
        if len(self.header_names) < len(DEFAULT_HEADER_NAMES):
            raise ConfigError(
                f"header_names needs {len(DEFAULT_HEADER_NAMES)} entries, "
                f"got {len(self.header_names)}"
            )
        if self.date_delimiter:
            try:
                re.compile(self.date_delimiter)
            except re.error as e:
                raise ConfigError(f"Invalid date_delimiter pattern {self.date_delimiter!r}: {e}") from e

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "TimetableConfig":
        """Deserialize config from YAML."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration file must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

        # Header names may be written as a single comma separated string
        headers = data.get("header_names")
        if isinstance(headers, str):
            data["header_names"] = [name.strip() for name in headers.split(",")]

        return cls(**{key: value for key, value in data.items() if key in known})

    def get_config_path(self) -> Path:
        """Get the config file path."""
        return Path(self.data_dir) / "config.yaml"


class Config:
    """Configuration manager for Timetable CLI."""

    _instance: Optional[TimetableConfig] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> TimetableConfig:
        """Load configuration from file, falling back to defaults."""
        if cls._instance is not None and config_path is None:
            return cls._instance

        config = TimetableConfig()

        if config_path is None:
            config_path = config.get_config_path()

        if config_path.exists():
            try:
                config = TimetableConfig.from_yaml(config_path.read_text(encoding="utf-8"))
                logger.debug(f"Loaded configuration from {config_path}")
            except (OSError, yaml.YAMLError, ConfigError, TypeError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}")
                logger.warning("Using default configuration.")
        else:
            logger.debug(f"No configuration at {config_path}, using defaults")

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: TimetableConfig, config_path: Optional[Path] = None) -> Path:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config.to_yaml(), encoding="utf-8")
        logger.info(f"Configuration saved to {config_path}")
        return config_path

    @classmethod
    def get(cls) -> TimetableConfig:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> TimetableConfig:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)


def get_config() -> TimetableConfig:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> TimetableConfig:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: TimetableConfig, config_path: Optional[Path] = None) -> Path:
    """Save configuration to file."""
    return Config.save(config, config_path)
