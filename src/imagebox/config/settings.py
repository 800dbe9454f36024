"""
Configuration settings management for Imagebox.

This module handles loading, validating, and saving configuration settings
from YAML files with support for environment variable overrides.

Configuration is loaded from ~/.imagebox/config.yaml by default, with the
path overridable via the IMAGEBOX_CONFIG environment variable.
"""

import os
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".imagebox"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

_FILENAME_PART = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass
class BackupConfig:
    """Backup file settings."""

    output_dir: str = "."
    app_name: str = "imagebox"
    file_extension: str = "ibx"


@dataclass
class Settings:
    """
    Complete Imagebox configuration settings.

    Settings are loaded from a YAML configuration file and can be overridden
    by environment variables prefixed with IMAGEBOX_.

    Attributes:
        data_dir: Directory holding the configuration database.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        backup: Backup file settings.
    """

    data_dir: str = str(DEFAULT_CONFIG_DIR / "data")
    log_level: str = "INFO"

    backup: BackupConfig = field(default_factory=BackupConfig)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from IMAGEBOX_CONFIG environment variable if set,
    otherwise returns the default path (~/.imagebox/config.yaml).
    """
    env_path = os.environ.get("IMAGEBOX_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, and validates the configuration.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses IMAGEBOX_CONFIG environment variable or default path.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        settings = _apply_config_data(settings, config_data)

    settings = _apply_environment_overrides(settings)

    _validate_config(settings)

    return settings


def save_config(settings: Settings, config_path: Path | None = None) -> None:
    """
    Save configuration to YAML file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_data = _settings_to_dict(settings)

    try:
        with open(config_path, "w") as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Cannot write config file: {e}") from e


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    imagebox_data = data.get("imagebox") or {}

    if "data_dir" in imagebox_data:
        settings.data_dir = str(imagebox_data["data_dir"])
    if "log_level" in imagebox_data:
        settings.log_level = str(imagebox_data["log_level"]).upper()

    backup = data.get("backup") or {}
    if "output_dir" in backup:
        settings.backup.output_dir = str(backup["output_dir"])
    if "app_name" in backup:
        settings.backup.app_name = str(backup["app_name"])
    if "file_extension" in backup:
        settings.backup.file_extension = str(backup["file_extension"]).lstrip(".")

    return settings


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "IMAGEBOX_DATA_DIR": ("data_dir", str),
        "IMAGEBOX_LOG_LEVEL": ("log_level", lambda x: x.upper()),
        "IMAGEBOX_BACKUP_DIR": ("backup.output_dir", str),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested_attr(settings, attr_path, converter(value))

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if settings.log_level not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(valid_log_levels))}"
        )

    # Both end up in backup file names
    if not _FILENAME_PART.match(settings.backup.app_name):
        raise ConfigurationError(
            f"Invalid backup app_name: {settings.backup.app_name!r}. "
            "Use letters, digits, '-' or '_'."
        )
    if not _FILENAME_PART.match(settings.backup.file_extension):
        raise ConfigurationError(
            f"Invalid backup file_extension: {settings.backup.file_extension!r}"
        )


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings instance to dictionary for YAML serialization."""
    return {
        "imagebox": {
            "data_dir": settings.data_dir,
            "log_level": settings.log_level,
        },
        "backup": {
            "output_dir": settings.backup.output_dir,
            "app_name": settings.backup.app_name,
            "file_extension": settings.backup.file_extension,
        },
    }
