"""
Configuration management for Imagebox.

This module handles loading, validating, and saving configuration settings.
"""

from imagebox.config.settings import (
    DEFAULT_CONFIG_DIR,
    BackupConfig,
    ConfigurationError,
    Settings,
    load_config,
    save_config,
)

__all__ = [
    "Settings",
    "BackupConfig",
    "load_config",
    "save_config",
    "ConfigurationError",
    "DEFAULT_CONFIG_DIR",
]
