"""
Configuration storage engine.

This module provides persistent storage for the studio configuration
(providers, models, prompt templates, access tokens and settings) in a
single SQLite database.

Features:
    - Natural-key uniqueness (names, token values) for portable backups
    - Atomic multi-step writes via run_in_transaction()
    - One-time preset seeding and first-run reset

Usage:
    from imagebox.storage import ConfigStore

    store = ConfigStore()
    store.ensure_presets()
    providers = store.list_providers()
"""

from imagebox.storage.base import ConfigDatastore, ConfigTransaction, StorageError
from imagebox.storage.config_store import (
    ConfigStore,
    ConfigurationData,
    DuplicateEntryError,
    EntryNotFoundError,
    InvalidEntryError,
)
from imagebox.storage.models import AccessToken, Model, Provider, Template

__all__ = [
    # Store classes
    "ConfigStore",
    "ConfigDatastore",
    "ConfigTransaction",
    "ConfigurationData",
    # Data models
    "Provider",
    "Model",
    "Template",
    "AccessToken",
    # Exceptions
    "StorageError",
    "DuplicateEntryError",
    "EntryNotFoundError",
    "InvalidEntryError",
]
