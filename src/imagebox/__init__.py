"""
Imagebox - configuration backup and restore for the Imagebox studio.

Imagebox keeps the studio's providers, models, prompt templates, access
tokens and settings in a local SQLite store, and moves them between
installations as password-encrypted backup files.

Key Features:
    - Encrypted, portable backups (PBKDF2 + AES-256-GCM)
    - Idempotent restore that only adds what is missing
    - Name-based references so backups survive different row ids
    - Single-transaction restore: all or nothing
"""

__version__ = "0.1.0"

from imagebox.config.settings import Settings, load_config

__all__ = [
    "__version__",
    "Settings",
    "load_config",
]
