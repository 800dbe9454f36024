"""
Encrypted configuration backup and restore.

A backup is a password-protected, base64 encoded snapshot of the studio
configuration. Restoring merges a snapshot into the live configuration
without overwriting anything that already exists.

Example:
    from imagebox.backup import BackupManager
    from imagebox.storage import ConfigStore

    manager = BackupManager(ConfigStore())
    result = manager.create_backup("password")
    summary = manager.restore_backup(result.blob, "password")
"""

from imagebox.backup.codec import decrypt, encrypt
from imagebox.backup.errors import (
    BackupError,
    CryptoFailure,
    DecryptionFailed,
    EmptyPassword,
    InvalidBackupFormat,
    RestoreTransactionFailed,
)
from imagebox.backup.manager import BackupManager, BackupResult
from imagebox.backup.reconciler import RestoreReconciler, RestoreSummary
from imagebox.backup.snapshot import (
    SNAPSHOT_VERSION,
    AccessTokenRecord,
    ModelRecord,
    ModelType,
    ProviderRecord,
    ProviderType,
    Snapshot,
    TemplateRecord,
)

__all__ = [
    "BackupManager",
    "BackupResult",
    "RestoreReconciler",
    "RestoreSummary",
    "Snapshot",
    "ProviderRecord",
    "ModelRecord",
    "TemplateRecord",
    "AccessTokenRecord",
    "ProviderType",
    "ModelType",
    "SNAPSHOT_VERSION",
    "encrypt",
    "decrypt",
    "BackupError",
    "EmptyPassword",
    "CryptoFailure",
    "DecryptionFailed",
    "InvalidBackupFormat",
    "RestoreTransactionFailed",
]
