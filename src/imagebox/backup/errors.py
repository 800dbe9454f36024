"""
Exceptions raised by backup creation and restore.

Each exception carries the message that is safe to show to the user.
DecryptionFailed uses one message for both a wrong password
and a damaged file.
"""


class BackupError(Exception):
    """Base exception for backup and restore errors."""

    default_message = "Backup operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class EmptyPassword(BackupError):
    """Raised before any crypto work when no password was supplied."""

    default_message = "Password is required"


class CryptoFailure(BackupError):
    """Raised when a cryptographic primitive fails while creating a backup."""

    default_message = "Backup creation failed"


class DecryptionFailed(BackupError):
    """Raised when a backup cannot be authenticated and decrypted."""

    default_message = "Invalid password or corrupted backup file"


class InvalidBackupFormat(BackupError):
    """Raised when decrypted data is not a valid configuration snapshot."""

    default_message = "Invalid backup file format"


class RestoreTransactionFailed(BackupError):
    """
    Raised when the datastore fails during a restore.

    The transaction has already been rolled back when this is raised, so
    the restore is safe to retry.
    """

    default_message = "Restore failed"
