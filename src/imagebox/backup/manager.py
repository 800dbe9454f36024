"""
Backup manager: creates and restores encrypted configuration backups.

The manager sits between the configuration store and the codec. Creating
a backup reads the live configuration in one read transaction, translates
row ids into names and encrypts the resulting snapshot. Restoring decrypts
a blob and hands the snapshot to the reconciler.

Backup files are plain text (the base64 blob) and are written atomically
with owner-only permissions.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from imagebox.backup import codec
from imagebox.backup.errors import EmptyPassword, InvalidBackupFormat
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
from imagebox.config.settings import Settings
from imagebox.storage.base import REMOTE_ACCESS_SETTING
from imagebox.storage.config_store import ConfigStore, ConfigurationData
from imagebox.storage.models import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    """
    Output of a successful backup.

    Attributes:
        blob: Encrypted base64 blob to store in the backup file.
        suggested_filename: File name for the blob, e.g.
            imagebox-backup-2024-01-15T10-30-00.ibx
        snapshot: The plaintext snapshot that was encrypted.
    """

    blob: str
    suggested_filename: str
    snapshot: Snapshot


class BackupManager:
    """
    Creates and restores password-protected configuration backups.

    Example:
        manager = BackupManager(ConfigStore(data_dir), settings)
        result = manager.create_backup("correct horse")
        path = manager.write_backup_file(result, Path("."))

        summary = manager.restore_backup(manager.read_backup_file(path), "correct horse")
        print(f"Restored {summary.total} items")
    """

    def __init__(self, store: ConfigStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.reconciler = RestoreReconciler()

    def create_backup(self, password: str) -> BackupResult:
        """
        Snapshot and encrypt the current configuration.

        Args:
            password: Backup password. Must not be empty.

        Returns:
            BackupResult with the blob and a suggested file name.

        Raises:
            EmptyPassword: If password is empty.
            CryptoFailure: If encryption failed.
        """
        if not password:
            raise EmptyPassword()

        snapshot = self.build_snapshot(self.store.read_configuration())
        blob = codec.encrypt(snapshot, password)

        filename = self.suggested_filename(snapshot.timestamp)
        logger.info(
            f"Created backup {filename}: {len(snapshot.providers)} providers, "
            f"{len(snapshot.models)} models, {len(snapshot.templates)} templates, "
            f"{len(snapshot.access_tokens or [])} access tokens"
        )
        return BackupResult(blob=blob, suggested_filename=filename, snapshot=snapshot)

    def build_snapshot(self, data: ConfigurationData) -> Snapshot:
        """
        Convert a consistent configuration read into a snapshot.

        Row ids are replaced by names. Models whose provider no longer
        exists are left out. A template whose prompt generator model is gone
        keeps no generator reference.
        """
        provider_names = {p.id: p.name for p in data.providers}
        model_names = {m.id: m.name for m in data.models}

        providers = [
            ProviderRecord(
                name=p.name,
                type=ProviderType(p.type),
                base_url=p.base_url,
                api_key=p.api_key,
            )
            for p in data.providers
        ]

        models = []
        for m in data.models:
            provider_name = provider_names.get(m.provider_id) if m.provider_id else None
            if provider_name is None:
                logger.debug(f"Model '{m.name}' has no provider, leaving it out of the backup")
                continue
            models.append(
                ModelRecord(
                    name=m.name,
                    model_identifier=m.model_identifier,
                    provider_name=provider_name,
                    type=ModelType(m.type),
                    parameter_config=m.parameter_config,
                )
            )

        templates = [
            TemplateRecord(
                name=t.name,
                prompt_template=t.prompt_template,
                icon=t.icon,
                description=t.description,
                system_prompt=t.system_prompt,
                prompt_generator_name=(
                    model_names.get(t.prompt_generator_id) if t.prompt_generator_id else None
                ),
                is_enabled=t.is_enabled,
            )
            for t in data.templates
        ]

        access_tokens = [
            AccessTokenRecord(
                name=t.name,
                token=t.token,
                expires_at=t.expires_at,
                created_at=t.created_at,
                description=t.description,
                is_revoked=t.is_revoked,
                last_used_at=t.last_used_at,
            )
            for t in data.access_tokens
            if t.token
        ]

        return Snapshot(
            version=SNAPSHOT_VERSION,
            timestamp=utc_now_iso(),
            providers=providers,
            models=models,
            templates=templates,
            remote_access_enabled=data.settings.get(REMOTE_ACCESS_SETTING) == "true",
            access_tokens=access_tokens,
        )

    def suggested_filename(self, timestamp: str) -> str:
        """Build the backup file name for an ISO-8601 timestamp."""
        stamp = timestamp.replace(":", "-").replace(".", "-")[:19]
        backup = self.settings.backup
        return f"{backup.app_name}-backup-{stamp}.{backup.file_extension}"

    def restore_backup(self, blob: str, password: str) -> RestoreSummary:
        """
        Decrypt a backup and merge it into the current configuration.

        Existing providers, models, templates and tokens are never
        overwritten. The merge runs in a single transaction.

        Args:
            blob: Contents of a backup file.
            password: Backup password.

        Returns:
            RestoreSummary with the number of restored items.

        Raises:
            EmptyPassword: If password is empty.
            InvalidBackupFormat: If blob is empty or not a valid snapshot.
            DecryptionFailed: Wrong password or corrupted blob.
            RestoreTransactionFailed: The datastore failed; nothing was
                committed.
        """
        if not password:
            raise EmptyPassword()
        if not blob or not blob.strip():
            raise InvalidBackupFormat()

        snapshot = codec.decrypt(blob, password)
        logger.info(
            f"Restoring backup version {snapshot.version} "
            f"created {snapshot.timestamp or 'at an unknown time'}"
        )
        return self.reconciler.apply(snapshot, self.store)

    def write_backup_file(self, result: BackupResult, output_dir: Path | str | None = None) -> Path:
        """
        Write a backup blob to disk.

        The file is written to a temporary file in the same directory and
        renamed into place, so a reader never sees a partial backup.

        Args:
            result: Backup to write.
            output_dir: Target directory. Defaults to the configured
                backup output directory.

        Returns:
            Path of the written file.
        """
        if output_dir is None:
            output_dir = self.settings.backup.output_dir
        directory = Path(output_dir).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / result.suggested_filename

        temp_fd, temp_path = tempfile.mkstemp(suffix=".tmp", dir=str(directory))
        try:
            with os.fdopen(temp_fd, "w") as f:
                f.write(result.blob)

            # Owner read/write only
            try:
                os.chmod(temp_path, 0o600)
            except OSError:
                pass

            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

        logger.info(f"Wrote backup file {path}")
        return path

    def read_backup_file(self, path: Path | str) -> str:
        """Read the blob stored in a backup file."""
        return Path(path).read_text(encoding="utf-8").strip()
