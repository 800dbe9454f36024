"""
Restore reconciler: merges a snapshot into a live datastore.

The merge only ever adds what is missing. Existing rows win over the
backup, matched by natural key:

    providers       name
    models          (name, live provider id)
    templates       name
    access tokens   token value

Cross references are resolved by name against the live datastore inside
the same transaction, so a provider inserted earlier in a restore is
visible to the models that follow it. Everything runs in one transaction:
either the whole merge is committed or none of it is.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from imagebox.backup.errors import RestoreTransactionFailed
from imagebox.backup.snapshot import Snapshot
from imagebox.storage.base import (
    REMOTE_ACCESS_SETTING,
    ConfigDatastore,
    ConfigTransaction,
    StorageError,
)

logger = logging.getLogger(__name__)


@dataclass
class RestoreSummary:
    """Rows actually inserted by a restore, per entity type."""

    providers_restored: int = 0
    models_restored: int = 0
    templates_restored: int = 0
    tokens_restored: int = 0

    @property
    def total(self) -> int:
        return (
            self.providers_restored
            + self.models_restored
            + self.templates_restored
            + self.tokens_restored
        )

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class RestoreReconciler:
    """
    Applies snapshots to a datastore with skip-on-conflict semantics.

    Applying the same snapshot twice inserts nothing the second time.
    """

    def apply(self, snapshot: Snapshot, datastore: ConfigDatastore) -> RestoreSummary:
        """
        Merge a snapshot into the datastore in one transaction.

        Args:
            snapshot: Decoded, validated snapshot.
            datastore: Target datastore.

        Returns:
            RestoreSummary with the number of inserted rows.

        Raises:
            RestoreTransactionFailed: If the datastore failed. Nothing from
                this call was committed.
        """
        try:
            summary = datastore.run_in_transaction(
                lambda tx: self._apply_in_transaction(snapshot, tx)
            )
        except StorageError as e:
            logger.error(f"Restore rolled back: {e}")
            raise RestoreTransactionFailed(f"Restore failed: {e}") from e

        logger.info(
            f"Restore completed: {summary.providers_restored} providers, "
            f"{summary.models_restored} models, "
            f"{summary.templates_restored} templates, "
            f"{summary.tokens_restored} access tokens"
        )
        return summary

    def _apply_in_transaction(self, snapshot: Snapshot, tx: ConfigTransaction) -> RestoreSummary:
        summary = RestoreSummary()
        summary.providers_restored = self._restore_providers(snapshot, tx)
        summary.models_restored = self._restore_models(snapshot, tx)
        summary.templates_restored = self._restore_templates(snapshot, tx)
        self._restore_remote_access(snapshot, tx)
        summary.tokens_restored = self._restore_tokens(snapshot, tx)
        return summary

    def _restore_providers(self, snapshot: Snapshot, tx: ConfigTransaction) -> int:
        restored = 0
        for record in snapshot.providers:
            if tx.find_provider_by_name(record.name) is not None:
                logger.debug(f"Provider '{record.name}' already exists, skipping")
                continue
            tx.insert_provider(record)
            restored += 1
        return restored

    def _restore_models(self, snapshot: Snapshot, tx: ConfigTransaction) -> int:
        restored = 0
        for record in snapshot.models:
            provider = tx.find_provider_by_name(record.provider_name)
            if provider is None:
                logger.warning(
                    f"Provider '{record.provider_name}' not found for model "
                    f"'{record.name}', skipping"
                )
                continue
            if tx.find_model_by_name_and_provider(record.name, provider.id) is not None:
                logger.debug(f"Model '{record.name}' already exists, skipping")
                continue
            tx.insert_model(record, provider.id)
            restored += 1
        return restored

    def _restore_templates(self, snapshot: Snapshot, tx: ConfigTransaction) -> int:
        restored = 0
        for record in snapshot.templates:
            if tx.find_template_by_name(record.name) is not None:
                logger.debug(f"Template '{record.name}' already exists, skipping")
                continue

            generator_id = None
            if record.prompt_generator_name:
                generator = tx.find_model_by_name(record.prompt_generator_name)
                if generator is None:
                    logger.info(
                        f"Prompt generator '{record.prompt_generator_name}' not found "
                        f"for template '{record.name}', restoring without it"
                    )
                else:
                    generator_id = generator.id

            tx.insert_template(record, generator_id)
            restored += 1
        return restored

    def _restore_remote_access(self, snapshot: Snapshot, tx: ConfigTransaction) -> None:
        # None means the backup predates the setting; False is a real value
        if snapshot.remote_access_enabled is None:
            return
        tx.upsert_setting(
            REMOTE_ACCESS_SETTING, "true" if snapshot.remote_access_enabled else "false"
        )

    def _restore_tokens(self, snapshot: Snapshot, tx: ConfigTransaction) -> int:
        if snapshot.access_tokens is None:
            return 0
        restored = 0
        for record in snapshot.access_tokens:
            if tx.find_token_by_value(record.token) is not None:
                continue
            tx.insert_token(record)
            restored += 1
        return restored
