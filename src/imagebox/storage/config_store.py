"""
SQLite configuration store for Imagebox.

This module provides the ConfigStore class which persists the studio's
configuration: providers, models, prompt templates, remote-access tokens
and key/value settings.

Storage Structure:
    data/
        imagebox.db     # SQLite database

Design Decisions:
    - SQLite is used for its simplicity, portability, and ACID compliance
    - Names (and token values) are UNIQUE so they work as natural keys
      across installations whose row ids differ
    - Write transactions use BEGIN IMMEDIATE so concurrent restores are
      serialized by SQLite rather than by application locks
    - Settings are an explicit table owned by the store, not a global

Thread Safety:
    The store uses a connection-per-operation pattern. Multiple processes
    should use separate ConfigStore instances.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from imagebox.storage.base import (
    REMOTE_ACCESS_SETTING,
    ConfigDatastore,
    ConfigTransaction,
    StorageError,
)
from imagebox.storage.models import (
    MODEL_TYPES,
    PRESET_ID_PREFIX,
    PROVIDER_TYPES,
    AccessToken,
    Model,
    Provider,
    Template,
    new_id,
    utc_now_iso,
)
from imagebox.storage.presets import (
    PRESERVED_SETTING_KEYS,
    PRESET_MODELS,
    PRESET_PROVIDERS,
    PRESET_TEMPLATE_NAMES,
    PRESET_TEMPLATES,
    PRESET_TEMPLATES_INITIALIZED_KEY,
    PRESETS_INITIALIZED_KEY,
)

if TYPE_CHECKING:
    from imagebox.backup.snapshot import (
        AccessTokenRecord,
        ModelRecord,
        ProviderRecord,
        TemplateRecord,
    )


logger = logging.getLogger(__name__)

T = TypeVar("T")


class DuplicateEntryError(StorageError):
    """Raised when a save would violate a natural-key uniqueness constraint."""

    pass


class EntryNotFoundError(StorageError):
    """Raised when a requested row does not exist."""

    pass


class InvalidEntryError(StorageError):
    """Raised when a row carries a value the store does not accept."""

    pass


# Database schema version for migrations
SCHEMA_VERSION = 1

DATABASE_FILE = "imagebox.db"

# Seconds to wait for a competing writer before failing
BUSY_TIMEOUT_SECONDS = 5.0


CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS providers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    type TEXT NOT NULL,
    base_url TEXT,
    api_key TEXT,
    local_backend TEXT,
    local_model_path TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS models (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    model_identifier TEXT NOT NULL,
    type TEXT NOT NULL,
    provider_id TEXT,
    parameter_config TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (name, provider_id),
    FOREIGN KEY (provider_id) REFERENCES providers(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_models_name ON models(name);

CREATE TABLE IF NOT EXISTS templates (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    icon TEXT,
    description TEXT,
    prompt_template TEXT NOT NULL,
    system_prompt TEXT,
    prompt_generator_id TEXT,
    is_enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (prompt_generator_id) REFERENCES models(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS access_tokens (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    token TEXT NOT NULL UNIQUE,
    expires_at TEXT NOT NULL,
    is_revoked INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    last_used_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_tokens_created_at ON access_tokens(created_at);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


@dataclass
class ConfigurationData:
    """A consistent read of the whole configuration."""

    providers: list[Provider] = field(default_factory=list)
    models: list[Model] = field(default_factory=list)
    templates: list[Template] = field(default_factory=list)
    access_tokens: list[AccessToken] = field(default_factory=list)
    settings: dict[str, str] = field(default_factory=dict)


class SqliteConfigTransaction(ConfigTransaction):
    """ConfigTransaction bound to an open SQLite connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def find_provider_by_name(self, name: str) -> Provider | None:
        row = self._conn.execute(
            "SELECT * FROM providers WHERE name = ?", (name,)
        ).fetchone()
        return Provider.from_row(row) if row else None

    def insert_provider(self, record: ProviderRecord) -> str:
        provider = Provider.create(
            name=record.name,
            type=record.type.value,
            base_url=record.base_url,
            api_key=record.api_key,
        )
        _insert_provider(self._conn, provider)
        return provider.id

    def find_model_by_name_and_provider(self, name: str, provider_id: str) -> Model | None:
        row = self._conn.execute(
            "SELECT * FROM models WHERE name = ? AND provider_id = ?",
            (name, provider_id),
        ).fetchone()
        return Model.from_row(row) if row else None

    def find_model_by_name(self, name: str) -> Model | None:
        # Oldest first so the result is stable when several providers
        # offer a model with the same name
        row = self._conn.execute(
            "SELECT * FROM models WHERE name = ? ORDER BY created_at, id LIMIT 1",
            (name,),
        ).fetchone()
        return Model.from_row(row) if row else None

    def insert_model(self, record: ModelRecord, provider_id: str) -> str:
        model = Model.create(
            name=record.name,
            model_identifier=record.model_identifier,
            type=record.type.value,
            provider_id=provider_id,
            parameter_config=record.parameter_config,
        )
        _insert_model(self._conn, model)
        return model.id

    def find_template_by_name(self, name: str) -> Template | None:
        row = self._conn.execute(
            "SELECT * FROM templates WHERE name = ?", (name,)
        ).fetchone()
        return Template.from_row(row) if row else None

    def insert_template(
        self,
        record: TemplateRecord,
        prompt_generator_id: str | None = None,
    ) -> str:
        template = Template.create(
            name=record.name,
            prompt_template=record.prompt_template,
            icon=record.icon,
            description=record.description,
            system_prompt=record.system_prompt,
            prompt_generator_id=prompt_generator_id,
            is_enabled=record.is_enabled,
        )
        _insert_template(self._conn, template)
        return template.id

    def find_token_by_value(self, token: str) -> AccessToken | None:
        row = self._conn.execute(
            "SELECT * FROM access_tokens WHERE token = ?", (token,)
        ).fetchone()
        return AccessToken.from_row(row) if row else None

    def insert_token(self, record: AccessTokenRecord) -> str:
        token = AccessToken(
            id=new_id(),
            name=record.name,
            description=record.description,
            token=record.token,
            expires_at=record.expires_at,
            created_at=record.created_at,
            is_revoked=record.is_revoked,
            last_used_at=record.last_used_at,
        )
        _insert_token(self._conn, token)
        return token.id

    def upsert_setting(self, key: str, value: str) -> None:
        _upsert_setting(self._conn, key, value)


class ConfigStore(ConfigDatastore):
    """
    Persistent storage for Imagebox configuration.

    Example:
        store = ConfigStore(data_dir=Path("./data"))
        store.ensure_presets()

        provider = store.save_provider(Provider.create("Acme", "OPENAI"))
        providers = store.list_providers()

        # Atomic multi-step work
        store.run_in_transaction(lambda tx: tx.upsert_setting("k", "v"))

    Attributes:
        data_dir: Base directory for data storage.
        db_path: Path to the SQLite database file.
    """

    def __init__(self, data_dir: Path | str | None = None) -> None:
        """
        Initialize the configuration store.

        Args:
            data_dir: Base directory for data storage. Defaults to ~/.imagebox/data
        """
        if data_dir is None:
            data_dir = Path.home() / ".imagebox" / "data"
        elif isinstance(data_dir, str):
            data_dir = Path(data_dir)

        self.data_dir = data_dir
        self.db_path = data_dir / DATABASE_FILE

        self.data_dir.mkdir(parents=True, exist_ok=True)

        self._init_database()

    def _init_database(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(CREATE_TABLES_SQL)

            row = conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            ).fetchone()

            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, datetime.now(UTC).isoformat()),
                )
                logger.info(f"Initialized database schema version {SCHEMA_VERSION}")
            elif row[0] < SCHEMA_VERSION:
                logger.warning(
                    f"Database schema version {row[0]} is older than "
                    f"expected version {SCHEMA_VERSION}"
                )

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection with row factory set.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            isolation_level=None,  # Autocommit mode, we manage transactions manually
            timeout=BUSY_TIMEOUT_SECONDS,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def run_in_transaction(self, fn: Callable[[ConfigTransaction], T]) -> T:
        """
        Run fn inside one write transaction.

        Commits when fn returns. Rolls back and raises StorageError when fn
        or the database fails, so no partial work is ever committed.

        Args:
            fn: Callable receiving a ConfigTransaction.

        Returns:
            Whatever fn returns.

        Raises:
            StorageError: If the transaction failed and was rolled back.
        """
        with self._write_transaction() as conn:
            return fn(SqliteConfigTransaction(conn))

    @contextmanager
    def _write_transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection inside a BEGIN IMMEDIATE transaction.

        Yields:
            Connection with the write lock held.

        Raises:
            StorageError: If anything fails; the transaction is rolled back.
        """
        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.error(f"Transaction rolled back: {e}")
                raise StorageError(str(e)) from e

    def read_configuration(self) -> ConfigurationData:
        """
        Read the whole configuration inside one read transaction.

        Concurrent writers either committed entirely before this read or are
        not visible at all.

        Returns:
            ConfigurationData with access tokens newest first.
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN")
            try:
                data = ConfigurationData(
                    providers=self._select_providers(conn),
                    models=self._select_models(conn),
                    templates=self._select_templates(conn),
                    access_tokens=self._select_tokens(conn),
                    settings=self._select_settings(conn),
                )
            finally:
                conn.execute("COMMIT")
            return data

    # -------------------------------------------------------------------------
    # Provider Methods
    # -------------------------------------------------------------------------

    def save_provider(self, provider: Provider) -> Provider:
        """
        Insert a provider, or update it if the id already exists.

        Raises:
            InvalidEntryError: If the provider type is not GEMINI, OPENAI or LOCAL.
            DuplicateEntryError: If another provider already has this name.
        """
        if provider.type not in PROVIDER_TYPES:
            raise InvalidEntryError(f"Invalid provider type: {provider.type!r}")
        with self._get_connection() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO providers (
                        id, name, type, base_url, api_key,
                        local_backend, local_model_path, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        type = excluded.type,
                        base_url = excluded.base_url,
                        api_key = excluded.api_key,
                        local_backend = excluded.local_backend,
                        local_model_path = excluded.local_model_path
                    """,
                    (
                        provider.id,
                        provider.name,
                        provider.type,
                        provider.base_url,
                        provider.api_key,
                        provider.local_backend,
                        provider.local_model_path,
                        provider.created_at or utc_now_iso(),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateEntryError(
                    f"A provider named '{provider.name}' already exists"
                ) from e
        return provider

    def get_provider(self, provider_id: str) -> Provider | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM providers WHERE id = ?", (provider_id,)
            ).fetchone()
            return Provider.from_row(row) if row else None

    def list_providers(self) -> list[Provider]:
        """List providers ordered by creation time."""
        with self._get_connection() as conn:
            return self._select_providers(conn)

    def delete_provider(self, provider_id: str) -> None:
        """
        Delete a provider and its models.

        Raises:
            EntryNotFoundError: If the provider does not exist.
        """
        self._delete("providers", provider_id)

    # -------------------------------------------------------------------------
    # Model Methods
    # -------------------------------------------------------------------------

    def save_model(self, model: Model) -> Model:
        """
        Insert a model, or update it if the id already exists.

        Raises:
            InvalidEntryError: If the model type is not TEXT or IMAGE.
            DuplicateEntryError: If the provider already has a model with
                this name.
        """
        if model.type not in MODEL_TYPES:
            raise InvalidEntryError(f"Invalid model type: {model.type!r}")
        with self._get_connection() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO models (
                        id, name, model_identifier, type, provider_id,
                        parameter_config, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        model_identifier = excluded.model_identifier,
                        type = excluded.type,
                        provider_id = excluded.provider_id,
                        parameter_config = excluded.parameter_config
                    """,
                    (
                        model.id,
                        model.name,
                        model.model_identifier,
                        model.type,
                        model.provider_id,
                        model.parameter_config,
                        model.created_at or utc_now_iso(),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateEntryError(
                    f"Model '{model.name}' already exists for this provider"
                ) from e
        return model

    def get_model(self, model_id: str) -> Model | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM models WHERE id = ?", (model_id,)).fetchone()
            return Model.from_row(row) if row else None

    def list_models(self) -> list[Model]:
        """List models ordered by name."""
        with self._get_connection() as conn:
            return self._select_models(conn)

    def delete_model(self, model_id: str) -> None:
        """
        Delete a model. Templates using it lose their prompt generator.

        Raises:
            EntryNotFoundError: If the model does not exist.
        """
        self._delete("models", model_id)

    # -------------------------------------------------------------------------
    # Template Methods
    # -------------------------------------------------------------------------

    def save_template(self, template: Template) -> Template:
        """
        Insert a template, or update it if the id already exists.

        Raises:
            DuplicateEntryError: If another template already has this name.
        """
        template.updated_at = utc_now_iso()
        with self._get_connection() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO templates (
                        id, name, icon, description, prompt_template, system_prompt,
                        prompt_generator_id, is_enabled, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        icon = excluded.icon,
                        description = excluded.description,
                        prompt_template = excluded.prompt_template,
                        system_prompt = excluded.system_prompt,
                        prompt_generator_id = excluded.prompt_generator_id,
                        is_enabled = excluded.is_enabled,
                        updated_at = excluded.updated_at
                    """,
                    (
                        template.id,
                        template.name,
                        template.icon,
                        template.description,
                        template.prompt_template,
                        template.system_prompt,
                        template.prompt_generator_id,
                        1 if template.is_enabled else 0,
                        template.created_at or template.updated_at,
                        template.updated_at,
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateEntryError(
                    f"A template named '{template.name}' already exists"
                ) from e
        return template

    def get_template(self, template_id: str) -> Template | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM templates WHERE id = ?", (template_id,)
            ).fetchone()
            return Template.from_row(row) if row else None

    def list_templates(self) -> list[Template]:
        """List templates ordered by creation time."""
        with self._get_connection() as conn:
            return self._select_templates(conn)

    def delete_template(self, template_id: str) -> None:
        self._delete("templates", template_id)

    # -------------------------------------------------------------------------
    # Access Token Methods
    # -------------------------------------------------------------------------

    def save_access_token(self, token: AccessToken) -> AccessToken:
        """
        Insert an access token.

        Raises:
            DuplicateEntryError: If the token value already exists.
        """
        with self._get_connection() as conn:
            try:
                _insert_token(conn, token)
            except sqlite3.IntegrityError as e:
                raise DuplicateEntryError("Access token already exists") from e
        return token

    def list_access_tokens(self) -> list[AccessToken]:
        """List access tokens, newest first."""
        with self._get_connection() as conn:
            return self._select_tokens(conn)

    def delete_access_token(self, token_id: str) -> None:
        self._delete("access_tokens", token_id)

    # -------------------------------------------------------------------------
    # Settings Methods
    # -------------------------------------------------------------------------

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            _upsert_setting(conn, key, value)

    def get_settings(self) -> dict[str, str]:
        with self._get_connection() as conn:
            return self._select_settings(conn)

    def is_remote_access_enabled(self) -> bool:
        return self.get_setting(REMOTE_ACCESS_SETTING) == "true"

    # -------------------------------------------------------------------------
    # Presets and Reset
    # -------------------------------------------------------------------------

    def ensure_presets(self) -> bool:
        """
        Create preset providers, models and templates on first run.

        Runs once per store; the "presetsInitialized" setting records that
        it happened, so presets the user deleted are not brought back.

        A provider that already exists under a preset's name (for example
        from a restored backup) takes the preset's place, and preset models
        are attached to it.

        Returns:
            True if presets were created by this call.
        """
        with self._write_transaction() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", (PRESETS_INITIALIZED_KEY,)
            ).fetchone()
            if row is not None and row["value"] == "true":
                return False

            now = utc_now_iso()
            for preset in PRESET_PROVIDERS:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO providers (id, name, type, base_url, api_key, created_at)
                    VALUES (?, ?, ?, ?, NULL, ?)
                    """,
                    (preset["id"], preset["name"], preset["type"], preset["base_url"], now),
                )

            # Preset id -> live id of the provider holding that name
            live_provider_ids: dict[str, str] = {}
            for preset in PRESET_PROVIDERS:
                row = conn.execute(
                    "SELECT id FROM providers WHERE name = ?", (preset["name"],)
                ).fetchone()
                if row is not None:
                    live_provider_ids[preset["id"]] = row["id"]

            for preset in PRESET_MODELS:
                provider_id = live_provider_ids.get(preset["provider_id"])
                if provider_id is None:
                    logger.debug(
                        f"Skipping preset model {preset['name']}: "
                        f"provider {preset['provider_id']} not present"
                    )
                    continue
                conn.execute(
                    """
                    INSERT OR IGNORE INTO models (
                        id, name, model_identifier, type, provider_id,
                        parameter_config, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        preset["id"],
                        preset["name"],
                        preset["model_identifier"],
                        preset["type"],
                        provider_id,
                        preset["parameter_config"],
                        now,
                    ),
                )
            for preset in PRESET_TEMPLATES:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO templates (
                        id, name, prompt_template, system_prompt, is_enabled,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, 1, ?, ?)
                    """,
                    (
                        new_id(),
                        preset["name"],
                        preset["prompt_template"],
                        preset["system_prompt"],
                        now,
                        now,
                    ),
                )

            _upsert_setting(conn, PRESETS_INITIALIZED_KEY, "true")
            _upsert_setting(conn, PRESET_TEMPLATES_INITIALIZED_KEY, "true")

        logger.info(
            f"Created {len(PRESET_PROVIDERS)} preset providers, "
            f"{len(PRESET_MODELS)} preset models and "
            f"{len(PRESET_TEMPLATES)} preset templates"
        )
        return True

    def reset_configuration(self) -> dict[str, int]:
        """
        Return the configuration to its first-run state.

        In one transaction: deletes every access token, user templates,
        user models and user providers, clears API keys on preset providers,
        and drops all settings except the preset initialization markers.

        Returns:
            Number of rows deleted per table.
        """
        deleted: dict[str, int] = {}
        with self._write_transaction() as conn:
            deleted["access_tokens"] = conn.execute("DELETE FROM access_tokens").rowcount

            names = sorted(PRESET_TEMPLATE_NAMES)
            placeholders = ", ".join("?" for _ in names)
            deleted["templates"] = conn.execute(
                f"DELETE FROM templates WHERE name NOT IN ({placeholders})",  # noqa: S608
                names,
            ).rowcount

            deleted["models"] = conn.execute(
                "DELETE FROM models WHERE id NOT LIKE ?", (f"{PRESET_ID_PREFIX}%",)
            ).rowcount
            deleted["providers"] = conn.execute(
                "DELETE FROM providers WHERE id NOT LIKE ?", (f"{PRESET_ID_PREFIX}%",)
            ).rowcount
            conn.execute("UPDATE providers SET api_key = NULL")

            keys = sorted(PRESERVED_SETTING_KEYS)
            keep = ", ".join("?" for _ in keys)
            deleted["settings"] = conn.execute(
                f"DELETE FROM settings WHERE key NOT IN ({keep})",  # noqa: S608
                keys,
            ).rowcount

        logger.info(
            "Configuration reset: "
            + ", ".join(f"{count} {table}" for table, count in deleted.items())
        )
        return deleted

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def count_rows(self) -> dict[str, int]:
        """Count rows in each configuration table."""
        counts: dict[str, int] = {}
        with self._get_connection() as conn:
            for table in ("providers", "models", "templates", "access_tokens", "settings"):
                (count,) = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()  # noqa: S608
                counts[table] = count
        return counts

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _delete(self, table: str, row_id: str) -> None:
        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))  # noqa: S608
            if cursor.rowcount == 0:
                raise EntryNotFoundError(f"No row with id {row_id} in {table}")

    def _select_providers(self, conn: sqlite3.Connection) -> list[Provider]:
        cursor = conn.execute("SELECT * FROM providers ORDER BY created_at, name")
        return [Provider.from_row(row) for row in cursor]

    def _select_models(self, conn: sqlite3.Connection) -> list[Model]:
        cursor = conn.execute("SELECT * FROM models ORDER BY name, created_at")
        return [Model.from_row(row) for row in cursor]

    def _select_templates(self, conn: sqlite3.Connection) -> list[Template]:
        cursor = conn.execute("SELECT * FROM templates ORDER BY created_at, name")
        return [Template.from_row(row) for row in cursor]

    def _select_tokens(self, conn: sqlite3.Connection) -> list[AccessToken]:
        cursor = conn.execute("SELECT * FROM access_tokens ORDER BY created_at DESC")
        return [AccessToken.from_row(row) for row in cursor]

    def _select_settings(self, conn: sqlite3.Connection) -> dict[str, str]:
        cursor = conn.execute("SELECT key, value FROM settings")
        return {row["key"]: row["value"] for row in cursor}


def _insert_provider(conn: sqlite3.Connection, provider: Provider) -> None:
    conn.execute(
        """
        INSERT INTO providers (
            id, name, type, base_url, api_key,
            local_backend, local_model_path, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            provider.id,
            provider.name,
            provider.type,
            provider.base_url,
            provider.api_key,
            provider.local_backend,
            provider.local_model_path,
            provider.created_at,
        ),
    )


def _insert_model(conn: sqlite3.Connection, model: Model) -> None:
    conn.execute(
        """
        INSERT INTO models (
            id, name, model_identifier, type, provider_id,
            parameter_config, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            model.id,
            model.name,
            model.model_identifier,
            model.type,
            model.provider_id,
            model.parameter_config,
            model.created_at,
        ),
    )


def _insert_template(conn: sqlite3.Connection, template: Template) -> None:
    conn.execute(
        """
        INSERT INTO templates (
            id, name, icon, description, prompt_template, system_prompt,
            prompt_generator_id, is_enabled, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            template.id,
            template.name,
            template.icon,
            template.description,
            template.prompt_template,
            template.system_prompt,
            template.prompt_generator_id,
            1 if template.is_enabled else 0,
            template.created_at,
            template.updated_at,
        ),
    )


def _insert_token(conn: sqlite3.Connection, token: AccessToken) -> None:
    conn.execute(
        """
        INSERT INTO access_tokens (
            id, name, description, token, expires_at,
            is_revoked, created_at, last_used_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            token.id,
            token.name,
            token.description,
            token.token,
            token.expires_at,
            1 if token.is_revoked else 0,
            token.created_at,
            token.last_used_at,
        ),
    )


def _upsert_setting(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute(
        """
        INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET
            value = excluded.value,
            updated_at = excluded.updated_at
        """,
        (key, value, utc_now_iso()),
    )
