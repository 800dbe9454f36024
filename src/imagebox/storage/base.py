"""
Datastore interface consumed by backup restore.

A restore works against whatever implements ConfigDatastore. The SQLite
ConfigStore is the production implementation. Every lookup and insert
happens on a ConfigTransaction scoped to a single atomic transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from imagebox.backup.snapshot import (
        AccessTokenRecord,
        ModelRecord,
        ProviderRecord,
        TemplateRecord,
    )
    from imagebox.storage.models import AccessToken, Model, Provider, Template


T = TypeVar("T")

# Setting key for the remote access toggle ("true" / "false")
REMOTE_ACCESS_SETTING = "remoteAccessEnabled"


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class ConfigTransaction(ABC):
    """
    Lookups and inserts bound to one open transaction.

    Inserts are visible to later lookups on the same transaction before
    commit.
    """

    @abstractmethod
    def find_provider_by_name(self, name: str) -> Provider | None:
        """Return the provider with this name, or None."""

    @abstractmethod
    def insert_provider(self, record: ProviderRecord) -> str:
        """Insert a provider with a fresh id and return the id."""

    @abstractmethod
    def find_model_by_name_and_provider(self, name: str, provider_id: str) -> Model | None:
        """Return the model with this name under this provider, or None."""

    @abstractmethod
    def find_model_by_name(self, name: str) -> Model | None:
        """Return a model with this name under any provider, or None."""

    @abstractmethod
    def insert_model(self, record: ModelRecord, provider_id: str) -> str:
        """Insert a model owned by provider_id and return its id."""

    @abstractmethod
    def find_template_by_name(self, name: str) -> Template | None:
        """Return the template with this name, or None."""

    @abstractmethod
    def insert_template(
        self,
        record: TemplateRecord,
        prompt_generator_id: str | None = None,
    ) -> str:
        """Insert a template and return its id."""

    @abstractmethod
    def find_token_by_value(self, token: str) -> AccessToken | None:
        """Return the access token with this secret value, or None."""

    @abstractmethod
    def insert_token(self, record: AccessTokenRecord) -> str:
        """Insert an access token verbatim and return its id."""

    @abstractmethod
    def upsert_setting(self, key: str, value: str) -> None:
        """Insert or overwrite a setting."""


class ConfigDatastore(ABC):
    """A datastore that can run work inside one atomic transaction."""

    @abstractmethod
    def run_in_transaction(self, fn: Callable[[ConfigTransaction], T]) -> T:
        """
        Run fn inside a transaction and return its result.

        The transaction commits if fn returns and rolls back if it raises.

        Raises:
            StorageError: If fn or the datastore fails. The transaction has
                been rolled back by the time this is raised.
        """
