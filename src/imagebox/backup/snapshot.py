"""
Configuration snapshot: the plaintext document inside a backup file.

A snapshot describes providers, models, templates, access tokens and the
remote-access setting at backup time. It carries no row ids. Models refer
to their provider by name and templates refer to their prompt generator
model by name, so a snapshot can be restored into any installation
regardless of how that installation numbered its rows.

Version Compatibility:
    - The writer emits SNAPSHOT_VERSION ("1.1")
    - The reader accepts any "1.x" version
    - Version 1.0 snapshots have no remoteAccessEnabled and no accessTokens;
      these load as None ("absent"), which is distinct from False / []
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from imagebox.backup.errors import InvalidBackupFormat

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.1"
SUPPORTED_MAJOR_VERSIONS = frozenset({1})

REQUIRED_FIELDS = ("version", "providers", "models", "templates")


class ProviderType(str, Enum):
    """Kind of API a provider speaks."""

    GEMINI = "GEMINI"
    OPENAI = "OPENAI"
    LOCAL = "LOCAL"


class ModelType(str, Enum):
    """What a model generates."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"


@dataclass(frozen=True)
class ProviderRecord:
    """A provider as stored in a backup. The name is its natural key."""

    name: str
    type: ProviderType
    base_url: str | None = None
    api_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "baseUrl": self.base_url,
            "apiKey": self.api_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderRecord:
        return cls(
            name=_require_str(data, "name"),
            type=ProviderType(data["type"]),
            base_url=data.get("baseUrl"),
            api_key=data.get("apiKey"),
        )


@dataclass(frozen=True)
class ModelRecord:
    """
    A model as stored in a backup.

    provider_name references a ProviderRecord by name. On restore it is
    resolved against the live datastore, not against this snapshot.
    """

    name: str
    model_identifier: str
    provider_name: str
    type: ModelType
    parameter_config: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "modelIdentifier": self.model_identifier,
            "providerName": self.provider_name,
            "type": self.type.value,
            "parameterConfig": self.parameter_config,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModelRecord:
        return cls(
            name=_require_str(data, "name"),
            model_identifier=_require_str(data, "modelIdentifier", allow_empty=True),
            provider_name=_require_str(data, "providerName"),
            type=ModelType(data["type"]),
            parameter_config=data.get("parameterConfig"),
        )


@dataclass(frozen=True)
class TemplateRecord:
    """A prompt template as stored in a backup. The name is its natural key."""

    name: str
    prompt_template: str
    icon: str | None = None
    description: str | None = None
    system_prompt: str | None = None
    prompt_generator_name: str | None = None
    is_enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "promptTemplate": self.prompt_template,
            "systemPrompt": self.system_prompt,
            "promptGeneratorName": self.prompt_generator_name,
            "isEnabled": self.is_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemplateRecord:
        return cls(
            name=_require_str(data, "name"),
            prompt_template=_require_str(data, "promptTemplate", allow_empty=True),
            icon=data.get("icon"),
            description=data.get("description"),
            system_prompt=data.get("systemPrompt"),
            prompt_generator_name=data.get("promptGeneratorName") or None,
            is_enabled=bool(data.get("isEnabled", True)),
        )


@dataclass(frozen=True)
class AccessTokenRecord:
    """
    A remote-access token as stored in a backup.

    The token string itself is the natural key. Timestamps are kept as the
    ISO-8601 strings they were written with so a restore preserves history.
    """

    name: str
    token: str
    expires_at: str
    created_at: str
    description: str | None = None
    is_revoked: bool = False
    last_used_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "token": self.token,
            "expiresAt": self.expires_at,
            "isRevoked": self.is_revoked,
            "createdAt": self.created_at,
            "lastUsedAt": self.last_used_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccessTokenRecord:
        return cls(
            name=_require_str(data, "name"),
            token=_require_str(data, "token"),
            expires_at=_require_str(data, "expiresAt"),
            created_at=_require_str(data, "createdAt"),
            description=data.get("description"),
            is_revoked=bool(data.get("isRevoked", False)),
            last_used_at=data.get("lastUsedAt"),
        )


@dataclass(frozen=True)
class Snapshot:
    """
    Versioned configuration snapshot.

    remote_access_enabled and access_tokens are None when the backup was
    written by a version that did not include them. A restore leaves the
    live setting and tokens untouched in that case.

    Attributes:
        version: "major.minor" format version string.
        timestamp: ISO-8601 creation time (informational only).
        providers: Provider records in backup order.
        models: Model records in backup order.
        templates: Template records in backup order.
        remote_access_enabled: Remote access toggle, or None if absent.
        access_tokens: Access tokens newest first, or None if absent.
    """

    version: str
    timestamp: str
    providers: list[ProviderRecord] = field(default_factory=list)
    models: list[ModelRecord] = field(default_factory=list)
    templates: list[TemplateRecord] = field(default_factory=list)
    remote_access_enabled: bool | None = None
    access_tokens: list[AccessTokenRecord] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire dictionary, omitting absent optional fields."""
        data: dict[str, Any] = {
            "version": self.version,
            "timestamp": self.timestamp,
        }
        if self.remote_access_enabled is not None:
            data["remoteAccessEnabled"] = self.remote_access_enabled
        if self.access_tokens is not None:
            data["accessTokens"] = [t.to_dict() for t in self.access_tokens]
        data["providers"] = [p.to_dict() for p in self.providers]
        data["models"] = [m.to_dict() for m in self.models]
        data["templates"] = [t.to_dict() for t in self.templates]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Snapshot:
        """
        Build a snapshot from a parsed wire dictionary.

        Malformed individual records are dropped with a warning. Only
        top-level structural problems are fatal.

        Args:
            data: Parsed JSON document.

        Returns:
            Snapshot instance.

        Raises:
            InvalidBackupFormat: If the document is not a snapshot, lacks a
                required field, or has an unsupported major version.
        """
        if not isinstance(data, dict):
            raise InvalidBackupFormat()

        for name in REQUIRED_FIELDS:
            if data.get(name) is None:
                raise InvalidBackupFormat()

        version = data["version"]
        check_version(version)

        for name in ("providers", "models", "templates"):
            if not isinstance(data[name], list):
                raise InvalidBackupFormat()

        remote_access = data.get("remoteAccessEnabled")
        if not isinstance(remote_access, bool):
            remote_access = None

        tokens_data = data.get("accessTokens")
        access_tokens = None
        if isinstance(tokens_data, list):
            access_tokens = _parse_records(
                tokens_data, AccessTokenRecord.from_dict, "access token"
            )

        timestamp = data.get("timestamp")
        return cls(
            version=version,
            timestamp=timestamp if isinstance(timestamp, str) else "",
            providers=_parse_records(data["providers"], ProviderRecord.from_dict, "provider"),
            models=_parse_records(data["models"], ModelRecord.from_dict, "model"),
            templates=_parse_records(data["templates"], TemplateRecord.from_dict, "template"),
            remote_access_enabled=remote_access,
            access_tokens=access_tokens,
        )


def check_version(version: Any) -> tuple[int, int]:
    """
    Parse a "major.minor" version and check the major is supported.

    Returns:
        (major, minor) tuple.

    Raises:
        InvalidBackupFormat: If the version is malformed or unsupported.
    """
    if not isinstance(version, str):
        raise InvalidBackupFormat()
    parts = version.split(".")
    if len(parts) != 2:
        raise InvalidBackupFormat()
    try:
        major, minor = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise InvalidBackupFormat() from e
    if major not in SUPPORTED_MAJOR_VERSIONS:
        raise InvalidBackupFormat(
            f"Unsupported backup version {version}. Please upgrade Imagebox."
        )
    return major, minor


R = TypeVar("R")


def _parse_records(
    items: list[Any],
    parser: Callable[[dict[str, Any]], R],
    kind: str,
) -> list[R]:
    """Parse a list of record dicts, dropping malformed entries."""
    records: list[R] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning(f"Skipping malformed {kind} entry at index {index}")
            continue
        try:
            records.append(parser(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed {kind} entry at index {index}: {e}")
    return records


def _require_str(data: dict[str, Any], key: str, allow_empty: bool = False) -> str:
    value = data[key]
    if not isinstance(value, str) or (not value and not allow_empty):
        raise ValueError(f"'{key}' must be a non-empty string")
    return value
