"""
Data models for the configuration store.

This module defines the dataclasses used to represent live configuration
rows: providers, models, prompt templates and remote-access tokens.

Schema Design Decisions:
    - IDs are UUIDs stored as strings; preset rows use fixed "preset-" ids
    - Timestamps are stored as ISO format strings in UTC
    - Booleans are stored as INTEGER 0/1 in SQLite
    - Names are unique per table so they can act as natural keys for
      backup and restore
"""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

PRESET_ID_PREFIX = "preset-"

# Values accepted in the type columns; backups reject anything else
PROVIDER_TYPES = frozenset({"GEMINI", "OPENAI", "LOCAL"})
MODEL_TYPES = frozenset({"TEXT", "IMAGE"})


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_id() -> str:
    """Generate a fresh row id."""
    return str(uuid.uuid4())


@dataclass
class Provider:
    """
    An AI provider endpoint.

    Attributes:
        id: Row id (UUID, or "preset-..." for built-in providers).
        name: Display name, unique across providers.
        type: Provider API kind: GEMINI, OPENAI or LOCAL.
        base_url: API base URL, if any.
        api_key: API key entered by the user, if any.
        local_backend: Local inference backend name (LOCAL providers only).
        local_model_path: Local model path (LOCAL providers only).
        created_at: Creation time (ISO-8601 UTC).

    Database Table: providers
    """

    id: str
    name: str
    type: str
    base_url: str | None = None
    api_key: str | None = None
    local_backend: str | None = None
    local_model_path: str | None = None
    created_at: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        type: str,
        base_url: str | None = None,
        api_key: str | None = None,
    ) -> Provider:
        """Create a new Provider with auto-generated ID and timestamp."""
        return cls(
            id=new_id(),
            name=name,
            type=type,
            base_url=base_url,
            api_key=api_key,
            created_at=utc_now_iso(),
        )

    @property
    def is_preset(self) -> bool:
        return self.id.startswith(PRESET_ID_PREFIX)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Provider:
        return cls(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            base_url=row["base_url"],
            api_key=row["api_key"],
            local_backend=row["local_backend"],
            local_model_path=row["local_model_path"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary. The API key is masked."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "base_url": self.base_url,
            "has_api_key": bool(self.api_key),
            "local_backend": self.local_backend,
            "local_model_path": self.local_model_path,
            "created_at": self.created_at,
        }


@dataclass
class Model:
    """
    A text or image model offered by a provider.

    The pair (name, provider_id) is unique.

    Database Table: models
    """

    id: str
    name: str
    model_identifier: str
    type: str
    provider_id: str | None
    parameter_config: str | None = None
    created_at: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        model_identifier: str,
        type: str,
        provider_id: str | None,
        parameter_config: str | None = None,
    ) -> Model:
        """Create a new Model with auto-generated ID and timestamp."""
        return cls(
            id=new_id(),
            name=name,
            model_identifier=model_identifier,
            type=type,
            provider_id=provider_id,
            parameter_config=parameter_config,
            created_at=utc_now_iso(),
        )

    @property
    def is_preset(self) -> bool:
        return self.id.startswith(PRESET_ID_PREFIX)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Model:
        return cls(
            id=row["id"],
            name=row["name"],
            model_identifier=row["model_identifier"],
            type=row["type"],
            provider_id=row["provider_id"],
            parameter_config=row["parameter_config"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "model_identifier": self.model_identifier,
            "type": self.type,
            "provider_id": self.provider_id,
            "parameter_config": self.parameter_config,
            "created_at": self.created_at,
        }


@dataclass
class Template:
    """
    A prompt template.

    prompt_generator_id optionally points at a TEXT model used to expand
    the template into a final prompt.

    Database Table: templates
    """

    id: str
    name: str
    prompt_template: str
    icon: str | None = None
    description: str | None = None
    system_prompt: str | None = None
    prompt_generator_id: str | None = None
    is_enabled: bool = True
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        prompt_template: str,
        icon: str | None = None,
        description: str | None = None,
        system_prompt: str | None = None,
        prompt_generator_id: str | None = None,
        is_enabled: bool = True,
    ) -> Template:
        """Create a new Template with auto-generated ID and timestamps."""
        now = utc_now_iso()
        return cls(
            id=new_id(),
            name=name,
            prompt_template=prompt_template,
            icon=icon,
            description=description,
            system_prompt=system_prompt,
            prompt_generator_id=prompt_generator_id,
            is_enabled=is_enabled,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_preset(self) -> bool:
        return self.id.startswith(PRESET_ID_PREFIX)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Template:
        return cls(
            id=row["id"],
            name=row["name"],
            prompt_template=row["prompt_template"],
            icon=row["icon"],
            description=row["description"],
            system_prompt=row["system_prompt"],
            prompt_generator_id=row["prompt_generator_id"],
            is_enabled=bool(row["is_enabled"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "prompt_template": self.prompt_template,
            "system_prompt": self.system_prompt,
            "prompt_generator_id": self.prompt_generator_id,
            "is_enabled": self.is_enabled,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class AccessToken:
    """
    A remote-access token. The token string is unique.

    Database Table: access_tokens
    """

    id: str
    name: str
    token: str
    expires_at: str
    created_at: str
    description: str | None = None
    is_revoked: bool = False
    last_used_at: str | None = None

    @property
    def is_expired(self) -> bool:
        expires = datetime.fromisoformat(self.expires_at.replace("Z", "+00:00"))
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=UTC)
        return expires < datetime.now(UTC)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AccessToken:
        return cls(
            id=row["id"],
            name=row["name"],
            token=row["token"],
            expires_at=row["expires_at"],
            created_at=row["created_at"],
            description=row["description"],
            is_revoked=bool(row["is_revoked"]),
            last_used_at=row["last_used_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary. The token value is not included."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "expires_at": self.expires_at,
            "created_at": self.created_at,
            "is_revoked": self.is_revoked,
            "last_used_at": self.last_used_at,
        }
