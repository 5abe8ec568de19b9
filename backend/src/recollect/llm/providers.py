"""Per-user AI provider configuration and resolution."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from recollect.db.connection import Database
from recollect.llm.client import LLMClient

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    """Supported AI provider protocols."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    CUSTOM = "custom"


class AIProviderNotConfiguredError(Exception):
    """Raised when neither the user nor the environment supplies an AI provider."""

    pass


@dataclass(frozen=True)
class ProviderConfig:
    """Everything needed to call one provider."""

    provider_type: ProviderType
    base_url: str
    api_key: str
    model: str


@dataclass
class StoredProvider:
    """A row of the ai_providers table, with the key still encrypted."""

    id: str
    user_id: str
    name: str
    provider_type: ProviderType
    base_url: str
    api_key_encrypted: str
    selected_model: str | None = None


class ProviderRegistry(Protocol):
    """Source of users' provider settings."""

    def get_default(self, user_id: str) -> ProviderConfig | None:
        """Return the user's default enabled provider, or None."""
        ...


class SQLiteProviderRegistry:
    """Reads provider settings from the ai_providers table.

    API keys are stored encrypted by the provider management service. Pass
    its decrypt function; without one the stored value is used as is.
    """

    def __init__(
        self,
        db: Database,
        decrypt: Callable[[str], str] | None = None,
        default_model: str = "",
    ) -> None:
        self._db = db
        self._decrypt = decrypt or (lambda value: value)
        self._default_model = default_model

    def get_stored_default(self, user_id: str) -> StoredProvider | None:
        row = self._db.execute(
            """
            SELECT id, user_id, name, provider_type, base_url, api_key_encrypted, selected_model
            FROM ai_providers
            WHERE user_id = ? AND is_default = 1 AND is_enabled = 1
            LIMIT 1
            """,
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return StoredProvider(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            provider_type=ProviderType(row["provider_type"]),
            base_url=row["base_url"],
            api_key_encrypted=row["api_key_encrypted"],
            selected_model=row["selected_model"],
        )

    def get_default(self, user_id: str) -> ProviderConfig | None:
        stored = self.get_stored_default(user_id)
        if stored is None:
            return None
        return ProviderConfig(
            provider_type=stored.provider_type,
            base_url=stored.base_url,
            api_key=self._decrypt(stored.api_key_encrypted),
            model=stored.selected_model or self._default_model,
        )


class ProviderResolver:
    """Picks the provider that answers a user's questions.

    The user's default provider wins; otherwise the OpenAI-compatible
    provider from the environment is used.
    """

    def __init__(
        self,
        registry: ProviderRegistry | None,
        fallback: ProviderConfig | None = None,
        log_path: Path | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            registry: Per-user provider settings, or None to use only the
                fallback.
            fallback: Environment-configured provider.
            log_path: JSONL query log handed to every created client.
        """
        self._registry = registry
        self._fallback = fallback
        self._log_path = log_path

    def resolve(self, user_id: str) -> ProviderConfig:
        """Provider configuration for a user.

        Raises:
            AIProviderNotConfiguredError: If no provider is available.
        """
        if self._registry is not None:
            try:
                config = self._registry.get_default(user_id)
            except (sqlite3.Error, ValueError) as e:
                logger.warning(f"Could not load AI provider for user {user_id}: {e}")
                config = None
            if config is not None:
                return config

        if self._fallback is not None and self._fallback.base_url and self._fallback.api_key:
            return self._fallback

        raise AIProviderNotConfiguredError("no AI service configured")

    def client_for(self, user_id: str) -> LLMClient:
        """Create an LLM client for the user's resolved provider."""
        config = self.resolve(user_id)
        return LLMClient(
            provider=config.provider_type.value,
            model=config.model,
            api_key=config.api_key,
            endpoint=config.base_url,
            log_path=self._log_path,
        )
