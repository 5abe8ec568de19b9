"""Tests for per-user AI provider resolution."""

import pytest

from recollect.llm import (
    AIProviderNotConfiguredError,
    LLMClient,
    ProviderConfig,
    ProviderResolver,
    ProviderType,
    SQLiteProviderRegistry,
)


def _add_provider(
    db,
    provider_id,
    user_id="user-1",
    provider_type="anthropic",
    base_url="https://api.anthropic.com",
    api_key="enc:secret",
    selected_model="claude-3-haiku",
    is_default=1,
    is_enabled=1,
):
    db.execute(
        """
        INSERT INTO ai_providers
            (id, user_id, name, provider_type, base_url, api_key_encrypted,
             selected_model, is_default, is_enabled)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            provider_id,
            user_id,
            f"Provider {provider_id}",
            provider_type,
            base_url,
            api_key,
            selected_model,
            is_default,
            is_enabled,
        ),
    )
    db.commit()


@pytest.fixture
def fallback():
    return ProviderConfig(
        provider_type=ProviderType.OPENAI,
        base_url="https://api.openai.com/v1",
        api_key="sk-env",
        model="gpt-3.5-turbo",
    )


def test_registry_returns_default_enabled_provider(temp_db):
    _add_provider(temp_db, "p1", is_default=0)
    _add_provider(temp_db, "p2", provider_type="google", base_url="", selected_model="gemini-pro")
    registry = SQLiteProviderRegistry(temp_db)

    config = registry.get_default("user-1")

    assert config is not None
    assert config.provider_type == ProviderType.GOOGLE
    assert config.model == "gemini-pro"


def test_registry_ignores_disabled_default(temp_db):
    _add_provider(temp_db, "p1", is_enabled=0)
    registry = SQLiteProviderRegistry(temp_db)

    assert registry.get_default("user-1") is None


def test_registry_decrypts_api_key(temp_db):
    _add_provider(temp_db, "p1", api_key="enc:secret")
    registry = SQLiteProviderRegistry(temp_db, decrypt=lambda value: value.removeprefix("enc:"))

    config = registry.get_default("user-1")

    assert config.api_key == "secret"


def test_registry_uses_default_model_when_none_selected(temp_db):
    _add_provider(temp_db, "p1", provider_type="openai", selected_model=None)
    registry = SQLiteProviderRegistry(temp_db, default_model="gpt-4o-mini")

    assert registry.get_default("user-1").model == "gpt-4o-mini"


def test_resolver_prefers_user_provider(temp_db, fallback):
    _add_provider(temp_db, "p1")
    resolver = ProviderResolver(SQLiteProviderRegistry(temp_db), fallback=fallback)

    config = resolver.resolve("user-1")

    assert config.provider_type == ProviderType.ANTHROPIC


def test_resolver_falls_back_to_environment(temp_db, fallback):
    resolver = ProviderResolver(SQLiteProviderRegistry(temp_db), fallback=fallback)

    assert resolver.resolve("someone-else") == fallback


def test_resolver_raises_without_any_provider(temp_db):
    resolver = ProviderResolver(SQLiteProviderRegistry(temp_db))

    with pytest.raises(AIProviderNotConfiguredError):
        resolver.resolve("user-1")


def test_resolver_ignores_fallback_without_key(temp_db):
    incomplete = ProviderConfig(
        provider_type=ProviderType.OPENAI,
        base_url="https://api.openai.com/v1",
        api_key="",
        model="gpt-3.5-turbo",
    )
    resolver = ProviderResolver(SQLiteProviderRegistry(temp_db), fallback=incomplete)

    with pytest.raises(AIProviderNotConfiguredError):
        resolver.resolve("user-1")


def test_resolver_survives_broken_registry(fallback):
    """Registry read errors fall through to the environment provider."""

    class BrokenRegistry:
        def get_default(self, user_id):
            raise ValueError("unknown provider type")

    resolver = ProviderResolver(BrokenRegistry(), fallback=fallback)

    assert resolver.resolve("user-1") == fallback


def test_client_for_builds_llm_client(temp_db, tmp_path):
    _add_provider(temp_db, "p1", provider_type="custom", base_url="https://llm.local/v1")
    log_path = tmp_path / "llm.jsonl"
    resolver = ProviderResolver(SQLiteProviderRegistry(temp_db), log_path=log_path)

    client = resolver.client_for("user-1")

    assert isinstance(client, LLMClient)
    assert client.provider == "custom"
    assert client.endpoint == "https://llm.local/v1"
    assert client.model == "claude-3-haiku"
    assert client.log_path == log_path
