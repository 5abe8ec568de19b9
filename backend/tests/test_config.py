# backend/tests/test_config.py
"""Configuration tests.

Tests verify behavior (types, ranges, loading) not specific values.
"""

from pathlib import Path

import pytest

from recollect.config import (
    CONFIG_SCHEMA,
    Config,
    ConfigError,
    _load_config,
    load_settings,
)
from recollect.constants import (
    BRANCH_TIMEOUT_SECONDS,
    CANDIDATE_MULTIPLIER,
    LLM_TIMEOUT_SECONDS,
    MAX_WEB_QUERIES,
    SCRAPE_SUCCESS_TARGET,
    SYNC_TIMEOUT_SECONDS,
)

_ENV_VARS = (
    "RECOLLECT_DATA_DIR",
    "DATABASE_PATH",
    "VECTOR_DB_PATH",
    "RAG_ENABLED",
    "NIM_BASE_URL",
    "NIM_API_KEY",
    "NIM_MODEL",
    "NIM_RPM_LIMIT",
    "NIM_EMBEDDING_DIM",
    "SEARXNG_URLS",
    "OPENAI_BASE_URL",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Isolated data directory with a clean environment."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    directory = tmp_path / "data"
    directory.mkdir()
    monkeypatch.setenv("RECOLLECT_DATA_DIR", str(directory))
    return directory


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear the load_settings cache before each test."""
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


def write_config(directory: Path, content: str) -> Path:
    """Write a config.ini file to the directory and return the path."""
    config_path = directory / "config.ini"
    config_path.write_text(content)
    return config_path


# =============================================================================
# Schema Defaults
# =============================================================================


def test_all_settings_have_correct_types():
    config = _load_config(None)

    for section, keys in CONFIG_SCHEMA.items():
        section_config = getattr(config, section)
        for key, (typ, _default, _min, _max, _desc) in keys.items():
            value = getattr(section_config, key)
            assert isinstance(value, typ), f"[{section}].{key} is {type(value).__name__}"


def test_defaults_are_within_ranges():
    for section, keys in CONFIG_SCHEMA.items():
        for key, (_typ, default, min_val, max_val, _desc) in keys.items():
            if min_val is not None:
                assert default >= min_val, f"[{section}].{key} below minimum"
            if max_val is not None:
                assert default <= max_val, f"[{section}].{key} above maximum"


def test_config_without_arguments_has_all_sections():
    config = Config()

    assert config.data_dir == Path.home() / ".recollect"
    for section in CONFIG_SCHEMA:
        assert getattr(config, section) is not None


def test_defaults_come_from_constants():
    config = Config()

    assert config.search.candidate_multiplier == CANDIDATE_MULTIPLIER
    assert config.search.branch_timeout_seconds == BRANCH_TIMEOUT_SECONDS
    assert config.ask.scrape_count == SCRAPE_SUCCESS_TARGET
    assert config.ask.max_web_queries == MAX_WEB_QUERIES
    assert config.indexing.sync_timeout_seconds == SYNC_TIMEOUT_SECONDS
    assert config.llm.timeout_seconds == LLM_TIMEOUT_SECONDS


def test_llm_timeout_can_be_configured(tmp_path):
    config_path = write_config(tmp_path, "[llm]\ntimeout_seconds = 20\n")

    assert _load_config(config_path).llm.timeout_seconds == 20.0


# =============================================================================
# config.ini Loading
# =============================================================================


def test_config_file_overrides_defaults(tmp_path):
    config_path = write_config(
        tmp_path,
        "[search]\nvector_weight = 0.5\nrrf_k = 30\n\n[ask]\nscrape_count = 4\n",
    )

    config = _load_config(config_path)

    assert config.search.vector_weight == 0.5
    assert config.search.rrf_k == 30
    assert config.ask.scrape_count == 4


def test_invalid_type_raises(tmp_path):
    config_path = write_config(tmp_path, "[search]\nrrf_k = many\n")

    with pytest.raises(ConfigError, match="rrf_k"):
        _load_config(config_path)


def test_out_of_range_raises(tmp_path):
    config_path = write_config(tmp_path, "[search]\nvector_weight = 1.5\n")

    with pytest.raises(ConfigError, match="maximum"):
        _load_config(config_path)


def test_overlap_must_fit_inside_chunk(tmp_path):
    config_path = write_config(tmp_path, "[chunking]\nmax_tokens = 100\noverlap_tokens = 100\n")

    with pytest.raises(ConfigError, match="overlap_tokens"):
        _load_config(config_path)


# =============================================================================
# Environment Loading
# =============================================================================


def test_load_settings_from_environment(data_dir, monkeypatch):
    monkeypatch.setenv("NIM_API_KEY", "nim-key")
    monkeypatch.setenv("NIM_BASE_URL", "https://nim.example.com/v1/")
    monkeypatch.setenv("NIM_RPM_LIMIT", "100")
    monkeypatch.setenv("NIM_EMBEDDING_DIM", "768")
    monkeypatch.setenv("SEARXNG_URLS", "https://a.example/, https://b.example ,")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

    settings = load_settings()

    assert settings.data_dir == data_dir
    assert settings.db_path == data_dir / "recollect.db"
    assert settings.chroma_path == data_dir / "chroma"
    assert settings.embedding_base_url == "https://nim.example.com/v1"
    assert settings.embedding.rpm_limit == 100
    assert settings.embedding.dimension == 768
    assert settings.searxng_urls == ("https://a.example", "https://b.example")
    assert settings.rag_configured
    assert settings.web_search_configured
    assert settings.openai_configured


def test_unconfigured_environment(data_dir):
    settings = load_settings()

    assert not settings.rag_configured
    assert not settings.web_search_configured
    assert not settings.openai_configured


def test_rag_can_be_disabled(data_dir, monkeypatch):
    monkeypatch.setenv("NIM_API_KEY", "nim-key")
    monkeypatch.setenv("RAG_ENABLED", "false")

    assert not load_settings().rag_configured


def test_storage_paths_can_be_overridden(data_dir, monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "other.db"))
    monkeypatch.setenv("VECTOR_DB_PATH", str(tmp_path / "vectors"))

    settings = load_settings()

    assert settings.db_path == tmp_path / "other.db"
    assert settings.chroma_path == tmp_path / "vectors"


def test_config_ini_in_data_dir_is_read(data_dir):
    write_config(data_dir, "[ask]\nmax_context = 8\n")

    assert load_settings().ask.max_context == 8


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_rpm_limit_raises(data_dir, monkeypatch, value):
    monkeypatch.setenv("NIM_RPM_LIMIT", value)

    with pytest.raises(ConfigError, match="NIM_RPM_LIMIT"):
        load_settings()


def test_settings_are_cached(data_dir):
    assert load_settings() is load_settings()
