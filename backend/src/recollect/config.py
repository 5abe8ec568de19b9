"""Configuration system for the Recollect backend.

This module handles loading settings from environment variables and an
optional config.ini in the data directory, providing validated defaults for
every tunable and computing derived storage paths.
"""

import os
from configparser import ConfigParser
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from recollect.constants.ask import (
    DEFAULT_MAX_CONTEXT,
    MAX_WEB_QUERIES,
    SCRAPE_MAX_CHARS,
    SCRAPE_SUCCESS_TARGET,
    WEB_SEARCH_TIMEOUT_SECONDS,
)
from recollect.constants.chunking import (
    DEFAULT_CHUNK_TOKENS,
    EMBEDDING_MAX_CHARS,
    HARD_MAX_TOKENS,
    MIN_CHUNK_TOKENS,
    OVERLAP_DIVISOR,
)
from recollect.constants.embedding import (
    DEFAULT_EMBEDDING_BASE_URL,
    DEFAULT_EMBEDDING_DIMENSION,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_RPM_LIMIT,
    EMBEDDING_TIMEOUT_SECONDS,
    MIN_EMBED_TEXT_CHARS,
)
from recollect.constants.indexing import BACKFILL_MEMORY_LIMIT, SYNC_TIMEOUT_SECONDS
from recollect.constants.llm import (
    DEFAULT_OPENAI_BASE_URL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_TEMPERATURE,
    JSON_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    MAX_TOKENS,
)
from recollect.constants.search import (
    BRANCH_TIMEOUT_SECONDS,
    CANDIDATE_MULTIPLIER,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_VECTOR_WEIGHT,
    MIN_STEP_RATIO,
    RRF_K,
    SEARCH_CACHE_TTL_SECONDS,
    SIMILARITY_FLOOR_RATIO,
)


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "chunking": {
        "max_tokens": (
            int, DEFAULT_CHUNK_TOKENS, 50, HARD_MAX_TOKENS, "Target chunk size in estimated tokens"
        ),
        "overlap_tokens": (
            int,
            DEFAULT_CHUNK_TOKENS // OVERLAP_DIVISOR,
            0,
            200,
            "Tokens carried over from the previous chunk",
        ),
        "min_tokens": (int, MIN_CHUNK_TOKENS, 1, 200, "Smallest trailing chunk worth keeping"),
    },
    "embedding": {
        "rpm_limit": (int, DEFAULT_RPM_LIMIT, 1, 10_000, "Embedding requests per minute"),
        "dimension": (
            int, DEFAULT_EMBEDDING_DIMENSION, 8, 8192, "Expected embedding vector length"
        ),
        "timeout_seconds": (
            float, EMBEDDING_TIMEOUT_SECONDS, 1.0, 300.0, "HTTP timeout for embedding calls"
        ),
        "max_input_chars": (
            int, EMBEDDING_MAX_CHARS, 100, 32_000, "Character cap for embedding input"
        ),
        "min_text_chars": (
            int, MIN_EMBED_TEXT_CHARS, 1, 1000, "Shortest text accepted for embedding"
        ),
    },
    "search": {
        "result_limit": (int, DEFAULT_SEARCH_LIMIT, 1, 100, "Default search results to return"),
        "vector_weight": (
            float, DEFAULT_VECTOR_WEIGHT, 0.0, 1.0, "Weight of the vector branch in fusion"
        ),
        "rrf_k": (int, RRF_K, 1, 1000, "Reciprocal Rank Fusion constant"),
        "candidate_multiplier": (int, CANDIDATE_MULTIPLIER, 1, 10, "Over-fetch factor per branch"),
        "similarity_floor": (
            float, SIMILARITY_FLOOR_RATIO, 0.0, 1.0, "Fraction of top vector score to keep"
        ),
        "min_step_ratio": (
            float, MIN_STEP_RATIO, 0.0, 1.0, "Fraction of previous vector score to keep"
        ),
        "branch_timeout_seconds": (
            float, BRANCH_TIMEOUT_SECONDS, 0.1, 120.0, "Timeout per search branch"
        ),
        "cache_ttl_seconds": (
            int, SEARCH_CACHE_TTL_SECONDS, 0, 86_400, "Search result cache lifetime"
        ),
    },
    "ask": {
        "max_context": (int, DEFAULT_MAX_CONTEXT, 1, 50, "Documents used as answer context"),
        "scrape_count": (int, SCRAPE_SUCCESS_TARGET, 1, 10, "Web pages scraped per query"),
        "scrape_max_chars": (
            int, SCRAPE_MAX_CHARS, 200, 100_000, "Characters kept per scraped page"
        ),
        "max_web_queries": (
            int, MAX_WEB_QUERIES, 1, 10, "Generated web queries run in hybrid mode"
        ),
        "web_timeout_seconds": (
            float,
            WEB_SEARCH_TIMEOUT_SECONDS,
            1.0,
            120.0,
            "Timeout for web search and scraping",
        ),
    },
    "llm": {
        "max_tokens": (int, MAX_TOKENS, 256, 32_768, "Max response tokens"),
        "default_temperature": (float, DEFAULT_TEMPERATURE, 0.0, 2.0, "Default LLM temperature"),
        "json_temperature": (
            float, JSON_TEMPERATURE, 0.0, 1.0, "Temperature for structured output"
        ),
        "timeout_seconds": (
            float, LLM_TIMEOUT_SECONDS, 1.0, 600.0, "Deadline for one completion request"
        ),
    },
    "indexing": {
        "sync_timeout_seconds": (
            float, SYNC_TIMEOUT_SECONDS, 1.0, 300.0, "Timeout for background re-indexing"
        ),
        "backfill_memory_limit": (
            int, BACKFILL_MEMORY_LIMIT, 1, 100_000, "Memories fetched per backfill"
        ),
    },
}


@dataclass(frozen=True)
class ChunkingConfig:
    """Chunker sizing."""

    max_tokens: int
    overlap_tokens: int
    min_tokens: int


@dataclass(frozen=True)
class EmbeddingConfig:
    """Embedding client limits."""

    rpm_limit: int
    dimension: int
    timeout_seconds: float
    max_input_chars: int
    min_text_chars: int


@dataclass(frozen=True)
class SearchConfig:
    """Hybrid search configuration."""

    result_limit: int
    vector_weight: float
    rrf_k: int
    candidate_multiplier: int
    similarity_floor: float
    min_step_ratio: float
    branch_timeout_seconds: float
    cache_ttl_seconds: int


@dataclass(frozen=True)
class AskConfig:
    """Ask pipeline configuration."""

    max_context: int
    scrape_count: int
    scrape_max_chars: int
    max_web_queries: int
    web_timeout_seconds: float


@dataclass(frozen=True)
class LLMConfig:
    """LLM client configuration."""

    max_tokens: int
    default_temperature: float
    json_temperature: float
    timeout_seconds: float


@dataclass(frozen=True)
class IndexingConfig:
    """Background sync and backfill configuration."""

    sync_timeout_seconds: float
    backfill_memory_limit: int


_SECTION_TYPES: dict[str, type] = {
    "chunking": ChunkingConfig,
    "embedding": EmbeddingConfig,
    "search": SearchConfig,
    "ask": AskConfig,
    "llm": LLMConfig,
    "indexing": IndexingConfig,
}


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _section_defaults(section: str) -> Any:
    """Build a section dataclass populated with schema defaults."""
    values = {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}
    return _SECTION_TYPES[section](**values)


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated and default core settings.

    Raises:
        ConfigError: If validation fails, including chunk overlap that does
            not fit inside the chunk size.
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    sections = {
        name: _SECTION_TYPES[name](**_load_section(parser, name, CONFIG_SCHEMA[name]))
        for name in CONFIG_SCHEMA
    }

    chunking: ChunkingConfig = sections["chunking"]
    if chunking.overlap_tokens >= chunking.max_tokens:
        raise ConfigError(
            f"[chunking].overlap_tokens ({chunking.overlap_tokens}) must be smaller "
            f"than [chunking].max_tokens ({chunking.max_tokens})"
        )

    return Config(**sections)


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    data_dir: Path = None  # type: ignore[assignment]  # Set in __post_init__ if None
    database_path: Optional[Path] = None
    vector_db_path: Optional[Path] = None
    rag_enabled: bool = True

    embedding_base_url: str = DEFAULT_EMBEDDING_BASE_URL
    embedding_api_key: Optional[str] = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL

    searxng_urls: tuple[str, ...] = ()

    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL

    # Section configs - defaults set in __post_init__
    chunking: ChunkingConfig = None  # type: ignore[assignment]
    embedding: EmbeddingConfig = None  # type: ignore[assignment]
    search: SearchConfig = None  # type: ignore[assignment]
    ask: AskConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]
    indexing: IndexingConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize data directory and section configs with defaults if not provided."""
        # Since frozen=True, we need to use object.__setattr__
        if self.data_dir is None:
            object.__setattr__(self, "data_dir", Path.home() / ".recollect")
        for section in CONFIG_SCHEMA:
            if getattr(self, section) is None:
                object.__setattr__(self, section, _section_defaults(section))

    @property
    def db_path(self) -> Path:
        """Path to the SQLite database holding todos, memories and the FTS index."""
        return self.database_path or self.data_dir / "recollect.db"

    @property
    def chroma_path(self) -> Path:
        """Path to the chromadb vector store directory."""
        return self.vector_db_path or self.data_dir / "chroma"

    @property
    def llm_log_path(self) -> Path:
        """Path to the LLM query log file."""
        return self.data_dir / "logs" / "llm-queries.jsonl"

    @property
    def rag_configured(self) -> bool:
        """Whether retrieval is enabled and an embedding provider is available."""
        return bool(self.rag_enabled and self.embedding_base_url and self.embedding_api_key)

    @property
    def web_search_configured(self) -> bool:
        """Whether at least one SearXNG instance is configured."""
        return bool(self.searxng_urls)

    @property
    def openai_configured(self) -> bool:
        """Whether the environment fallback LLM provider is usable."""
        return bool(self.openai_base_url and self.openai_api_key)


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _parse_int_env(name: str, fallback: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return fallback
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r} (expected int)") from e
    if value <= 0:
        raise ConfigError(f"Value for {name} must be positive, got {value}")
    return value


def _parse_url_list(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(url.strip().rstrip("/") for url in raw.split(",") if url.strip())


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ConfigError: If config.ini or a numeric environment variable is invalid.
    """
    data_dir_str = os.getenv("RECOLLECT_DATA_DIR")
    data_dir = Path(data_dir_str) if data_dir_str else Path.home() / ".recollect"

    config_file = data_dir / "config.ini"
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    # Provider-specific quota and model dimension come from the environment
    embedding = replace(
        base_config.embedding,
        rpm_limit=_parse_int_env("NIM_RPM_LIMIT", base_config.embedding.rpm_limit),
        dimension=_parse_int_env("NIM_EMBEDDING_DIM", base_config.embedding.dimension),
    )

    database_path = os.getenv("DATABASE_PATH")
    vector_db_path = os.getenv("VECTOR_DB_PATH")

    return Config(
        data_dir=data_dir,
        database_path=Path(database_path) if database_path else None,
        vector_db_path=Path(vector_db_path) if vector_db_path else None,
        rag_enabled=_parse_bool(os.getenv("RAG_ENABLED", "true")),
        embedding_base_url=os.getenv("NIM_BASE_URL", DEFAULT_EMBEDDING_BASE_URL).rstrip("/"),
        embedding_api_key=os.getenv("NIM_API_KEY") or None,
        embedding_model=os.getenv("NIM_MODEL") or DEFAULT_EMBEDDING_MODEL,
        searxng_urls=_parse_url_list(os.getenv("SEARXNG_URLS")),
        openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL).rstrip("/"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        chunking=base_config.chunking,
        embedding=embedding,
        search=base_config.search,
        ask=base_config.ask,
        llm=base_config.llm,
        indexing=base_config.indexing,
    )
