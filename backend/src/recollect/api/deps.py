"""FastAPI dependency injection functions."""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from recollect.config import Config, load_settings
from recollect.db.connection import Database
from recollect.db.content import ContentStore
from recollect.db.migrations import run_migrations
from recollect.embedding.client import EmbeddingClient
from recollect.embedding.ratelimit import RateLimiter
from recollect.indexing.chunking import DocumentChunker
from recollect.indexing.service import IndexingService
from recollect.llm.providers import ProviderConfig, ProviderResolver, ProviderType, SQLiteProviderRegistry
from recollect.qa.service import AskService
from recollect.search.cache import SearchCache
from recollect.search.keyword import KeywordIndex
from recollect.search.service import SearchService
from recollect.vectorstore.store import VectorIndex
from recollect.web.scraper import WebScraper
from recollect.web.search import WebSearchClient

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Config:
    """Get cached application settings."""
    return load_settings()


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Authenticated user ID, set by the gateway in the X-User-Id header.

    Raises:
        HTTPException: 401 if the header is missing.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


_db_instance: Database | None = None


def get_db() -> Database:
    """Get database connection with migrations applied."""
    global _db_instance
    if _db_instance is None:
        settings = get_settings()
        _db_instance = Database(settings.db_path)
        run_migrations(_db_instance)
    return _db_instance


def _reset_db_instance() -> None:
    """Reset database instance (for testing only)."""
    global _db_instance
    if _db_instance is not None:
        _db_instance.close()
        _db_instance = None


def get_content_store(db: Database = Depends(get_db)) -> ContentStore:
    return ContentStore(db)


def get_keyword_index(db: Database = Depends(get_db)) -> KeywordIndex:
    return KeywordIndex(db)


# One limiter per process: the embedding quota is shared by every user
_rate_limiter: RateLimiter | None = None
_vector_index: VectorIndex | None = None


def get_vector_index() -> VectorIndex | None:
    """Get the vector index, or None when embeddings are not configured."""
    global _rate_limiter, _vector_index
    settings = get_settings()
    if not settings.rag_configured:
        return None
    if _vector_index is None:
        if _rate_limiter is None:
            _rate_limiter = RateLimiter(settings.embedding.rpm_limit)
        embedder = EmbeddingClient(
            base_url=settings.embedding_base_url,
            api_key=settings.embedding_api_key,
            model=settings.embedding_model,
            dimension=settings.embedding.dimension,
            rate_limiter=_rate_limiter,
            timeout=settings.embedding.timeout_seconds,
            max_input_chars=settings.embedding.max_input_chars,
            min_text_chars=settings.embedding.min_text_chars,
        )
        chunker = DocumentChunker(
            max_tokens=settings.chunking.max_tokens,
            overlap_tokens=settings.chunking.overlap_tokens,
            min_tokens=settings.chunking.min_tokens,
        )
        settings.chroma_path.mkdir(parents=True, exist_ok=True)
        _vector_index = VectorIndex(settings.chroma_path, embedder, chunker=chunker)
        logger.info(f"Vector index ready: {_vector_index.collection_name}")
    return _vector_index


def _reset_vector_index() -> None:
    """Reset vector index and rate limiter (for testing only)."""
    global _rate_limiter, _vector_index
    if _vector_index is not None:
        _vector_index.close()
    _vector_index = None
    _rate_limiter = None


_search_cache: SearchCache | None = None


def get_search_cache() -> SearchCache:
    global _search_cache
    if _search_cache is None:
        _search_cache = SearchCache(ttl_seconds=get_settings().search.cache_ttl_seconds)
    return _search_cache


def _reset_search_cache() -> None:
    """Reset search cache (for testing only)."""
    global _search_cache
    _search_cache = None


def get_search_service(
    vector_index: VectorIndex | None = Depends(get_vector_index),
    keyword_index: KeywordIndex = Depends(get_keyword_index),
    content_store: ContentStore = Depends(get_content_store),
    cache: SearchCache = Depends(get_search_cache),
    settings: Config = Depends(get_settings),
) -> SearchService:
    """Get search service instance."""
    return SearchService(
        vector_index, keyword_index, content_store, cache=cache, settings=settings.search
    )


def get_provider_resolver(
    db: Database = Depends(get_db),
    settings: Config = Depends(get_settings),
) -> ProviderResolver:
    """Get resolver for per-user AI providers with the environment fallback."""
    fallback = None
    if settings.openai_configured:
        fallback = ProviderConfig(
            provider_type=ProviderType.OPENAI,
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key or "",
            model=settings.openai_model,
        )
    registry = SQLiteProviderRegistry(db, default_model=settings.openai_model)
    return ProviderResolver(registry, fallback=fallback, log_path=settings.llm_log_path)


def get_web_search(settings: Config = Depends(get_settings)) -> WebSearchClient | None:
    if not settings.web_search_configured:
        return None
    return WebSearchClient(settings.searxng_urls, timeout=settings.ask.web_timeout_seconds)


def get_ask_service(
    search_service: SearchService = Depends(get_search_service),
    resolver: ProviderResolver = Depends(get_provider_resolver),
    web_search: WebSearchClient | None = Depends(get_web_search),
    settings: Config = Depends(get_settings),
) -> AskService:
    """Get ask service instance."""
    scraper = WebScraper(
        timeout=settings.ask.web_timeout_seconds,
        max_chars=settings.ask.scrape_max_chars,
    )
    return AskService(
        search_service, resolver, web_search=web_search, scraper=scraper, settings=settings.ask
    )


_indexing_service: IndexingService | None = None


def get_indexing_service(
    vector_index: VectorIndex | None = Depends(get_vector_index),
    content_store: ContentStore = Depends(get_content_store),
    search_service: SearchService = Depends(get_search_service),
    settings: Config = Depends(get_settings),
) -> IndexingService:
    """Get the indexing service; one instance owns all background sync tasks."""
    global _indexing_service
    if _indexing_service is None:
        _indexing_service = IndexingService(
            vector_index, content_store, search_service=search_service, settings=settings.indexing
        )
    return _indexing_service


def _reset_indexing_service() -> None:
    """Reset indexing service (for testing only)."""
    global _indexing_service
    _indexing_service = None
