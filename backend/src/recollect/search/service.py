"""Hybrid search: concurrent vector and keyword retrieval fused with RRF."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable

from recollect.config import Config, ConfigError, SearchConfig, load_settings
from recollect.db.content import ContentStore
from recollect.indexing.documents import memory_metadata, todo_metadata
from recollect.search.cache import SearchCache
from recollect.search.keyword import KeywordHit, KeywordIndex
from recollect.search.ranking import RRFRanker, filter_by_similarity
from recollect.search.schemas import (
    ContentType,
    Document,
    MatchType,
    SearchRequest,
    SearchResponse,
    SearchResult,
)
from recollect.vectorstore.store import VectorIndex

logger = logging.getLogger(__name__)


def cache_key(user_id: str, request: SearchRequest, limit: int, vector_weight: float) -> str:
    """Cache key for a normalized search request, prefixed by the user ID."""
    content_types = ",".join(ct.value for ct in request.content_types)
    return f"{user_id}:{request.query}:{limit}:{vector_weight:.2f}:{content_types}"


def _keyword_hit_to_result(hit: KeywordHit) -> SearchResult:
    content_type = ContentType(hit.content_type)
    metadata: dict[str, str] = {}
    if hit.category:
        metadata["category"] = hit.category
    if hit.tags:
        metadata["tags"] = hit.tags
    return SearchResult(
        document=Document(
            content_id=hit.content_id,
            content_type=content_type,
            user_id=hit.user_id,
            title=hit.title,
            content=hit.content,
            metadata=metadata,
        ),
        score=hit.score,
        match_type=MatchType.KEYWORD,
        highlights=[hit.snippet] if hit.snippet else [],
    )


class SearchService:
    """Runs hybrid search for one user.

    The vector and keyword branches run concurrently. A branch that fails or
    times out contributes no results; the other branch still answers.
    """

    def __init__(
        self,
        vector_index: VectorIndex | None,
        keyword_index: KeywordIndex,
        content_store: ContentStore,
        cache: SearchCache | None = None,
        settings: SearchConfig | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            vector_index: Semantic index, or None when embeddings are
                unavailable (keyword-only search).
            keyword_index: FTS5 index.
            content_store: Source of truth used to refresh result fields.
            cache: Optional response cache.
            settings: Search tunables; schema defaults if None.
        """
        self._vector_index = vector_index
        self._keyword_index = keyword_index
        self._content = content_store
        self._cache = cache
        if settings is None:
            try:
                settings = load_settings().search
            except (ValueError, OSError, ConfigError):
                # Settings not available
                settings = Config().search
        self._settings = settings
        self._ranker = RRFRanker(k=self._settings.rrf_k)

    async def search(self, user_id: str, request: SearchRequest) -> SearchResponse:
        """Search a user's todos and memories.

        Args:
            user_id: Owner of the searched content.
            request: Query with limit, vector weight and content type filter.
                Non-positive limit or weight fall back to the defaults.

        Returns:
            Fused, enriched results, best first, at most limit of them.
        """
        start = time.perf_counter()
        limit = request.limit if request.limit > 0 else self._settings.result_limit
        vector_weight = (
            request.vector_weight if request.vector_weight > 0 else self._settings.vector_weight
        )

        key = cache_key(user_id, request, limit, vector_weight)
        cached = await self._cache_get(key)
        if cached is not None:
            response = SearchResponse.model_validate(cached)
            response.elapsed_ms = (time.perf_counter() - start) * 1000
            return response

        candidates = limit * self._settings.candidate_multiplier
        vector_results, keyword_results = await asyncio.gather(
            self._run_branch("vector", self._vector_branch(user_id, request, candidates)),
            self._run_branch("keyword", self._keyword_branch(user_id, request, candidates)),
        )

        vector_results = filter_by_similarity(
            vector_results,
            floor_ratio=self._settings.similarity_floor,
            step_ratio=self._settings.min_step_ratio,
        )
        fused = self._ranker.merge(
            vector_results, keyword_results, vector_weight=vector_weight, limit=limit
        )
        enriched = [self._enrich(result) for result in fused]

        response = SearchResponse(
            results=enriched,
            query=request.query,
            total_count=len(enriched),
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )
        logger.info(
            f"Search for user {user_id}: {len(vector_results)} vector, "
            f"{len(keyword_results)} keyword, {len(enriched)} fused"
        )
        await self._cache_set(key, response)
        return response

    async def invalidate_user(self, user_id: str) -> None:
        """Drop cached responses of a user after their content changed."""
        if self._cache is not None:
            await self._cache.invalidate_prefix(f"{user_id}:")

    async def _run_branch(
        self, name: str, branch: Awaitable[list[SearchResult]]
    ) -> list[SearchResult]:
        try:
            return await asyncio.wait_for(branch, timeout=self._settings.branch_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"{name} search timed out")
        except Exception as e:
            logger.warning(f"{name} search failed: {e}")
        return []

    async def _vector_branch(
        self, user_id: str, request: SearchRequest, candidates: int
    ) -> list[SearchResult]:
        if self._vector_index is None:
            return []
        return await self._vector_index.search_by_user(
            user_id, request.query, candidates, request.content_types or None
        )

    async def _keyword_branch(
        self, user_id: str, request: SearchRequest, candidates: int
    ) -> list[SearchResult]:
        content_types = [ct.value for ct in request.content_types] or None
        hits = await asyncio.to_thread(
            self._keyword_index.search, user_id, request.query, content_types, candidates
        )
        return [_keyword_hit_to_result(hit) for hit in hits]

    def _enrich(self, result: SearchResult) -> SearchResult:
        """Refresh title, content and metadata from the SQL store.

        Rows that cannot be read leave the indexed copy in place.
        """
        doc = result.document
        try:
            if doc.content_type == ContentType.TODO:
                todo = self._content.get_todo_by_id(doc.content_id)
                if todo is not None:
                    doc.title = todo.title
                    if todo.description:
                        doc.content = todo.description
                    doc.metadata = todo_metadata(todo)
            elif doc.content_type == ContentType.MEMORY:
                memory = self._content.get_memory_by_id(doc.content_id)
                if memory is not None:
                    doc.content = memory.content
                    if memory.url_title:
                        doc.title = memory.url_title
                    doc.metadata = memory_metadata(memory)
                    if memory.summary:
                        doc.metadata["summary"] = memory.summary
        except Exception as e:
            logger.warning(f"Could not enrich {doc.key}: {e}")
        return result

    async def _cache_get(self, key: str) -> dict | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get_json(key)
        except Exception as e:
            logger.warning(f"Search cache read failed: {e}")
            return None

    async def _cache_set(self, key: str, response: SearchResponse) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set_json(key, response.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Search cache write failed: {e}")
