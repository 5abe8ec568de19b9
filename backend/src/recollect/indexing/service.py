"""Keeps the vector index in step with the todos and memories tables."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable

from recollect.config import Config, ConfigError, IndexingConfig, load_settings
from recollect.db.content import ContentStore, MemoryRecord, TodoRecord
from recollect.embedding.client import EmbeddingNotConfiguredError
from recollect.indexing.documents import memory_to_document, todo_to_document
from recollect.indexing.schemas import IndexResponse, IndexStats
from recollect.search.schemas import ContentType, Document
from recollect.search.service import SearchService
from recollect.vectorstore.store import VectorIndex

logger = logging.getLogger(__name__)


class IndexingService:
    """Indexes todos and memories for semantic search.

    The keyword index follows the SQL tables through triggers; this service
    maintains the vector index. When no vector index is available (embedding
    not configured) single-document operations are no-ops.
    """

    def __init__(
        self,
        vector_index: VectorIndex | None,
        content_store: ContentStore,
        search_service: SearchService | None = None,
        settings: IndexingConfig | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            vector_index: Index to maintain, or None when embeddings are off.
            content_store: Source of truth for todos and memories.
            search_service: Its cached responses are dropped when a user's
                content is reindexed.
            settings: Timeouts and backfill limits; schema defaults if None.
        """
        self._vector_index = vector_index
        self._content = content_store
        self._search = search_service
        if settings is None:
            try:
                settings = load_settings().indexing
            except (ValueError, OSError, ConfigError):
                # Settings not available
                settings = Config().indexing
        self._settings = settings
        self._background: set[asyncio.Task] = set()

    @property
    def is_configured(self) -> bool:
        return self._vector_index is not None

    async def index_all_for_user(self, user_id: str) -> IndexResponse:
        """Index every todo and memory of a user not yet in the vector index.

        Documents that are already indexed are skipped. A failing document
        is counted and logged; the run continues with the next one.

        Raises:
            EmbeddingNotConfiguredError: If there is no vector index.
        """
        if self._vector_index is None:
            raise EmbeddingNotConfiguredError("RAG service not configured")

        start = time.perf_counter()
        indexed = skipped = errors = 0
        logger.info(f"Starting full index for user {user_id}")

        documents: list[Document] = []
        try:
            documents.extend(todo_to_document(t) for t in self._content.list_todos(user_id))
        except Exception as e:
            logger.error(f"Error fetching todos for user {user_id}: {e}")
        try:
            documents.extend(
                memory_to_document(m)
                for m in self._content.list_memories(
                    user_id, limit=self._settings.backfill_memory_limit
                )
            )
        except Exception as e:
            logger.error(f"Error fetching memories for user {user_id}: {e}")

        for doc in documents:
            try:
                if self._vector_index.get_by_content_id(doc.content_type, doc.content_id):
                    skipped += 1
                    continue
                await self._vector_index.add(doc)
            except Exception as e:
                logger.warning(f"Error indexing {doc.key}: {e}")
                errors += 1
            else:
                indexed += 1

        if indexed:
            await self._invalidate(user_id)
        logger.info(
            f"Indexing complete for user {user_id}: "
            f"indexed={indexed}, skipped={skipped}, errors={errors}"
        )
        return IndexResponse(
            indexed=indexed,
            skipped=skipped,
            errors=errors,
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )

    async def index_one(self, doc: Document) -> None:
        """Replace the indexed copy of one document.

        The old vector is deleted before the new one is added.
        """
        if self._vector_index is None:
            return
        self._vector_index.delete_by_content_id(doc.content_type, doc.content_id)
        await self._vector_index.add(doc)
        await self._invalidate(doc.user_id)

    async def index_todo(self, todo: TodoRecord) -> None:
        await self.index_one(todo_to_document(todo))

    async def index_memory(self, memory: MemoryRecord) -> None:
        """Index a memory; archived memories are removed from the index instead."""
        if memory.is_archived:
            await self.delete_one(ContentType.MEMORY, memory.id)
            return
        await self.index_one(memory_to_document(memory))

    async def delete_one(self, content_type: ContentType, content_id: str) -> None:
        """Remove one document from the vector index. Missing documents are ignored."""
        if self._vector_index is None:
            return
        existing = self._vector_index.get_by_content_id(content_type, content_id)
        self._vector_index.delete_by_content_id(content_type, content_id)
        if existing is not None:
            await self._invalidate(existing.user_id)

    def stats(self, user_id: str | None = None) -> IndexStats:
        """Vector index statistics; empty when embeddings are off."""
        if self._vector_index is None:
            return IndexStats()
        return self._vector_index.stats(user_id)

    def schedule_index(self, doc: Document) -> asyncio.Task:
        """Reindex a document in the background after a write."""
        return self._schedule(self.index_one(doc), f"index {doc.key}")

    def schedule_delete(self, content_type: ContentType, content_id: str) -> asyncio.Task:
        """Remove a document from the index in the background after a delete."""
        return self._schedule(
            self.delete_one(content_type, content_id), f"delete {content_type.value}-{content_id}"
        )

    async def drain(self) -> None:
        """Wait for all scheduled background work to finish."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def purge_user(self, user_id: str) -> int:
        """Delete all of a user's indexed and stored content.

        The vector index is cleared first. A failure there is logged and
        does not stop the SQL deletion, which is authoritative.

        Returns:
            Number of todo and memory rows deleted.
        """
        if self._vector_index is not None:
            try:
                self._vector_index.delete_by_user(user_id)
            except Exception as e:
                logger.error(f"Failed to delete vectors of user {user_id}: {e}")
        deleted = self._content.delete_all_for_user(user_id)
        await self._invalidate(user_id)
        logger.info(f"Purged {deleted} rows for user {user_id}")
        return deleted

    def _schedule(self, work: Awaitable[None], description: str) -> asyncio.Task:
        task = asyncio.create_task(self._run_bounded(work, description))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _run_bounded(self, work: Awaitable[None], description: str) -> None:
        try:
            await asyncio.wait_for(work, timeout=self._settings.sync_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Background {description} timed out")
        except Exception as e:
            logger.warning(f"Background {description} failed: {e}")

    async def _invalidate(self, user_id: str) -> None:
        if self._search is not None and user_id:
            await self._search.invalidate_user(user_id)
