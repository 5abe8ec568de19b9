"""ChromaDB vector index for todos and memories."""

from __future__ import annotations

import gc
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import chromadb
from chromadb.config import Settings

from recollect.embedding.client import EmbeddingClient, prepare_document_text
from recollect.indexing.chunking import DocumentChunker
from recollect.indexing.documents import tags_from_metadata
from recollect.indexing.schemas import IndexStats
from recollect.indexing.text import count_tokens, sanitize_text
from recollect.search.schemas import ContentType, Document, MatchType, SearchResult

logger = logging.getLogger(__name__)

# Metadata keys owned by the index; everything else is document metadata
_RESERVED_KEYS = frozenset(
    {"content_type", "content_id", "user_id", "title", "created_at", "indexed_at"}
)
_MAX_SLUG_LENGTH = 40


class EmbeddingDimensionError(Exception):
    """Raised when a vector does not match the index's configured dimension."""

    pass


def collection_name_for(model: str, dimension: int) -> str:
    """Name of the collection holding vectors from one model and dimension.

    Vectors from different embedding models are not comparable, so each
    model gets its own collection.
    """
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", model).strip("-").lower()
    slug = slug[:_MAX_SLUG_LENGTH].strip("-") or "model"
    return f"documents-{slug}-{dimension}"


def _document_id(content_type: ContentType | str, content_id: str) -> str:
    type_value = content_type.value if isinstance(content_type, ContentType) else content_type
    return f"{type_value}-{content_id}"


def _parse_datetime(raw: Any) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError:
        return None


class VectorIndex:
    """Per-user semantic search over embedded documents.

    Each document is stored as a single vector keyed by its content type and
    ID. Embeddings always come from the EmbeddingClient: passages when
    indexing, queries when searching. The collection is tagged with the
    embedding model and dimension, and vectors of any other length are
    refused.
    """

    def __init__(
        self,
        persist_path: Path | None,
        embedder: EmbeddingClient,
        chunker: DocumentChunker | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize the index.

        Args:
            persist_path: Directory for chromadb persistence. Ignored when a
                client is given.
            embedder: Embedding client; its model and dimension tag the index.
            chunker: Chunker used to pick the passage for long documents.
            client: Optional chromadb client, e.g. an EphemeralClient in tests.
        """
        if client is None:
            if persist_path is None:
                raise ValueError("persist_path is required when no client is given")
            client = chromadb.PersistentClient(
                path=str(persist_path),
                settings=Settings(anonymized_telemetry=False),
            )
        self._client = client
        self._embedder = embedder
        self._chunker = chunker or DocumentChunker()
        self.model = embedder.model
        self.dimension = embedder.dimension
        self.collection_name = collection_name_for(self.model, self.dimension)
        self._collection = self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={
                "hnsw:space": "cosine",
                "embedding_model": self.model,
                "embedding_dimension": self.dimension,
            },
            embedding_function=None,
        )
        self._check_collection_tag()

    @property
    def collection(self) -> Any:
        """Get the underlying ChromaDB collection."""
        return self._collection

    def _check_collection_tag(self) -> None:
        metadata = self._collection.metadata or {}
        stored = metadata.get("embedding_dimension")
        if stored is not None and int(stored) != self.dimension:
            raise EmbeddingDimensionError(
                f"Collection {self.collection_name} holds {stored}-dimensional vectors, "
                f"but the embedding client produces {self.dimension}"
            )

    def _check_dimension(self, embedding: list[float]) -> None:
        if len(embedding) != self.dimension:
            raise EmbeddingDimensionError(
                f"Embedding has {len(embedding)} dimensions, index expects {self.dimension}"
            )

    def _passage_text(self, doc: Document) -> str:
        text = prepare_document_text(
            doc.title, doc.content, doc.metadata.get("category"), tags_from_metadata(doc.metadata)
        )
        # Long documents are represented by their first chunk; short ones,
        # including those below the chunk minimum, are embedded whole
        if count_tokens(sanitize_text(text)) > self._chunker.max_tokens:
            first = self._chunker.first_chunk(text)
            if first is not None:
                return first.text
        return text

    async def add(self, doc: Document) -> None:
        """Embed and store a document, replacing any vector with the same identity.

        Raises:
            EmbeddingError: If the embedding call fails.
            EmbeddingDimensionError: If the vector has the wrong length.
        """
        embedding = await self._embedder.embed_passage(self._passage_text(doc))
        self._check_dimension(embedding)

        metadata: dict[str, Any] = {
            key: value for key, value in doc.metadata.items() if key not in _RESERVED_KEYS
        }
        metadata.update(
            {
                "content_type": doc.content_type.value,
                "content_id": doc.content_id,
                "user_id": doc.user_id,
                "title": doc.title,
                "created_at": doc.created_at.isoformat(),
                "indexed_at": datetime.now(timezone.utc).isoformat(),
            }
        )

        self._collection.upsert(
            ids=[_document_id(doc.content_type, doc.content_id)],
            embeddings=[embedding],
            documents=[doc.content],
            metadatas=[metadata],
        )
        logger.debug(
            f"Indexed {doc.content_type.value} {doc.content_id} for user {doc.user_id}"
        )

    async def search_by_user(
        self,
        user_id: str,
        query: str,
        limit: int,
        content_types: list[ContentType] | None = None,
    ) -> list[SearchResult]:
        """Nearest neighbours of the query among one user's documents.

        Args:
            user_id: Owner whose documents are searched.
            query: Search text, embedded in query mode.
            limit: Maximum results.
            content_types: Optional filter.

        Returns:
            Results best first, scored by cosine similarity in [0, 1].
        """
        if limit <= 0:
            return []
        embedding = await self._embedder.embed_query(query)
        self._check_dimension(embedding)

        total = self._collection.count()
        if total == 0:
            return []

        where: dict[str, Any] = {"user_id": user_id}
        if content_types:
            where = {
                "$and": [
                    {"user_id": user_id},
                    {"content_type": {"$in": [ct.value for ct in content_types]}},
                ]
            }

        raw = self._collection.query(
            query_embeddings=[embedding],
            n_results=min(limit, total),
            where=where,
            include=["documents", "metadatas", "distances"],
        )

        ids = (raw.get("ids") or [[]])[0]
        documents = (raw.get("documents") or [[]])[0]
        metadatas = (raw.get("metadatas") or [[]])[0]
        distances = (raw.get("distances") or [[]])[0]

        results: list[SearchResult] = []
        for i in range(len(ids)):
            metadata = metadatas[i] or {}
            doc = self._to_document(metadata, documents[i] if i < len(documents) else "")
            if doc is None:
                continue
            distance = distances[i] if i < len(distances) else 1.0
            score = min(1.0, max(0.0, 1.0 - float(distance)))
            results.append(SearchResult(document=doc, score=score, match_type=MatchType.VECTOR))
        return results

    def delete_by_content_id(self, content_type: ContentType, content_id: str) -> None:
        """Remove the vector of one document. Missing documents are ignored."""
        self._collection.delete(
            where={
                "$and": [
                    {"content_type": content_type.value},
                    {"content_id": content_id},
                ]
            }
        )

    def delete_by_user(self, user_id: str, content_type: ContentType | None = None) -> None:
        """Remove a user's vectors, optionally only one content type."""
        where: dict[str, Any] = {"user_id": user_id}
        if content_type is not None:
            where = {"$and": [{"user_id": user_id}, {"content_type": content_type.value}]}
        self._collection.delete(where=where)

    def get_by_content_id(self, content_type: ContentType, content_id: str) -> Document | None:
        """Look up an indexed document by its source identity."""
        raw = self._collection.get(
            ids=[_document_id(content_type, content_id)],
            include=["documents", "metadatas"],
        )
        ids = raw.get("ids") or []
        if not ids:
            return None
        metadatas = raw.get("metadatas") or [{}]
        documents = raw.get("documents") or [""]
        return self._to_document(metadatas[0] or {}, documents[0] or "")

    def stats(self, user_id: str | None = None) -> IndexStats:
        """Document counts and last indexing time, for one user or all."""
        raw = self._collection.get(
            where={"user_id": user_id} if user_id else None,
            include=["metadatas"],
        )
        by_content_type: dict[str, int] = {}
        by_user: dict[str, int] = {}
        last_indexed: datetime | None = None

        for metadata in raw.get("metadatas") or []:
            metadata = metadata or {}
            content_type = str(metadata.get("content_type", ""))
            owner = str(metadata.get("user_id", ""))
            by_content_type[content_type] = by_content_type.get(content_type, 0) + 1
            by_user[owner] = by_user.get(owner, 0) + 1
            indexed_at = _parse_datetime(metadata.get("indexed_at"))
            if indexed_at and (last_indexed is None or indexed_at > last_indexed):
                last_indexed = indexed_at

        return IndexStats(
            total_documents=sum(by_content_type.values()),
            by_content_type=by_content_type,
            by_user=by_user,
            last_indexed_at=last_indexed,
            embedding_model=self.model,
            embedding_dimension=self.dimension,
        )

    def _to_document(self, metadata: dict[str, Any], content: str) -> Document | None:
        try:
            content_type = ContentType(metadata.get("content_type", ""))
        except ValueError:
            logger.warning(f"Skipping vector with unknown content type: {metadata!r}")
            return None
        return Document(
            content_id=str(metadata.get("content_id", "")),
            content_type=content_type,
            user_id=str(metadata.get("user_id", "")),
            title=str(metadata.get("title", "")),
            content=content or "",
            metadata={
                key: str(value)
                for key, value in metadata.items()
                if key not in _RESERVED_KEYS and value is not None
            },
            created_at=_parse_datetime(metadata.get("created_at"))
            or datetime.now(timezone.utc),
        )

    def close(self) -> None:
        """Release the chromadb client and its file handles."""
        if self._client is not None:
            try:
                if hasattr(self._client, "_identifier_to_system"):
                    for system in list(self._client._identifier_to_system.values()):
                        if hasattr(system, "stop"):
                            system.stop()
            except Exception as e:
                logger.debug(f"Ignoring error while stopping chromadb: {e}")

        self._collection = None
        self._client = None
        gc.collect()
