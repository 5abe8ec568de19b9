"""Indexing result schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class IndexResponse(BaseModel):
    """Outcome of a backfill run."""

    indexed: int = 0
    skipped: int = 0
    errors: int = 0
    elapsed_ms: float = 0.0


class IndexStats(BaseModel):
    """Vector index statistics for one user."""

    total_documents: int = 0
    by_content_type: dict[str, int] = Field(default_factory=dict)
    by_user: dict[str, int] = Field(default_factory=dict)
    last_indexed_at: datetime | None = None
    embedding_model: str = ""
    embedding_dimension: int = 0
