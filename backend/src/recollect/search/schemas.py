"""Search request, response and document schemas."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from recollect.constants.search import DEFAULT_SEARCH_LIMIT, DEFAULT_VECTOR_WEIGHT


class ContentType(str, Enum):
    """Kind of content a document was derived from."""

    TODO = "todo"
    MEMORY = "memory"
    WEB = "web"


class MatchType(str, Enum):
    """Which retrieval path produced a result."""

    VECTOR = "vector"
    KEYWORD = "keyword"
    HYBRID = "hybrid"
    WEB = "web"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """Indexed view of a todo, memory or web page.

    Derived data: rebuilt from the SQL store on every (re)index.
    """

    content_id: str = Field(..., description="ID of the source row or URL for web pages")
    content_type: ContentType
    user_id: str = ""
    title: str = ""
    content: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def key(self) -> str:
        """Identity used to match the same document across search branches."""
        return f"{self.content_type.value}-{self.content_id}"


class SearchResult(BaseModel):
    """A ranked document with provenance."""

    document: Document
    score: float = Field(..., description="Higher is better; scale depends on match_type")
    match_type: MatchType
    highlights: list[str] = Field(default_factory=list)


class SearchRequest(BaseModel):
    """Hybrid search request."""

    query: str = Field(..., min_length=1)
    limit: int = Field(DEFAULT_SEARCH_LIMIT, description="Max results; non-positive uses default")
    vector_weight: float = Field(
        DEFAULT_VECTOR_WEIGHT,
        le=1.0,
        description="Weight of vector results in fusion; non-positive uses default",
    )
    content_types: list[ContentType] = Field(default_factory=list)


class SearchResponse(BaseModel):
    """Hybrid search response."""

    results: list[SearchResult]
    query: str
    total_count: int
    elapsed_ms: float
