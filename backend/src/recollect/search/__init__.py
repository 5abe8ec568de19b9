"""Hybrid vector and keyword search."""

from recollect.search.schemas import (
    ContentType,
    Document,
    MatchType,
    SearchRequest,
    SearchResponse,
    SearchResult,
)

__all__ = [
    "ContentType",
    "Document",
    "MatchType",
    "SearchRequest",
    "SearchResponse",
    "SearchResult",
]
