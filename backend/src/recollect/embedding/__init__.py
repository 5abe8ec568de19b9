"""Embedding client and rate limiting."""

from recollect.embedding.client import (
    EmbeddingClient,
    EmbeddingError,
    EmbeddingInputError,
    EmbeddingNotConfiguredError,
    InputType,
    prepare_document_text,
)
from recollect.embedding.ratelimit import RateLimiter

__all__ = [
    "EmbeddingClient",
    "EmbeddingError",
    "EmbeddingInputError",
    "EmbeddingNotConfiguredError",
    "InputType",
    "RateLimiter",
    "prepare_document_text",
]
