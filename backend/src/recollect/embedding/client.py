"""Client for OpenAI-compatible embedding endpoints (NVIDIA NIM by default)."""

import logging
from enum import Enum
from typing import Any

import httpx

from recollect.constants.chunking import EMBEDDING_MAX_CHARS
from recollect.constants.embedding import (
    DEFAULT_EMBEDDING_DIMENSION,
    DEFAULT_EMBEDDING_MODEL,
    EMBEDDING_TIMEOUT_SECONDS,
    MIN_EMBED_TEXT_CHARS,
)
from recollect.embedding.ratelimit import RateLimiter
from recollect.indexing.text import sanitize_text, truncate_for_embedding

logger = logging.getLogger(__name__)


class InputType(str, Enum):
    """How the asymmetric embedding model should encode the text."""

    PASSAGE = "passage"
    QUERY = "query"


class EmbeddingError(Exception):
    """Raised when the embedding provider fails or returns no vector."""

    pass


class EmbeddingNotConfiguredError(EmbeddingError):
    """Raised when no embedding endpoint or API key is configured."""

    pass


class EmbeddingInputError(EmbeddingError):
    """Raised when text is too short to embed after sanitization."""

    pass


def prepare_document_text(
    title: str,
    content: str,
    category: str | None = None,
    tags: list[str] | None = None,
) -> str:
    """Combine document fields into the passage text that gets embedded."""
    parts: list[str] = []
    if title:
        parts.append(title)
    if content:
        parts.append(content)
    if category:
        parts.append(f"Category: {category}")
    if tags:
        parts.append(f"Tags: {', '.join(tags)}")
    return "\n".join(parts)


class EmbeddingClient:
    """Rate-limited embedding client.

    Every request passes through a RateLimiter. Share one limiter between
    all clients talking to the same provider to keep the process under its
    quota.
    """

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimension: int = DEFAULT_EMBEDDING_DIMENSION,
        rate_limiter: RateLimiter | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = EMBEDDING_TIMEOUT_SECONDS,
        max_input_chars: int = EMBEDDING_MAX_CHARS,
        min_text_chars: int = MIN_EMBED_TEXT_CHARS,
    ) -> None:
        """Initialize the embedding client.

        Args:
            base_url: Provider base URL, e.g. https://integrate.api.nvidia.com/v1.
            api_key: Bearer token for the provider.
            model: Embedding model name.
            dimension: Expected vector length, reported to the vector index.
            rate_limiter: Shared limiter. A private 40 RPM limiter if None.
            http_client: Optional preconfigured httpx client.
            timeout: Request timeout in seconds when no client is given.
            max_input_chars: Character cap applied before sending.
            min_text_chars: Shortest sanitized text accepted.
        """
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.model = model
        self.dimension = dimension
        self.rate_limiter = rate_limiter or RateLimiter()
        self._http = http_client
        self._timeout = timeout
        self._max_input_chars = max_input_chars
        self._min_text_chars = min_text_chars

    @property
    def is_configured(self) -> bool:
        """Whether both an endpoint and an API key are present."""
        return bool(self.base_url and self.api_key)

    async def embed(self, text: str, input_type: InputType) -> list[float]:
        """Embed a single text.

        Args:
            text: Raw text; sanitized and truncated before sending.
            input_type: Passage for stored content, query for search input.

        Returns:
            The embedding vector.

        Raises:
            EmbeddingNotConfiguredError: If endpoint or key is missing.
            EmbeddingInputError: If sanitized text is too short.
            EmbeddingError: On transport failures or bad responses.
        """
        if not self.is_configured:
            raise EmbeddingNotConfiguredError("Embedding service is not configured")

        cleaned = sanitize_text(text)
        if len(cleaned) < self._min_text_chars:
            raise EmbeddingInputError(
                f"Text too short to embed ({len(cleaned)} chars, "
                f"minimum {self._min_text_chars})"
            )
        cleaned = truncate_for_embedding(cleaned, self._max_input_chars)

        payload = {
            "model": self.model,
            "input": cleaned,
            "input_type": input_type.value,
            "encoding_format": "float",
        }

        await self.rate_limiter.acquire()
        data = await self._post("/embeddings", payload)

        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            raise EmbeddingError("Embedding response contained no vector") from e
        if not embedding:
            raise EmbeddingError("Embedding response contained an empty vector")
        return [float(value) for value in embedding]

    async def embed_passage(self, text: str) -> list[float]:
        """Embed stored content."""
        return await self.embed(text, InputType.PASSAGE)

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query."""
        return await self.embed(text, InputType.QUERY)

    async def embed_batch(
        self, texts: list[str], input_type: InputType = InputType.PASSAGE
    ) -> list[list[float]]:
        """Embed texts one request at a time, each spaced by the limiter."""
        return [await self.embed(text, input_type) for text in texts]

    async def health_check(self) -> bool:
        """Embed a probe string to check the provider is reachable."""
        try:
            await self.embed("health check probe", InputType.QUERY)
        except EmbeddingError as e:
            logger.warning(f"Embedding health check failed: {e}")
            return False
        return True

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            if self._http is not None:
                response = await self._http.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if response.status_code != 200:
            raise EmbeddingError(
                f"Embedding API error (status {response.status_code}): {response.text[:500]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise EmbeddingError("Embedding API returned invalid JSON") from e
