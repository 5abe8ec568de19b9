"""Web search through SearXNG instances."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

import httpx

from recollect.constants.ask import WEB_RESULT_LIMIT, WEB_SEARCH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class WebSearchError(Exception):
    """Raised when a web search request fails."""

    pass


class WebSearchNotConfiguredError(WebSearchError):
    """Raised when no SearXNG instance is configured."""

    pass


@dataclass
class WebSearchHit:
    """A single search engine result."""

    title: str
    url: str
    snippet: str = ""


class WebSearchClient:
    """Queries the SearXNG JSON API, rotating across configured instances."""

    def __init__(
        self,
        base_urls: list[str] | tuple[str, ...],
        timeout: float = WEB_SEARCH_TIMEOUT_SECONDS,
        max_results: int = WEB_RESULT_LIMIT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_urls = [url.rstrip("/") for url in base_urls if url]
        self._timeout = timeout
        self._max_results = max_results
        self._http = http_client
        self._rotation = itertools.cycle(self.base_urls) if self.base_urls else None

    @property
    def is_configured(self) -> bool:
        return bool(self.base_urls)

    def _next_base_url(self) -> str:
        if self._rotation is None:
            raise WebSearchNotConfiguredError("SearXNG not configured")
        return next(self._rotation)

    async def search(self, query: str) -> list[WebSearchHit]:
        """Search the web.

        Each call goes to the next instance in round-robin order.

        Args:
            query: Search terms.

        Returns:
            At most max_results hits in engine order.

        Raises:
            WebSearchNotConfiguredError: If no instance is configured.
            WebSearchError: On transport failures, non-200 responses or
                unreadable JSON.
        """
        base_url = self._next_base_url()
        url = f"{base_url}/search"
        params = {"q": query, "format": "json"}
        headers = {"Accept": "application/json"}
        logger.info(f"Searching via SearXNG {base_url}: {query!r}")

        try:
            if self._http is not None:
                response = await self._http.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise WebSearchError(f"SearXNG request failed: {e}") from e

        if response.status_code != 200:
            raise WebSearchError(
                f"SearXNG error: {response.status_code} - {response.text[:500]}"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise WebSearchError("SearXNG returned invalid JSON") from e

        hits = [
            WebSearchHit(
                title=item.get("title") or "",
                url=item.get("url") or "",
                snippet=item.get("content") or "",
            )
            for item in (data.get("results") or [])[: self._max_results]
        ]
        logger.info(f"SearXNG returned {len(hits)} results")
        return hits
