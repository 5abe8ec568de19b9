"""Fetching web pages and extracting their readable text."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from recollect.constants.ask import SCRAPE_MAX_BYTES, SCRAPE_MAX_CHARS, SCRAPE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_SKIPPED_TAGS = ["script", "style", "nav", "header", "footer", "aside", "noscript"]
_USER_AGENT = "Mozilla/5.0 (compatible; Recollect/0.1)"
_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class ScrapeError(Exception):
    """Raised when a page cannot be fetched."""

    pass


@dataclass
class ScrapedPage:
    """Text extracted from a web page."""

    url: str
    title: str = ""
    description: str = ""
    content: str = ""


def truncate_text(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def extract_page(url: str, html: str, max_chars: int = SCRAPE_MAX_CHARS) -> ScrapedPage:
    """Pull title, meta description and body text out of an HTML document.

    Navigation, scripts and other page furniture are removed before the text
    is collected, and whitespace is collapsed to single spaces.
    """
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()

    description = ""
    meta = soup.find("meta", attrs={"name": ["description", "Description"]})
    if meta is not None and meta.get("content"):
        description = str(meta["content"]).strip()

    for tag in soup(_SKIPPED_TAGS):
        tag.decompose()
    body = soup.body or soup
    text = " ".join(body.get_text(separator=" ", strip=True).split())

    return ScrapedPage(
        url=url,
        title=title,
        description=description,
        content=truncate_text(text, max_chars),
    )


class WebScraper:
    """Downloads pages with a size cap and extracts their text."""

    def __init__(
        self,
        timeout: float = SCRAPE_TIMEOUT_SECONDS,
        max_bytes: int = SCRAPE_MAX_BYTES,
        max_chars: int = SCRAPE_MAX_CHARS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._max_chars = max_chars
        self._http = http_client

    async def fetch(self, url: str) -> ScrapedPage:
        """Fetch a page and extract its text.

        Args:
            url: Page to fetch. Redirects are followed.

        Returns:
            The extracted page, content capped at max_chars.

        Raises:
            ScrapeError: On transport failures or non-200 responses.
        """
        logger.info(f"Fetching URL: {url}")
        if self._http is not None:
            raw, encoding = await self._download(self._http, url)
        else:
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                raw, encoding = await self._download(client, url)

        html = raw.decode(encoding or "utf-8", errors="replace")
        page = extract_page(url, html, self._max_chars)
        logger.info(f"Extracted {url}: title {page.title!r}, {len(page.content)} chars")
        return page

    async def _download(self, client: httpx.AsyncClient, url: str) -> tuple[bytes, str | None]:
        headers = {"User-Agent": _USER_AGENT, "Accept": _ACCEPT}
        try:
            async with client.stream("GET", url, headers=headers) as response:
                if response.status_code != 200:
                    raise ScrapeError(f"HTTP error: {response.status_code}")
                buffer = bytearray()
                async for piece in response.aiter_bytes():
                    buffer.extend(piece)
                    if len(buffer) >= self._max_bytes:
                        break
                return bytes(buffer[: self._max_bytes]), response.encoding
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise ScrapeError(f"Failed to fetch {url}: {e}") from e
