"""Web search and page scraping used by the internet and hybrid ask modes."""

from recollect.web.scraper import ScrapedPage, ScrapeError, WebScraper, extract_page
from recollect.web.search import (
    WebSearchClient,
    WebSearchError,
    WebSearchHit,
    WebSearchNotConfiguredError,
)

__all__ = [
    "ScrapeError",
    "ScrapedPage",
    "WebScraper",
    "WebSearchClient",
    "WebSearchError",
    "WebSearchHit",
    "WebSearchNotConfiguredError",
    "extract_page",
]
