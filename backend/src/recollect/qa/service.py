"""Question answering over personal data, the web, or both."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from recollect.config import AskConfig, Config, ConfigError, load_settings
from recollect.constants.ask import WEB_SCORE_STEP
from recollect.llm.client import LLMError
from recollect.llm.providers import ProviderResolver
from recollect.qa.prompts import (
    DIRECT_ANSWER_TEMPLATE,
    INTERNET_ANSWER_TEMPLATE,
    MEMORIES_ANSWER_TEMPLATE,
    NO_CONTEXT_ANSWER,
    NO_MEMORIES_ANSWER,
    NO_WEB_RESULTS_ANSWER,
    WEB_SEARCH_UNAVAILABLE_ANSWER,
    get_hybrid_answer_prompt,
    get_query_generation_prompt,
)
from recollect.qa.schemas import AskMode, AskRequest, AskResponse
from recollect.search.schemas import (
    ContentType,
    Document,
    MatchType,
    SearchRequest,
    SearchResult,
)
from recollect.search.service import SearchService
from recollect.web.scraper import ScrapeError, WebScraper
from recollect.web.search import WebSearchClient, WebSearchError

logger = logging.getLogger(__name__)


def format_memories_context(results: list[SearchResult]) -> str:
    """Render search results as numbered [Todo n] and [Memory n] blocks."""
    parts: list[str] = []
    for i, result in enumerate(results, start=1):
        doc = result.document
        if doc.content_type == ContentType.TODO:
            item = f"[Todo {i}] {doc.title}"
            if doc.content:
                item += "\n  Description: " + doc.content
            if "status" in doc.metadata:
                item += "\n  Status: " + doc.metadata["status"]
            if "due_date" in doc.metadata:
                item += "\n  Due: " + doc.metadata["due_date"]
        elif doc.content_type == ContentType.MEMORY:
            if doc.title:
                item = f"[Memory {i} - {doc.title}] {doc.content}"
            else:
                item = f"[Memory {i}] {doc.content}"
            if "category" in doc.metadata:
                item += "\n  Category: " + doc.metadata["category"]
            if doc.metadata.get("summary"):
                item += "\n  Summary: " + doc.metadata["summary"]
        else:
            continue
        parts.append(item)
    return "\n\n".join(parts)


def parse_search_queries(response: str, question: str) -> list[str]:
    """Extract the JSON array of queries from free-form model output.

    The text between the first "[" and the last "]" is parsed. Anything that
    is not a non-empty list of strings yields [question].
    """
    text = response.strip()
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        try:
            queries = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            queries = None
        if isinstance(queries, list):
            cleaned = [q.strip() for q in queries if isinstance(q, str) and q.strip()]
            if cleaned:
                return cleaned
    logger.info("Failed to parse search queries, using original question")
    return [question]


class AskService:
    """Answers a user's question in one of four modes.

    memories: context from hybrid search over the user's todos and memories.
    internet: context from scraped web search results.
    hybrid: personal context plus web research on model-generated queries.
    llm: the question goes to the model with no context.

    Retrieval problems degrade to canned answers or less context. Failures
    of the answering model propagate.
    """

    def __init__(
        self,
        search_service: SearchService,
        resolver: ProviderResolver,
        web_search: WebSearchClient | None = None,
        scraper: WebScraper | None = None,
        settings: AskConfig | None = None,
    ) -> None:
        self._search = search_service
        self._resolver = resolver
        self._web_search = web_search
        self._scraper = scraper or WebScraper()
        if settings is None:
            try:
                settings = load_settings().ask
            except (ValueError, OSError, ConfigError):
                # Settings not available
                settings = Config().ask
        self._settings = settings

    async def ask(self, user_id: str, request: AskRequest) -> AskResponse:
        """Answer a question.

        Args:
            user_id: Asking user; selects data and AI provider.
            request: Question, mode and context size.

        Returns:
            The answer with the sources it was built from.

        Raises:
            AIProviderNotConfiguredError: If no AI provider is available.
            LLMError: If the model call fails.
        """
        start = time.perf_counter()
        max_context = request.max_context if request.max_context > 0 else self._settings.max_context
        logger.info(f"Ask: user={user_id}, mode={request.mode.value}, question={request.question!r}")

        def respond(answer: str, sources: list[SearchResult] | None = None) -> AskResponse:
            return AskResponse(
                answer=answer,
                sources=sources or [],
                question=request.question,
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )

        if request.mode == AskMode.LLM:
            prompt = DIRECT_ANSWER_TEMPLATE.render(question=request.question)
            return respond(await self._generate(user_id, prompt))

        if request.mode == AskMode.INTERNET:
            try:
                context, sources = await self._internet_context(request.question)
            except WebSearchError as e:
                logger.warning(f"Internet search error: {e}")
                return respond(WEB_SEARCH_UNAVAILABLE_ANSWER)
            if not context:
                return respond(NO_WEB_RESULTS_ANSWER)
            prompt = INTERNET_ANSWER_TEMPLATE.render(context=context, question=request.question)
            return respond(await self._generate(user_id, prompt), sources)

        if request.mode == AskMode.HYBRID:
            return await self._ask_hybrid(user_id, request, max_context, respond)

        context, sources = await self._memories_context(user_id, request, max_context)
        if not context and not sources:
            return respond(NO_MEMORIES_ANSWER)
        prompt = MEMORIES_ANSWER_TEMPLATE.render(context=context, question=request.question)
        return respond(await self._generate(user_id, prompt), sources)

    async def _ask_hybrid(
        self,
        user_id: str,
        request: AskRequest,
        max_context: int,
        respond: Callable[..., AskResponse],
    ) -> AskResponse:
        memories_context, memory_sources = await self._memories_context(
            user_id, request, max_context
        )
        logger.info(f"Hybrid step 1: {len(memory_sources)} memory sources")

        queries = await self._generate_search_queries(user_id, request.question, memories_context)
        logger.info(f"Hybrid step 2: queries {queries}")

        web_parts: list[str] = []
        web_sources: list[SearchResult] = []
        for query in queries[: self._settings.max_web_queries]:
            try:
                web_context, sources = await self._internet_context(query)
            except WebSearchError as e:
                logger.warning(f"Hybrid web search failed for {query!r}: {e}")
                continue
            if web_context:
                web_parts.append(f"\n--- Search: {query} ---\n{web_context}\n")
                web_sources.extend(sources)
        web_context = "".join(web_parts)
        logger.info(f"Hybrid step 3: {len(web_sources)} web sources from {len(queries)} queries")

        if memories_context and web_context:
            context = f"YOUR PERSONAL DATA:\n{memories_context}\n\nWEB RESEARCH:\n{web_context}"
        else:
            context = memories_context or web_context
        sources = memory_sources + web_sources

        if not context and not sources:
            return respond(NO_CONTEXT_ANSWER)

        has_web = any(s.document.content_type == ContentType.WEB for s in sources)
        has_memories = any(s.document.content_type != ContentType.WEB for s in sources)
        prompt = get_hybrid_answer_prompt(request.question, context, has_memories, has_web)
        return respond(await self._generate(user_id, prompt), sources)

    async def _memories_context(
        self, user_id: str, request: AskRequest, max_context: int
    ) -> tuple[str, list[SearchResult]]:
        search_request = SearchRequest(
            query=request.question,
            limit=max_context,
            content_types=request.content_types,
        )
        try:
            response = await self._search.search(user_id, search_request)
        except Exception as e:
            logger.warning(f"Memory search error: {e}")
            return "", []
        if not response.results:
            return "", []
        return format_memories_context(response.results), response.results

    async def _internet_context(self, query: str) -> tuple[str, list[SearchResult]]:
        """Search the web and scrape results until enough pages succeed.

        Returns:
            Context text and web sources; both empty when nothing was usable.

        Raises:
            WebSearchError: If web search is not configured or fails.
        """
        if self._web_search is None:
            raise WebSearchError("web search not configured")

        hits = await self._web_search.search(query)
        parts: list[str] = []
        sources: list[SearchResult] = []

        for i, hit in enumerate(hits):
            if len(parts) >= self._settings.scrape_count:
                break
            try:
                page = await self._scraper.fetch(hit.url)
            except ScrapeError as e:
                logger.warning(f"Failed to scrape {hit.url}: {e}")
                continue

            title = page.title or hit.title
            content = page.content or hit.snippet
            parts.append(f"[Web {i + 1} - {title}]\nURL: {hit.url}\n{content}")
            sources.append(
                SearchResult(
                    document=Document(
                        content_id=hit.url,
                        content_type=ContentType.WEB,
                        title=title,
                        content=content,
                        metadata={"url": hit.url, "source": "web"},
                    ),
                    score=max(0.0, 1.0 - i * WEB_SCORE_STEP),
                    match_type=MatchType.WEB,
                )
            )

        return "\n\n".join(parts), sources

    async def _generate_search_queries(
        self, user_id: str, question: str, notes: str
    ) -> list[str]:
        prompt = get_query_generation_prompt(question, notes)
        try:
            client = self._resolver.client_for(user_id)
            response = await client.generate_with_json(prompt)
        except LLMError as e:
            logger.warning(f"Query generation failed, using original question: {e}")
            return [question]
        return parse_search_queries(response, question)

    async def _generate(self, user_id: str, prompt: str) -> str:
        client = self._resolver.client_for(user_id)
        return await client.generate(prompt)
