"""Retrieval and question answering endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from recollect.api.deps import (
    get_ask_service,
    get_indexing_service,
    get_search_service,
    get_settings,
    get_user_id,
)
from recollect.config import Config
from recollect.embedding.client import EmbeddingNotConfiguredError
from recollect.indexing.schemas import IndexResponse, IndexStats
from recollect.indexing.service import IndexingService
from recollect.llm.client import LLMError
from recollect.llm.providers import AIProviderNotConfiguredError
from recollect.qa.schemas import AskRequest, AskResponse
from recollect.qa.service import AskService
from recollect.search.schemas import SearchRequest, SearchResponse
from recollect.search.service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rag", tags=["rag"])

_NOT_CONFIGURED_DETAIL = "RAG service not configured. Please configure embedding API settings."


class StatsResponse(BaseModel):
    """Index statistics with the engine's configuration state."""

    configured: bool
    stats: IndexStats


def require_rag_configured(settings: Config = Depends(get_settings)) -> None:
    """Reject requests while the embedding provider is not configured.

    Raises:
        HTTPException: 503 if retrieval is disabled or has no API key.
    """
    if not settings.rag_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_NOT_CONFIGURED_DETAIL,
        )


@router.post(
    "/search",
    response_model=SearchResponse,
    dependencies=[Depends(require_rag_configured)],
)
async def search(
    request: SearchRequest,
    user_id: str = Depends(get_user_id),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """Hybrid semantic and keyword search over the user's todos and memories."""
    return await service.search(user_id, request)


@router.post(
    "/ask",
    response_model=AskResponse,
    dependencies=[Depends(require_rag_configured)],
)
async def ask(
    request: AskRequest,
    user_id: str = Depends(get_user_id),
    service: AskService = Depends(get_ask_service),
) -> AskResponse:
    """Answer a question from personal data, the web, both, or the model alone."""
    try:
        return await service.ask(user_id, request)
    except AIProviderNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"AI provider not configured: {e}",
        ) from e
    except LLMError as e:
        logger.error(f"Failed to answer question for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to answer question",
        ) from e


@router.post(
    "/index",
    response_model=IndexResponse,
    dependencies=[Depends(require_rag_configured)],
)
async def index_all(
    user_id: str = Depends(get_user_id),
    service: IndexingService = Depends(get_indexing_service),
) -> IndexResponse:
    """Index the user's todos and memories that are not indexed yet."""
    try:
        return await service.index_all_for_user(user_id)
    except EmbeddingNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_NOT_CONFIGURED_DETAIL,
        ) from e


@router.get("/stats", response_model=StatsResponse)
async def stats(
    user_id: str = Depends(get_user_id),
    service: IndexingService = Depends(get_indexing_service),
    settings: Config = Depends(get_settings),
) -> StatsResponse:
    """Vector index statistics for the user."""
    return StatsResponse(configured=settings.rag_configured, stats=service.stats(user_id))
