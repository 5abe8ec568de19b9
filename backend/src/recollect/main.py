"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Logging constants defined here (not in constants/) because logging.basicConfig()
# must run before any module imports that might create loggers.
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    level=logging.INFO,
)

# Unify uvicorn loggers with app format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(uvicorn_logger_name)
    uvicorn_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    uvicorn_logger.addHandler(handler)

from recollect import __version__  # noqa: E402
from recollect.api import deps  # noqa: E402
from recollect.api.deps import get_settings  # noqa: E402
from recollect.api.routers import rag  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler for startup and shutdown events.

    On startup the data directory is created and the configuration state is
    logged. On shutdown pending background index syncs are awaited.
    """
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Data directory: {settings.data_dir}")

    if settings.rag_configured:
        logger.info(f"RAG enabled with embedding model {settings.embedding_model}")
    else:
        logger.warning("RAG not configured - set NIM_API_KEY to enable search and ask")
    if not settings.web_search_configured:
        logger.info("Web search not configured - internet and hybrid modes will degrade")

    yield

    if deps._indexing_service is not None:
        await deps._indexing_service.drain()


app = FastAPI(
    title="Recollect",
    description="Hybrid retrieval and question answering over personal notes and todos",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health_check() -> dict[str, str | bool]:
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "rag_configured": settings.rag_configured,
        "web_search_configured": settings.web_search_configured,
    }


# Include routers
app.include_router(rag.router)
