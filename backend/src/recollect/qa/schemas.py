"""Ask request and response schemas."""

from enum import Enum

from pydantic import BaseModel, Field

from recollect.constants.ask import DEFAULT_MAX_CONTEXT
from recollect.search.schemas import ContentType, SearchResult


class AskMode(str, Enum):
    """Where the answer's context comes from."""

    MEMORIES = "memories"
    INTERNET = "internet"
    HYBRID = "hybrid"
    LLM = "llm"


class AskRequest(BaseModel):
    """Question to answer for a user."""

    question: str = Field(..., min_length=1)
    mode: AskMode = AskMode.MEMORIES
    max_context: int = Field(
        DEFAULT_MAX_CONTEXT, description="Documents used as context; non-positive uses default"
    )
    content_types: list[ContentType] = Field(default_factory=list)


class AskResponse(BaseModel):
    """Answer with the sources it was grounded on."""

    answer: str
    sources: list[SearchResult] = Field(default_factory=list)
    question: str
    elapsed_ms: float
