"""LLM client and provider resolution."""

from recollect.llm.client import (
    LLMAuthenticationError,
    LLMClient,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
)
from recollect.llm.providers import (
    AIProviderNotConfiguredError,
    ProviderConfig,
    ProviderRegistry,
    ProviderResolver,
    ProviderType,
    SQLiteProviderRegistry,
)

__all__ = [
    "AIProviderNotConfiguredError",
    "LLMAuthenticationError",
    "LLMClient",
    "LLMConnectionError",
    "LLMError",
    "LLMRateLimitError",
    "ProviderConfig",
    "ProviderRegistry",
    "ProviderResolver",
    "ProviderType",
    "SQLiteProviderRegistry",
]
