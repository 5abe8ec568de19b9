"""LLM client configuration.

Default parameters for LLM API calls. These can be overridden per-call
but provide sensible defaults for most use cases.
"""

# =============================================================================
# Generation Defaults
# =============================================================================
# JSON_TEMPERATURE is lower for structured output such as generated search
# queries. A completion request is abandoned after LLM_TIMEOUT_SECONDS.

MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.7
JSON_TEMPERATURE = 0.3
LLM_TIMEOUT_SECONDS = 60.0

# =============================================================================
# Environment Fallback Provider
# =============================================================================
# Used when a user has no default provider of their own.

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"
