"""Embedding provider defaults.

The default provider is an NVIDIA NIM endpoint speaking the OpenAI-compatible
/embeddings protocol, with an asymmetric model that embeds stored passages
and search queries differently.
"""

# =============================================================================
# Provider
# =============================================================================

DEFAULT_EMBEDDING_BASE_URL = "https://integrate.api.nvidia.com/v1"
DEFAULT_EMBEDDING_MODEL = "nvidia/nv-embedqa-e5-v5"
DEFAULT_EMBEDDING_DIMENSION = 1024

# =============================================================================
# Rate Limiting
# =============================================================================
# The free NIM tier allows 40 requests per minute. All callers share one
# limiter, so the whole process stays under the quota.

DEFAULT_RPM_LIMIT = 40

# =============================================================================
# Request Limits
# =============================================================================
# Text shorter than MIN_EMBED_TEXT_CHARS after sanitization is rejected
# before any network call.

EMBEDDING_TIMEOUT_SECONDS = 30.0
MIN_EMBED_TEXT_CHARS = 10
