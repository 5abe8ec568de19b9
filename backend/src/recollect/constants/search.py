"""Hybrid search configuration.

Search runs a vector branch (chromadb) and a keyword branch (SQLite FTS5)
concurrently, then fuses both ranked lists with weighted Reciprocal Rank
Fusion.
"""

# =============================================================================
# Result Limits
# =============================================================================
# Each branch over-fetches CANDIDATE_MULTIPLIER times the requested limit so
# fusion has enough candidates to reorder.

DEFAULT_SEARCH_LIMIT = 10
CANDIDATE_MULTIPLIER = 2

# =============================================================================
# Rank Fusion
# =============================================================================
# RRF contribution is weight / (RRF_K + rank) with 1-based ranks. The keyword
# branch gets 1 - vector weight.

RRF_K = 60
DEFAULT_VECTOR_WEIGHT = 0.7

# =============================================================================
# Similarity Pre-filter
# =============================================================================
# Vector results are walked in rank order and the list is cut at the first
# result scoring below SIMILARITY_FLOOR_RATIO of the top score or below
# MIN_STEP_RATIO of the previous result.

SIMILARITY_FLOOR_RATIO = 0.85
MIN_STEP_RATIO = 0.8

# =============================================================================
# Branch Execution
# =============================================================================

BRANCH_TIMEOUT_SECONDS = 10.0

# =============================================================================
# Keyword Index
# =============================================================================
# Characters with meaning in FTS5 query syntax are stripped from user input.
# Highlights come from FTS5 snippet() with this many tokens of context.

FTS_SPECIAL_CHARS = '"*-+():?^{}[]~!'
FTS_SNIPPET_TOKENS = 32
HIGHLIGHT_OPEN = "<mark>"
HIGHLIGHT_CLOSE = "</mark>"

# =============================================================================
# Result Cache
# =============================================================================

SEARCH_CACHE_TTL_SECONDS = 300
SEARCH_CACHE_MAX_ENTRIES = 1000
