"""Ask pipeline configuration.

Ask answers a question from the user's own data, from live web results,
from both (hybrid), or directly from the language model.
"""

# =============================================================================
# Context Size
# =============================================================================

DEFAULT_MAX_CONTEXT = 5

# =============================================================================
# Web Research
# =============================================================================
# Pages are scraped in search-result order until SCRAPE_SUCCESS_TARGET
# succeed. Scraped text is capped at SCRAPE_MAX_CHARS and response bodies at
# SCRAPE_MAX_BYTES. Web sources score 1.0 minus WEB_SCORE_STEP per rank.

WEB_RESULT_LIMIT = 10
WEB_SEARCH_TIMEOUT_SECONDS = 15.0
SCRAPE_TIMEOUT_SECONDS = 15.0
SCRAPE_SUCCESS_TARGET = 2
SCRAPE_MAX_CHARS = 5000
SCRAPE_MAX_BYTES = 1024 * 1024
WEB_SCORE_STEP = 0.1

# =============================================================================
# Hybrid Mode
# =============================================================================
# The model proposes focused web queries; at most MAX_WEB_QUERIES run.

MAX_WEB_QUERIES = 3
