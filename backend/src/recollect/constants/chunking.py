"""Text chunking and token estimation.

The embedding model uses a BERT-style tokenizer with a hard input limit.
We never run the real tokenizer; token counts are a conservative heuristic
over words and punctuation, and chunk sizes stay well below the hard limit.
"""

# =============================================================================
# Token Limits
# =============================================================================
# HARD_MAX_TOKENS is the embedding model's input limit. Any finalized chunk
# above it is truncated. SAFE_MAX_TOKENS is the default truncation target
# when a caller does not supply one.

HARD_MAX_TOKENS = 512
SAFE_MAX_TOKENS = 480

# =============================================================================
# Chunk Sizing
# =============================================================================
# Chunks are packed sentence by sentence up to DEFAULT_CHUNK_TOKENS. Each new
# chunk is seeded with the tail of the previous one (max_tokens divided by
# OVERLAP_DIVISOR) so a fact split across a boundary is still retrievable.
# A trailing chunk smaller than MIN_CHUNK_TOKENS carries too little signal
# and is dropped.

DEFAULT_CHUNK_TOKENS = 450
OVERLAP_DIVISOR = 10
MIN_CHUNK_TOKENS = 20

# =============================================================================
# Token Estimation Weights
# =============================================================================
# Short words are one token, medium words are often split in two, long words
# break into roughly one subword per LONG_WORD_CHARS_PER_TOKEN characters and
# digit runs into one token per DIGIT_CHARS_PER_TOKEN digits. The total is
# inflated by TOKEN_SAFETY_MARGIN.

SHORT_WORD_MAX_CHARS = 4
MEDIUM_WORD_MAX_CHARS = 8
MEDIUM_WORD_TOKENS = 1.3
LONG_WORD_CHARS_PER_TOKEN = 5.0
DIGIT_CHARS_PER_TOKEN = 2
TOKEN_SAFETY_MARGIN = 1.1

# =============================================================================
# Truncation
# =============================================================================
# Truncated text is cut back to the last sentence end when that end falls
# past the given fraction of the kept text. EMBEDDING_MAX_CHARS is the
# character cap applied to every text sent for embedding.

TRUNCATE_SENTENCE_RATIO = 0.7
EMBEDDING_MAX_CHARS = 1800
EMBEDDING_SENTENCE_RATIO = 0.8
SENTENCE_ENDINGS = (". ", "! ", "? ")
