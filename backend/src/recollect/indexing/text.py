"""Text normalization and token estimation for embedding input.

The embedding model only sees plain text, so mathematical notation, Greek
letters and arrows are spelled out in ASCII and invisible control characters
are removed before chunking or embedding.
"""

import re
import unicodedata

from recollect.constants.chunking import (
    DIGIT_CHARS_PER_TOKEN,
    EMBEDDING_MAX_CHARS,
    EMBEDDING_SENTENCE_RATIO,
    LONG_WORD_CHARS_PER_TOKEN,
    MEDIUM_WORD_MAX_CHARS,
    MEDIUM_WORD_TOKENS,
    SAFE_MAX_TOKENS,
    SENTENCE_ENDINGS,
    SHORT_WORD_MAX_CHARS,
    TOKEN_SAFETY_MARGIN,
    TRUNCATE_SENTENCE_RATIO,
)

_REMOVED_CHARS = {
    "\x00": "",
    "\ufffd": "",
    "\u200b": "",
    "\u200c": "",
    "\u200d": "",
    "\ufeff": "",
    "\u2028": " ",
    "\u2029": " ",
}

_MATH_SYMBOLS = {
    "√": "sqrt",
    "∑": "sum",
    "∏": "product",
    "∫": "integral",
    "∂": "d",
    "∇": "grad",
    "∈": " in ",
    "∉": " not in ",
    "⊂": " subset ",
    "⊆": " subset ",
    "∩": " and ",
    "∪": " or ",
    "≤": "<=",
    "≥": ">=",
    "≠": "!=",
    "≈": "~=",
    "∞": "inf",
    "±": "+/-",
    "×": "x",
    "÷": "/",
    "·": "*",
    "°": " deg",
}

_GREEK_LETTERS = {
    "α": "alpha",
    "β": "beta",
    "γ": "gamma",
    "δ": "delta",
    "ε": "epsilon",
    "ζ": "zeta",
    "η": "eta",
    "θ": "theta",
    "ι": "iota",
    "κ": "kappa",
    "λ": "lambda",
    "μ": "mu",
    "ν": "nu",
    "ξ": "xi",
    "π": "pi",
    "ρ": "rho",
    "σ": "sigma",
    "τ": "tau",
    "υ": "upsilon",
    "φ": "phi",
    "χ": "chi",
    "ψ": "psi",
    "ω": "omega",
    "Α": "Alpha",
    "Β": "Beta",
    "Γ": "Gamma",
    "Δ": "Delta",
    "Θ": "Theta",
    "Λ": "Lambda",
    "Σ": "Sigma",
    "Φ": "Phi",
    "Ψ": "Psi",
    "Ω": "Omega",
}

_ARROWS = {
    "→": "->",
    "←": "<-",
    "↔": "<->",
    "⇒": "=>",
    "⇐": "<=",
}

# NFKC already folds most of these; the table catches anything it leaves
_SCRIPT_DIGITS = {
    **{chr(0x2080 + d): str(d) for d in range(10)},
    "⁰": "0",
    "¹": "1",
    "²": "2",
    "³": "3",
    "⁴": "4",
    "⁵": "5",
    "⁶": "6",
    "⁷": "7",
    "⁸": "8",
    "⁹": "9",
}

_REPLACEMENTS = str.maketrans(
    {**_REMOVED_CHARS, **_MATH_SYMBOLS, **_GREEK_LETTERS, **_ARROWS, **_SCRIPT_DIGITS}
)

_KEPT_WHITESPACE = frozenset("\n\t\r ")
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")
_BLANK_LINES = re.compile(r"\n{3,}")
_TOKEN_PATTERN = re.compile(r"\b\w+\b|[^\w\s]")
_DIGITS = re.compile(r"[0-9]+")

_MAX_SANITIZE_PASSES = 4


def _sanitize_once(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = text.translate(_REPLACEMENTS)
    text = "".join(
        ch if ch.isprintable() or ch in _KEPT_WHITESPACE else " " for ch in text
    )
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = _BLANK_LINES.sub("\n\n", text)
    return text.strip()


def sanitize_text(text: str) -> str:
    """Normalize text into a form the embedding model tokenizes cleanly.

    Applies NFKC normalization, spells out math symbols, Greek letters, arrows
    and sub/superscript digits in ASCII, drops zero-width and replacement
    characters, turns other non-printable characters into spaces, collapses
    runs of spaces and tabs, limits blank lines to one, and strips the ends.

    The result is a fixed point: sanitizing it again returns it unchanged.

    Args:
        text: Raw text.

    Returns:
        Sanitized text.
    """
    if not text:
        return ""
    # Removing or spelling out characters can leave a sequence that NFKC
    # composes differently, so repeat until stable
    for _ in range(_MAX_SANITIZE_PASSES):
        cleaned = _sanitize_once(text)
        if cleaned == text:
            break
        text = cleaned
    return text


class TokenCounter:
    """Heuristic token estimator for a BERT-style embedding tokenizer.

    Words of up to four characters count as one token, words up to eight as
    1.3, longer words as one token per five characters, digit runs as one
    token per two digits and each punctuation mark as one token. The total
    carries a 10% safety margin.
    """

    def token_weight(self, text: str) -> float:
        """Raw token weight before the safety margin.

        Weights are additive across texts joined with whitespace, which lets
        the chunker accumulate them without recounting.
        """
        total = 0.0
        for token in _TOKEN_PATTERN.findall(text):
            if _DIGITS.fullmatch(token):
                total += max(1, len(token) // DIGIT_CHARS_PER_TOKEN)
            elif len(token) <= SHORT_WORD_MAX_CHARS:
                total += 1
            elif len(token) <= MEDIUM_WORD_MAX_CHARS:
                total += MEDIUM_WORD_TOKENS
            else:
                total += len(token) / LONG_WORD_CHARS_PER_TOKEN
        return total

    def tokens_for_weight(self, weight: float) -> int:
        """Convert a raw weight into an estimated token count."""
        return int(weight * TOKEN_SAFETY_MARGIN)

    def count_tokens(self, text: str) -> int:
        """Estimate the number of tokens in text."""
        if not text:
            return 0
        return self.tokens_for_weight(self.token_weight(text))

    def is_within_limit(self, text: str, max_tokens: int) -> bool:
        """Check whether text fits within a token budget."""
        return self.count_tokens(text) <= max_tokens

    def truncate_to_tokens(self, text: str, max_tokens: int = SAFE_MAX_TOKENS) -> str:
        """Cut text down to at most max_tokens estimated tokens.

        Keeps the longest word prefix that fits, then backs up to the last
        sentence end if one falls in the final 30% of the kept text.

        Args:
            text: Text to truncate.
            max_tokens: Token budget. Non-positive values use SAFE_MAX_TOKENS.

        Returns:
            Truncated text, or the original text if it already fits.
        """
        if max_tokens <= 0:
            max_tokens = SAFE_MAX_TOKENS
        if self.count_tokens(text) <= max_tokens:
            return text

        words = text.split()
        low, high = 0, len(words)
        while low < high:
            mid = (low + high + 1) // 2
            if self.count_tokens(" ".join(words[:mid])) <= max_tokens:
                low = mid
            else:
                high = mid - 1

        result = " ".join(words[:low])
        last_end = max(result.rfind(ending) for ending in SENTENCE_ENDINGS)
        if last_end > len(result) * TRUNCATE_SENTENCE_RATIO:
            result = result[: last_end + 1]
        return result.strip()


_default_counter = TokenCounter()


def count_tokens(text: str) -> int:
    """Estimate tokens in text with the shared counter."""
    return _default_counter.count_tokens(text)


def truncate_to_tokens(text: str, max_tokens: int = SAFE_MAX_TOKENS) -> str:
    """Truncate text to a token budget with the shared counter."""
    return _default_counter.truncate_to_tokens(text, max_tokens)


def truncate_for_embedding(text: str, max_chars: int = EMBEDDING_MAX_CHARS) -> str:
    """Cap text at the embedding provider's character limit.

    Cuts at max_chars, then at the last sentence end if it lies past 80% of
    the cap.
    """
    if len(text) <= max_chars:
        return text

    text = text[:max_chars]
    last_end = max(text.rfind(ending) for ending in SENTENCE_ENDINGS)
    if last_end > max_chars * EMBEDDING_SENTENCE_RATIO:
        text = text[: last_end + 1]
    return text.strip()
