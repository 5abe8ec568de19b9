"""Token-aware chunking of note and todo text for embedding."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from recollect.constants.chunking import (
    DEFAULT_CHUNK_TOKENS,
    HARD_MAX_TOKENS,
    MIN_CHUNK_TOKENS,
    OVERLAP_DIVISOR,
)
from recollect.indexing.text import TokenCounter, sanitize_text

logger = logging.getLogger(__name__)

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass
class Chunk:
    """A piece of a document small enough to embed in one request.

    Attributes:
        text: Chunk text.
        index: Position of the chunk within its document (0, 1, 2...).
        token_count: Estimated token count.
        char_count: Length of text in characters.
    """

    text: str
    index: int
    token_count: int
    char_count: int


class DocumentChunker:
    """Splits text into overlapping, sentence-aligned chunks.

    Sentences are packed greedily until the next one would push the chunk
    past max_tokens. Each following chunk starts with the last words of the
    previous one, up to overlap_tokens. Sentences too long for a chunk on
    their own are split on word boundaries. A trailing chunk below
    min_tokens is dropped, so a document shorter than min_tokens produces no
    chunks at all.
    """

    def __init__(
        self,
        max_tokens: int = DEFAULT_CHUNK_TOKENS,
        overlap_tokens: int | None = None,
        min_tokens: int = MIN_CHUNK_TOKENS,
        counter: TokenCounter | None = None,
    ) -> None:
        """Initialize the chunker.

        Args:
            max_tokens: Upper bound on estimated tokens per chunk.
            overlap_tokens: Tokens carried into the next chunk. Defaults to
                a tenth of max_tokens.
            min_tokens: Smallest trailing chunk worth keeping.
            counter: Token estimator. A fresh TokenCounter if None.
        """
        if max_tokens <= 0:
            max_tokens = DEFAULT_CHUNK_TOKENS
        if overlap_tokens is None or overlap_tokens < 0:
            overlap_tokens = max_tokens // OVERLAP_DIVISOR
        if min_tokens <= 0:
            min_tokens = MIN_CHUNK_TOKENS

        self.max_tokens = max_tokens
        self.overlap_tokens = overlap_tokens
        self.min_tokens = min_tokens
        self._counter = counter or TokenCounter()

    def chunk_text(self, text: str) -> list[Chunk]:
        """Split text into chunks.

        Args:
            text: Raw document text.

        Returns:
            Chunks in document order, possibly empty.
        """
        if not text or not text.strip():
            return []

        text = " ".join(sanitize_text(text).split())
        if not text:
            return []

        chunks: list[Chunk] = []
        current: list[str] = []
        current_weight = 0.0

        for sentence in self._split_sentences(text):
            weight = self._counter.token_weight(sentence)
            oversized = self._tokens(weight) > self.max_tokens
            overflows = self._tokens(current_weight + weight) > self.max_tokens

            if not oversized and not overflows:
                current.append(sentence)
                current_weight += weight
                continue

            if oversized or self._tokens(current_weight) < self.min_tokens:
                # Fold pending text into a word-level split so no undersized
                # chunk is emitted ahead of it
                pieces = self._split_long_text(" ".join([*current, sentence]))
                for piece in pieces[:-1]:
                    self._append(chunks, piece)
                current = [pieces[-1]]
                current_weight = self._counter.token_weight(pieces[-1])
                continue

            previous = " ".join(current)
            self._append(chunks, previous)

            overlap = self._overlap_tail(previous)
            overlap_weight = self._counter.token_weight(overlap)
            if overlap and self._tokens(overlap_weight + weight) <= self.max_tokens:
                current = [overlap, sentence]
                current_weight = overlap_weight + weight
            else:
                current = [sentence]
                current_weight = weight

        if current and self._tokens(current_weight) >= self.min_tokens:
            self._append(chunks, " ".join(current))

        return chunks

    def first_chunk(self, text: str) -> Chunk | None:
        """Return the first chunk of text, or None if it produces no chunks."""
        chunks = self.chunk_text(text)
        return chunks[0] if chunks else None

    def _tokens(self, weight: float) -> int:
        return self._counter.tokens_for_weight(weight)

    def _split_sentences(self, text: str) -> list[str]:
        return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]

    def _split_long_text(self, text: str) -> list[str]:
        """Split text on word boundaries into pieces of at most max_tokens."""
        pieces: list[str] = []
        words: list[str] = []
        weight = 0.0

        for word in text.split():
            word_weight = self._counter.token_weight(word)
            if words and self._tokens(weight + word_weight) > self.max_tokens:
                pieces.append(" ".join(words))
                words = []
                weight = 0.0
            words.append(word)
            weight += word_weight

        if words:
            pieces.append(" ".join(words))
        return pieces

    def _overlap_tail(self, text: str) -> str:
        """Last words of text that fit within the overlap budget."""
        if self.overlap_tokens <= 0:
            return ""

        tail: list[str] = []
        weight = 0.0
        for word in reversed(text.split()):
            word_weight = self._counter.token_weight(word)
            if self._tokens(weight + word_weight) > self.overlap_tokens:
                break
            tail.append(word)
            weight += word_weight

        return " ".join(reversed(tail))

    def _append(self, chunks: list[Chunk], text: str) -> None:
        text = text.strip()
        if self._counter.count_tokens(text) > HARD_MAX_TOKENS:
            text = self._counter.truncate_to_tokens(text, self.max_tokens)
        if not text:
            # A single unbreakable word can exceed the hard limit entirely
            logger.warning("Dropping chunk that cannot be truncated to the token limit")
            return

        chunks.append(
            Chunk(
                text=text,
                index=len(chunks),
                token_count=self._counter.count_tokens(text),
                char_count=len(text),
            )
        )
