"""Tests for text sanitization and token estimation."""

from hypothesis import given
from hypothesis import strategies as st

from recollect.indexing.text import (
    TokenCounter,
    count_tokens,
    sanitize_text,
    truncate_for_embedding,
    truncate_to_tokens,
)


class TestSanitizeText:
    def test_empty_text(self):
        assert sanitize_text("") == ""

    def test_math_symbols_are_spelled_out(self):
        assert sanitize_text("x ≤ y") == "x <= y"
        assert sanitize_text("a ≠ b") == "a != b"

    def test_greek_letters_are_spelled_out(self):
        assert sanitize_text("α + β") == "alpha + beta"

    def test_arrows_are_spelled_out(self):
        assert sanitize_text("a → b") == "a -> b"

    def test_subscript_and_superscript_digits(self):
        assert sanitize_text("H₂O and x²") == "H2O and x2"

    def test_zero_width_characters_removed(self):
        assert sanitize_text("to\u200bdo\ufeff") == "todo"

    def test_control_characters_become_spaces(self):
        assert sanitize_text("buy\x07milk") == "buy milk"

    def test_whitespace_collapsed(self):
        assert sanitize_text("  buy   \t milk  ") == "buy milk"

    def test_blank_lines_limited(self):
        assert sanitize_text("first\n\n\n\n\nsecond") == "first\n\nsecond"

    @given(st.text())
    def test_sanitize_is_idempotent(self, text):
        once = sanitize_text(text)
        assert sanitize_text(once) == once


class TestTokenCounter:
    def test_empty_text_has_no_tokens(self):
        assert count_tokens("") == 0

    def test_short_words_count_one_each(self):
        # 4 short words, times the 1.1 margin
        assert count_tokens("buy the red car") == 4

    def test_punctuation_counts(self):
        counter = TokenCounter()
        assert counter.token_weight("hi!") == 2

    def test_digit_runs(self):
        counter = TokenCounter()
        assert counter.token_weight("123456") == 3

    def test_long_words_cost_more(self):
        counter = TokenCounter()
        assert counter.token_weight("internationalization") == 4

    def test_is_within_limit(self):
        counter = TokenCounter()
        assert counter.is_within_limit("buy milk", 10)
        assert not counter.is_within_limit("word " * 50, 10)

    @given(st.lists(st.sampled_from(["alpha", "beta", "x", "2024", "reconciliation"]), max_size=40))
    def test_weight_is_additive_over_words(self, words):
        counter = TokenCounter()
        total = sum(counter.token_weight(word) for word in words)
        assert abs(counter.token_weight(" ".join(words)) - total) < 1e-9


class TestTruncation:
    def test_text_within_budget_unchanged(self):
        assert truncate_to_tokens("buy milk", 100) == "buy milk"

    def test_truncated_text_fits_budget(self):
        text = " ".join(f"word{i}" for i in range(500))
        result = truncate_to_tokens(text, 50)
        assert count_tokens(result) <= 50
        assert text.startswith(result)

    def test_truncation_prefers_sentence_end(self):
        text = "One two three four five six seven eight nine ten. " + "more " * 200
        result = truncate_to_tokens(text, 14)
        assert result.endswith("ten.")

    def test_non_positive_budget_uses_safe_default(self):
        text = "word " * 2000
        assert count_tokens(truncate_to_tokens(text, 0)) <= 480

    def test_truncate_for_embedding_caps_characters(self):
        text = "a" * 5000
        assert len(truncate_for_embedding(text, 1800)) <= 1800

    def test_truncate_for_embedding_cuts_at_sentence(self):
        text = "x" * 900 + ". " + "y" * 200
        result = truncate_for_embedding(text, 1000)
        assert result.endswith(".")
        assert len(result) == 901

    def test_truncate_for_embedding_uses_latest_sentence_end(self):
        text = "x" * 850 + ". " + "y" * 98 + "? " + "z" * 200
        result = truncate_for_embedding(text, 1000)
        assert result.endswith("?")
        assert len(result) == 951

    def test_short_text_untouched(self):
        assert truncate_for_embedding("short", 1800) == "short"
