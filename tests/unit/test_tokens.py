"""Tests for the token estimate."""

from __future__ import annotations

from npcsync.core.tokens import estimate_tokens


def test_empty_text_is_zero():
    assert estimate_tokens("") == 0


def test_short_text_is_at_least_one():
    assert estimate_tokens("hi") == 1


def test_ascii_uses_four_chars_per_token():
    assert estimate_tokens("a" * 400) == 100
    assert estimate_tokens("a" * 403) == 100


def test_non_ascii_uses_three_chars_per_token():
    assert estimate_tokens("é" * 300) == 100


def test_single_non_ascii_char_switches_divisor():
    """One accented character anywhere changes the estimate for the whole text."""
    text = "a" * 299 + "ö"
    assert estimate_tokens(text) == 100
    assert estimate_tokens("a" * 300) == 75
