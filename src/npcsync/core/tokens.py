"""Approximate token estimate used for the condensation budget."""

from __future__ import annotations


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` from its length.

    Roughly 4 characters per token for ASCII text and 3 when any
    non-ASCII character is present. Empty text is 0; anything else is at
    least 1.
    """
    if not text:
        return 0
    divisor = 3 if any(ord(c) > 127 for c in text) else 4
    return max(1, len(text) // divisor)
