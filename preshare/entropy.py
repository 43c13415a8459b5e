"""Shannon-entropy detection of unlabelled, random-looking tokens."""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from functools import lru_cache

DEFAULT_MIN_LENGTH = 20
DEFAULT_MIN_ENTROPY = 4.0

HIGH_ENTROPY_CATEGORY = "high_entropy"
HIGH_ENTROPY_PREFIX = "KEY"

_HEX_RE = re.compile(r"[a-f0-9]+", re.IGNORECASE)
_DIGITS_RE = re.compile(r"[0-9]+")
_LETTERS_RE = re.compile(r"[A-Za-z]+")
_TOKEN_CHARS_RE = re.compile(r"[A-Za-z0-9+/=_-]+")


@lru_cache(maxsize=8)
def _candidate_re(min_length: int) -> re.Pattern[str]:
    return re.compile(rf"\b[A-Za-z0-9+/=_-]{{{max(min_length, 1)},}}\b")


def calculate_entropy(s: str) -> float:
    """Shannon entropy in bits per character. Higher values look more random."""
    if not s:
        return 0.0
    freq: dict[str, int] = {}
    for c in s:
        freq[c] = freq.get(c, 0) + 1
    length = len(s)
    return -sum((count / length) * math.log2(count / length) for count in freq.values())


def is_high_entropy(
    s: str,
    min_length: int = DEFAULT_MIN_LENGTH,
    min_entropy: float = DEFAULT_MIN_ENTROPY,
) -> bool:
    """True for long mixed-alphabet tokens whose entropy reaches ``min_entropy``.

    Hex digests, bare numbers and bare words are never flagged, nor is anything
    containing characters outside the base64/url-safe token alphabet.
    """
    if len(s) < min_length:
        return False
    if _HEX_RE.fullmatch(s) or _DIGITS_RE.fullmatch(s) or _LETTERS_RE.fullmatch(s):
        return False
    if not _TOKEN_CHARS_RE.fullmatch(s):
        return False
    return calculate_entropy(s) >= min_entropy


def redact_high_entropy_strings(
    text: str,
    get_placeholder: Callable[[str], str],
    min_length: int = DEFAULT_MIN_LENGTH,
    min_entropy: float = DEFAULT_MIN_ENTROPY,
) -> tuple[str, int]:
    """Replace high-entropy tokens in ``text`` via ``get_placeholder(token)``.

    Returns the new text and the number of tokens replaced.
    """
    if not text:
        return text, 0
    count = 0

    def _replace(match: re.Match[str]) -> str:
        nonlocal count
        token = match.group(0)
        start, end = match.span()
        if text[start - 1:start] == "<" and text[end:end + 1] == ">":
            return token
        if not is_high_entropy(token, min_length, min_entropy):
            return token
        count += 1
        return get_placeholder(token)

    return _candidate_re(min_length).sub(_replace, text), count
