"""Heuristic quality score for ranking sessions worth donating."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

QUALITY_KEYWORDS = (
    "error",
    "traceback",
    "stack",
    "diff",
    "patch",
    "git",
    "commit",
    "test",
    "pytest",
    "npm",
    "yarn",
    "pip",
    "stderr",
    "stdout",
    "tool call",
    "function",
    "stacktrace",
    "exception",
    "debug",
    "warning",
    "failed",
    "success",
    "build",
    "compile",
)


@dataclass(frozen=True)
class ScoringPolicy:
    keyword_weight: float = 1.5
    ideal_min_chars: int = 400
    ideal_max_chars: int = 8000
    ideal_bonus: float = 2.0
    too_long_penalty: float = 1.0
    too_short_chars: int = 120
    too_short_penalty: float = 1.0
    keywords: tuple[str, ...] = QUALITY_KEYWORDS


DEFAULT_POLICY = ScoringPolicy()

T = TypeVar("T")


def score_text(text: str, policy: ScoringPolicy = DEFAULT_POLICY) -> float:
    """Keyword hits plus a length band bonus, clamped at zero and rounded to one decimal."""
    lowered = text.lower()
    score = sum(policy.keyword_weight for keyword in policy.keywords if keyword in lowered)
    length = len(text)
    if policy.ideal_min_chars < length < policy.ideal_max_chars:
        score += policy.ideal_bonus
    if length > policy.ideal_max_chars:
        score -= policy.too_long_penalty
    if length < policy.too_short_chars:
        score -= policy.too_short_penalty
    return round(max(0.0, score), 1)


def score_session(data: Any, policy: ScoringPolicy = DEFAULT_POLICY) -> float:
    text = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    return score_text(text, policy)


def _score_of(item: Any) -> float:
    if isinstance(item, dict):
        return float(item.get("score", 0.0) or 0.0)
    return float(getattr(item, "score", 0.0) or 0.0)


def rank_sessions(sessions: Iterable[T]) -> list[T]:
    """Highest score first; ties keep their input order."""
    return sorted(sessions, key=_score_of, reverse=True)


def select_top_sessions(sessions: Sequence[T], count: int) -> list[T]:
    if count <= 0:
        return []
    return rank_sessions(sessions)[:count]
