"""Post-sanitization audit for sensitive material that slipped through redaction."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

BLOCKING_PATTERNS: tuple[tuple[str, re.Pattern[str], str], ...] = (
    (
        "private_key",
        re.compile(
            r"-----BEGIN (?:[A-Z0-9]+ )*PRIVATE KEY-----[\s\S]+?-----END (?:[A-Z0-9]+ )*PRIVATE KEY-----"
        ),
        "Private key material still detected. Submission is blocked.",
    ),
)

WARNING_PATTERNS: tuple[tuple[str, re.Pattern[str], str], ...] = (
    (
        "token_like",
        re.compile(r"(sk-[A-Za-z0-9]{16,}|sk-ant-[A-Za-z0-9_-]{10,}|hf_[A-Za-z0-9]{20,}|ghp_[A-Za-z0-9]{20,})"),
        "Token-like strings remain. Review sanitized output.",
    ),
    (
        "email",
        re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE),
        "Email-like strings remain. Review sanitized output.",
    ),
)


@dataclass(frozen=True)
class ResidueCheckResult:
    blocked: bool
    warnings: list[str] = field(default_factory=list)
    # Number of strings that matched, per pattern name.
    hits: dict[str, int] = field(default_factory=dict)


def collect_strings(value: Any) -> list[str]:
    """Every string leaf in ``value``, depth first. Dict keys are not included."""
    found: list[str] = []

    def _walk(item: Any) -> None:
        if isinstance(item, str):
            found.append(item)
        elif isinstance(item, list):
            for child in item:
                _walk(child)
        elif isinstance(item, dict):
            for child in item.values():
                _walk(child)

    _walk(value)
    return found


def residue_check(strings: Iterable[str]) -> ResidueCheckResult:
    """Scan sanitized strings. Blocking hits veto the whole batch; warnings are advisory."""
    hits: dict[str, int] = {}
    for text in strings:
        if not text:
            continue
        for name, pattern, _message in BLOCKING_PATTERNS + WARNING_PATTERNS:
            if pattern.search(text):
                hits[name] = hits.get(name, 0) + 1

    warnings: list[str] = []
    blocked = False
    for name, _pattern, message in BLOCKING_PATTERNS:
        if hits.get(name):
            blocked = True
            warnings.append(message)
    for name, _pattern, message in WARNING_PATTERNS:
        if hits.get(name):
            warnings.append(message)

    if blocked:
        logger.warning("Residue check blocked submission: %s", ", ".join(sorted(hits)))
    elif warnings:
        logger.info("Residue check warnings: %s", ", ".join(sorted(hits)))
    return ResidueCheckResult(blocked=blocked, warnings=warnings, hits=hits)


def check_sanitized_object(obj: Any) -> ResidueCheckResult:
    return residue_check(collect_strings(obj))
