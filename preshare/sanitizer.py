"""Pattern and entropy based redaction with stable placeholder identity.

A :class:`Sanitizer` owns all redaction state for one run. The same literal
value always maps to the same ``<PREFIX_n>`` placeholder for the lifetime of
the instance, so passing one instance across several sessions keeps
placeholders consistent between them, and separate instances never share
numbering.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

from .entropy import (
    DEFAULT_MIN_ENTROPY,
    DEFAULT_MIN_LENGTH,
    HIGH_ENTROPY_CATEGORY,
    HIGH_ENTROPY_PREFIX,
    redact_high_entropy_strings,
)
from .patterns import (
    CODE_BLOCK_PATTERN,
    VALUE_GROUP,
    PatternDefinition,
    build_pattern_subset,
    create_custom_pattern,
    default_patterns,
    is_placeholder,
)
from .types import RedactionInfo, RedactionOptions

__all__ = [
    "HIGH_ENTROPY_WARNING",
    "RedactionReport",
    "Sanitizer",
    "create_sanitizer",
]

logger = logging.getLogger(__name__)

CUSTOM_CATEGORY = "custom"
HIGH_ENTROPY_WARNING = "High-entropy token detected and redacted"


@dataclass
class RedactionReport:
    total_redactions: int
    counts_by_category: dict[str, int]
    placeholder_count: int
    warnings: list[str]
    timestamp: str
    enabled_categories: list[str]
    total_replacements: int = 0
    strings_touched: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Sanitizer:
    """Redacts strings and JSON values, remembering every value it has replaced."""

    def __init__(
        self,
        patterns: Mapping[str, PatternDefinition] | Iterable[PatternDefinition] | None = None,
        custom_regex: Iterable[str] = (),
        enable_high_entropy: bool = True,
        high_entropy_min_length: int = DEFAULT_MIN_LENGTH,
        high_entropy_threshold: float = DEFAULT_MIN_ENTROPY,
    ) -> None:
        if patterns is None:
            patterns = default_patterns()
        if isinstance(patterns, Mapping):
            patterns = patterns.values()
        self.enable_high_entropy = enable_high_entropy
        self.high_entropy_min_length = high_entropy_min_length
        self.high_entropy_threshold = high_entropy_threshold

        self._config_warnings: list[str] = []
        self.patterns: list[PatternDefinition] = []
        for pattern in patterns:
            if self._compiles(pattern, f"Invalid regex in pattern '{pattern.name}'"):
                self.patterns.append(pattern)

        self.custom_patterns: list[PatternDefinition] = []
        for index, regex in enumerate(custom_regex):
            pattern = create_custom_pattern(f"USER_REGEX_{index + 1}", regex, category=CUSTOM_CATEGORY)
            if self._compiles(pattern, f"Invalid custom regex: {regex}"):
                self.custom_patterns.append(pattern)

        self.reset()

    def _compiles(self, pattern: PatternDefinition, warning: str) -> bool:
        try:
            pattern.compiled
        except re.error as exc:
            logger.warning("%s (%s); pattern skipped", warning, exc)
            if warning not in self._config_warnings:
                self._config_warnings.append(warning)
            return False
        return True

    def reset(self) -> None:
        """Forget every placeholder and count. Configuration is kept."""
        self._value_to_placeholder: dict[str, str] = {}
        self._counters: dict[str, int] = {}
        self._info: dict[str, RedactionInfo] = {}
        self._counts: dict[str, int] = {}
        self._warnings: list[str] = list(self._config_warnings)
        self._strings_touched = 0
        self._replacements = 0

    @property
    def warnings(self) -> list[str]:
        return list(self._warnings)

    def _add_warning(self, message: str) -> None:
        if message not in self._warnings:
            self._warnings.append(message)

    def get_placeholder(self, category: str, value: str, prefix: str, rule_name: str) -> str:
        """Return the placeholder for ``value``, allocating the next one for ``prefix`` if new."""
        existing = self._value_to_placeholder.get(value)
        if existing is not None:
            return existing
        sequence = self._counters.get(prefix, 0) + 1
        self._counters[prefix] = sequence
        placeholder = f"<{prefix}_{sequence}>"
        self._value_to_placeholder[value] = placeholder
        self._counts[category] = self._counts.get(category, 0) + 1
        self._info[placeholder] = RedactionInfo(
            placeholder=placeholder,
            category=category,
            rule_name=rule_name,
            original_length=len(value),
        )
        logger.debug("Redacted %s match as %s", rule_name, placeholder)
        return placeholder

    def _apply(self, pattern: PatternDefinition, text: str, category: str) -> str:
        def _substitute(match: re.Match[str]) -> str:
            whole = match.group(0)
            if VALUE_GROUP in match.re.groupindex and match.group(VALUE_GROUP) is not None:
                start, end = match.span(VALUE_GROUP)
            else:
                start, end = match.span()
            value = match.string[start:end]
            if not value or is_placeholder(value):
                return whole
            placeholder = self.get_placeholder(category, value, pattern.placeholder, pattern.name)
            self._replacements += 1
            offset = match.start()
            return whole[: start - offset] + placeholder + whole[end - offset:]

        for regex in pattern.compiled:
            text = regex.sub(_substitute, text)
        return text

    def _entropy_placeholder(self, token: str) -> str:
        self._replacements += 1
        return self.get_placeholder(HIGH_ENTROPY_CATEGORY, token, HIGH_ENTROPY_PREFIX, HIGH_ENTROPY_CATEGORY)

    def redact_text(self, text: str) -> str:
        """Canonical patterns, then custom patterns, then entropy detection."""
        if not text:
            return text
        result = text
        for pattern in self.patterns:
            result = self._apply(pattern, result, pattern.category)
        for pattern in self.custom_patterns:
            result = self._apply(pattern, result, CUSTOM_CATEGORY)
        if self.enable_high_entropy:
            result, found = redact_high_entropy_strings(
                result,
                self._entropy_placeholder,
                min_length=self.high_entropy_min_length,
                min_entropy=self.high_entropy_threshold,
            )
            if found:
                self._add_warning(HIGH_ENTROPY_WARNING)
        if result != text:
            self._strings_touched += 1
        return result

    def redact_object(self, obj: Any) -> Any:
        """Return a copy of ``obj`` with every string value redacted. Keys are left as-is."""
        if isinstance(obj, str):
            return self.redact_text(obj)
        if isinstance(obj, list):
            return [self.redact_object(item) for item in obj]
        if isinstance(obj, dict):
            return {key: self.redact_object(value) for key, value in obj.items()}
        return obj

    def enabled_categories(self) -> list[str]:
        names = [pattern.name for pattern in self.patterns]
        if self.custom_patterns:
            names.append(CUSTOM_CATEGORY)
        if self.enable_high_entropy:
            names.append(HIGH_ENTROPY_CATEGORY)
        return names

    def get_report(self) -> RedactionReport:
        return RedactionReport(
            total_redactions=sum(self._counts.values()),
            counts_by_category=dict(self._counts),
            placeholder_count=len(self._info),
            warnings=list(self._warnings),
            timestamp=datetime.now(tz=timezone.utc).isoformat(),
            enabled_categories=self.enabled_categories(),
            total_replacements=self._replacements,
            strings_touched=self._strings_touched,
        )

    def get_redaction_info_map(self) -> dict[str, RedactionInfo]:
        return dict(self._info)

    def get_total_strings_touched(self) -> int:
        return self._strings_touched


def create_sanitizer(
    options: RedactionOptions | None = None,
    base_patterns: Mapping[str, PatternDefinition] | None = None,
) -> Sanitizer:
    """Build a sanitizer whose pattern set follows the redaction toggles in ``options``.

    ``base_patterns`` replaces the canonical library (for example, canonical
    plus a team's pattern file); the toggles still filter it by category.
    """
    options = options or RedactionOptions()
    subset = build_pattern_subset(
        redact_secrets=options.redact_secrets,
        redact_pii=options.redact_pii,
        redact_paths=options.redact_paths,
        patterns=dict(base_patterns) if base_patterns is not None else None,
    )
    patterns: dict[str, PatternDefinition] = {}
    if options.mask_code_blocks:
        # Whole blocks go first so nothing inside them is numbered separately.
        patterns[CODE_BLOCK_PATTERN.name] = CODE_BLOCK_PATTERN
    patterns.update(subset)
    return Sanitizer(
        patterns=patterns,
        custom_regex=options.custom_regex,
        enable_high_entropy=options.enable_high_entropy,
        high_entropy_min_length=options.high_entropy_min_length,
        high_entropy_threshold=options.high_entropy_threshold,
    )
