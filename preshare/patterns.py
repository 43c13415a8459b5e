"""Redaction pattern definitions: the canonical JSON library plus user-supplied patterns."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from functools import cached_property, lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

PATTERN_CATEGORIES = ("secrets", "credentials", "pii", "network", "paths")

# Toggle name -> pattern categories it enables.
CATEGORY_GROUPS: dict[str, tuple[str, ...]] = {
    "secrets": ("secrets", "credentials"),
    "pii": ("pii", "network"),
    "paths": ("paths",),
}

# Only this named group is replaced when a regex defines it.
VALUE_GROUP = "value"

PLACEHOLDER_RE = re.compile(r"<[A-Z][A-Z0-9_]*_\d+>")

_PATTERNS_RESOURCE = "patterns.json"


class PatternValidationError(ValueError):
    """Raised when a pattern definition is structurally unusable."""


@dataclass
class PatternDefinition:
    name: str
    placeholder: str
    regex: list[str]
    category: str
    description: str = ""
    enabled: bool = True

    @cached_property
    def compiled(self) -> list[re.Pattern[str]]:
        """Compiled regexes, built on first use. Raises ``re.error`` for bad sources."""
        return [re.compile(source) for source in self.regex]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PatternDefinition:
        regex = data.get("regex", [])
        if isinstance(regex, str):
            regex = [regex]
        return cls(
            name=str(data.get("name", "")),
            placeholder=str(data.get("placeholder", "")),
            regex=[str(r) for r in regex],
            category=str(data.get("category", "")),
            description=str(data.get("description", "")),
            enabled=bool(data.get("enabled", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "placeholder": self.placeholder,
            "regex": list(self.regex),
            "category": self.category,
            "description": self.description,
            "enabled": self.enabled,
        }


@dataclass
class PatternLibrary:
    version: str
    patterns: dict[str, PatternDefinition] = field(default_factory=dict)


def is_placeholder(text: str) -> bool:
    return PLACEHOLDER_RE.fullmatch(text.strip()) is not None


def _parse_library(payload: Any, origin: str) -> PatternLibrary:
    if not isinstance(payload, dict) or not isinstance(payload.get("patterns"), list):
        raise PatternValidationError(f"{origin}: expected an object with a 'patterns' list")
    patterns: dict[str, PatternDefinition] = {}
    for index, raw in enumerate(payload["patterns"]):
        if not isinstance(raw, dict):
            raise PatternValidationError(f"{origin}: pattern #{index} is not an object")
        definition = PatternDefinition.from_dict(raw)
        if not definition.name or not definition.placeholder or not definition.regex:
            raise PatternValidationError(
                f"{origin}: pattern #{index} needs a name, a placeholder and at least one regex"
            )
        if definition.name in patterns:
            raise PatternValidationError(f"{origin}: duplicate pattern name '{definition.name}'")
        try:
            definition.compiled
        except re.error as exc:
            raise PatternValidationError(f"{origin}: pattern '{definition.name}' has an invalid regex: {exc}") from exc
        patterns[definition.name] = definition
    return PatternLibrary(version=str(payload.get("version", "")), patterns=patterns)


def load_pattern_file(path: Path) -> PatternLibrary:
    """Load a pattern library from a JSON file on disk (user or team patterns)."""
    with open(path, encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise PatternValidationError(f"{path}: invalid JSON: {exc}") from exc
    return _parse_library(payload, str(path))


@lru_cache(maxsize=1)
def _default_library() -> PatternLibrary:
    resource = resources.files("preshare") / "data" / _PATTERNS_RESOURCE
    text = resource.read_text(encoding="utf-8")
    library = _parse_library(json.loads(text), _PATTERNS_RESOURCE)
    logger.debug("Loaded %d canonical patterns (version %s)", len(library.patterns), library.version)
    return library


def default_patterns() -> dict[str, PatternDefinition]:
    """Canonical patterns in application order. Returns a fresh dict; definitions are shared."""
    return dict(_default_library().patterns)


def patterns_version() -> str:
    return _default_library().version


def enabled_categories(
    redact_secrets: bool = True,
    redact_pii: bool = True,
    redact_paths: bool = True,
) -> set[str]:
    categories: set[str] = set()
    if redact_secrets:
        categories.update(CATEGORY_GROUPS["secrets"])
    if redact_pii:
        categories.update(CATEGORY_GROUPS["pii"])
    if redact_paths:
        categories.update(CATEGORY_GROUPS["paths"])
    return categories


def build_pattern_subset(
    redact_secrets: bool = True,
    redact_pii: bool = True,
    redact_paths: bool = True,
    patterns: dict[str, PatternDefinition] | None = None,
) -> dict[str, PatternDefinition]:
    """Filter a pattern set down to the categories switched on by the three toggles."""
    source = default_patterns() if patterns is None else patterns
    categories = enabled_categories(redact_secrets, redact_pii, redact_paths)
    return {
        name: definition
        for name, definition in source.items()
        if definition.enabled and definition.category in categories
    }


def placeholder_for_label(label: str) -> str:
    return re.sub(r"[^A-Z0-9]+", "_", label.upper()).strip("_") or "CUSTOM"


def create_custom_pattern(label: str, regex: str, category: str = "custom") -> PatternDefinition:
    """Wrap one user regex as a pattern; its placeholder prefix is derived from ``label``."""
    return PatternDefinition(
        name=label.lower(),
        placeholder=placeholder_for_label(label),
        regex=[regex],
        category=category,
        description=f"User-supplied pattern {label}",
    )


CODE_BLOCK_PATTERN = PatternDefinition(
    name="code_block",
    placeholder="CODE_BLOCK",
    regex=[r"```[\s\S]*?```"],
    category="secrets",
    description="Fenced code block",
)
