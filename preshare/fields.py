"""Schema-driven field selection over arbitrary nested JSON.

Paths are handled in one normalized form for both strip modes: a tuple of
segments where ``[]`` marks traversal into an array element and ``*`` (in
patterns only) matches exactly one segment. A transcript stored as a
top-level list of entries adds no segment, so schema paths stay relative to a
single record::

    parse_path("tool_usages[].tool_input") == ("tool_usages", "[]", "tool_input")
    parse_path("message.content.*.signature") == ("message", "content", "*", "signature")

Whitelist mode (the export default) keeps a key when it is selected, is an
ancestor of a selected path, or lies under a selected leaf. Blacklist mode
drops every key matching a strip pattern. In both modes ``always_strip``
schema entries win over any selection.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .schemas import (
    ALWAYS_STRIP,
    ESSENTIAL,
    FIELD_CATEGORIES,
    FIELD_SCHEMAS,
    RECOMMENDED,
    FieldSchema,
)

ARRAY = "[]"
WILDCARD = "*"

Path = tuple[str, ...]


def parse_path(path: str) -> Path:
    """Split a dotted path into segments, turning ``key[]`` into ``key``, ``[]``."""
    segments: list[str] = []
    for part in path.split("."):
        if not part:
            continue
        key = part
        arrays = 0
        while key.endswith(ARRAY):
            key = key[: -len(ARRAY)]
            arrays += 1
        if key:
            segments.append(key)
        segments.extend([ARRAY] * arrays)
    return tuple(segments)


def format_path(segments: Iterable[str]) -> str:
    """Render segments back to dotted form (``messages[].role``)."""
    out = ""
    for segment in segments:
        if segment == ARRAY:
            out += ARRAY
        elif out:
            out += "." + segment
        else:
            out = segment
    return out


def _child(parent: Path, segment: str) -> Path:
    # Top-level arrays are lists of records, not a field.
    if segment == ARRAY and not parent:
        return parent
    return parent + (segment,)


def _as_path(path: str | Path) -> Path:
    return parse_path(path) if isinstance(path, str) else tuple(path)


def _key_path(path: str | Path) -> Path:
    """Drop array and wildcard tokens, leaving only the key segments."""
    return tuple(s for s in _as_path(path) if s not in (ARRAY, WILDCARD))


def _scopes(source: str | Iterable[str]) -> set[str] | None:
    """Resolve a source argument to a set of scopes, ``None`` meaning every scope."""
    names = {source} if isinstance(source, str) else set(source)
    if "all" in names:
        return None
    return names | {"all"}


def get_fields_for_source(source: str | Iterable[str] = "all") -> list[FieldSchema]:
    """Schema entries applicable to ``source`` (one scope name or several)."""
    scopes = _scopes(source)
    if scopes is None:
        return list(FIELD_SCHEMAS)
    return [schema for schema in FIELD_SCHEMAS if schema.source in scopes]


def get_default_selected_fields(source: str | Iterable[str] = "all") -> list[str]:
    """Essential and recommended paths for ``source``, in registry order."""
    selected: list[str] = []
    for schema in get_fields_for_source(source):
        if schema.category in (ESSENTIAL, RECOMMENDED) and schema.path not in selected:
            selected.append(schema.path)
    return selected


def group_fields_by_category(source: str | Iterable[str] = "all") -> dict[str, list[FieldSchema]]:
    grouped: dict[str, list[FieldSchema]] = {category: [] for category in FIELD_CATEGORIES}
    for schema in get_fields_for_source(source):
        grouped[schema.category].append(schema)
    return grouped


def build_always_strip_set(source: str | Iterable[str] = "all") -> list[str]:
    return [s.path for s in get_fields_for_source(source) if s.category == ALWAYS_STRIP]


def build_strip_set(selected_fields: Iterable[str], source: str | Iterable[str] = "all") -> list[str]:
    """Blacklist for ``strip_fields``: always-strip paths plus every unselected schema path."""
    selected = set(selected_fields)
    strip = build_always_strip_set(source)
    for schema in get_fields_for_source(source):
        if schema.category == ALWAYS_STRIP or schema.path in selected:
            continue
        if schema.path not in strip:
            strip.append(schema.path)
    return strip


def build_keep_set(selected_fields: Iterable[str]) -> list[str]:
    """Whitelist for ``strip_fields_whitelist``. Always-strip entries are never keepable."""
    always = {s.path for s in FIELD_SCHEMAS if s.category == ALWAYS_STRIP}
    keep: list[str] = []
    for path in selected_fields:
        if path and path not in always and path not in keep:
            keep.append(path)
    return keep


def path_matches(actual_path: str | Path, pattern: str | Path) -> bool:
    """Segment-wise match; ``*`` matches exactly one segment and lengths must agree."""
    actual = _as_path(actual_path)
    expected = _as_path(pattern)
    if len(actual) != len(expected):
        return False
    return all(p == WILDCARD or p == a for a, p in zip(actual, expected))


def _matches_any(path: Path, patterns: list[Path]) -> bool:
    return any(path_matches(path, pattern) for pattern in patterns)


def strip_fields(obj: Any, strip_set: Iterable[str]) -> Any:
    """Blacklist strip: return a copy of ``obj`` without keys whose path matches ``strip_set``."""
    patterns = [parse_path(p) for p in strip_set]

    def _walk(value: Any, path: Path) -> Any:
        if isinstance(value, list):
            child = _child(path, ARRAY)
            return [_walk(item, child) for item in value]
        if isinstance(value, dict):
            out: dict[str, Any] = {}
            for key, item in value.items():
                key_path = _child(path, str(key))
                if _matches_any(key_path, patterns):
                    continue
                out[key] = _walk(item, key_path)
            return out
        return value

    return _walk(obj, ())


def is_leaf_path(path: str | Path, keep_set: Iterable[str | Path]) -> bool:
    """True when no other keep-set entry lies strictly below ``path``."""
    target = _key_path(path)
    for other in keep_set:
        key_path = _key_path(other)
        if len(key_path) > len(target) and key_path[: len(target)] == target:
            return False
    return True


def should_keep_path(field_path: str | Path, keep_set: Iterable[str | Path]) -> bool:
    """Whitelist decision for one field path.

    Kept when the path is selected, is an ancestor of a selected path (so the
    structure leading to it survives), or is a descendant of a selected leaf.
    A selected path with deeper selected entries is not a leaf, so unselected
    siblings under it are dropped.
    """
    target = _key_path(field_path)
    if not target:
        return False
    keep = [_key_path(entry) for entry in keep_set]
    for entry in keep:
        if not entry:
            continue
        if entry == target:
            return True
        if len(entry) > len(target) and entry[: len(target)] == target:
            return True
        if len(target) > len(entry) and target[: len(entry)] == entry and is_leaf_path(entry, keep):
            return True
    return False


def strip_fields_whitelist(obj: Any, keep_set: Iterable[str], always_strip_set: Iterable[str] = ()) -> Any:
    """Whitelist strip: keep only selected structure; always-strip paths are dropped first."""
    always = [parse_path(p) for p in always_strip_set]
    keep = [_key_path(p) for p in keep_set if not _matches_any(parse_path(p), always)]

    def _walk(value: Any, path: Path) -> Any:
        if isinstance(value, list):
            child = _child(path, ARRAY)
            return [_walk(item, child) for item in value]
        if isinstance(value, dict):
            out: dict[str, Any] = {}
            for key, item in value.items():
                key_path = _child(path, str(key))
                if _matches_any(key_path, always):
                    continue
                if not should_keep_path(key_path, keep):
                    continue
                out[key] = _walk(item, key_path)
            return out
        return value

    return _walk(obj, ())


def collect_field_paths(obj: Any) -> set[str]:
    """Every field path present in ``obj``; arrays are sampled through their first element."""
    found: set[str] = set()

    def _walk(value: Any, path: Path) -> None:
        if isinstance(value, list):
            if value:
                _walk(value[0], _child(path, ARRAY))
            return
        if isinstance(value, dict):
            for key, item in value.items():
                key_path = _child(path, str(key))
                found.add(format_path(key_path))
                _walk(item, key_path)

    _walk(obj, ())
    return found


def is_always_stripped(path: str, always_strip_set: Iterable[str]) -> bool:
    """True when ``path`` matches an always-strip pattern or lies beneath one."""
    segments = parse_path(path)
    for pattern in always_strip_set:
        expected = parse_path(pattern)
        if len(segments) >= len(expected) and path_matches(segments[: len(expected)], expected):
            return True
    return False
