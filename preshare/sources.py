"""Raw session ingestion and one-time classification of session shape."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .preview import infer_source, parse_json_lines
from .types import SourceKind, SourceType

logger = logging.getLogger(__name__)

HOOK_SESSION_LABEL = "cc_hook"
CHAT_TRANSCRIPT_LABEL = "cc_transcript"

# Fallback grouping labels when the data shape is not recognised.
TRANSCRIPT_LABELS = {
    "claude": CHAT_TRANSCRIPT_LABEL,
    "codex": "codex_transcript",
    "gemini": "gemini_transcript",
    "opencode": "opencode_transcript",
}

_HOOK_MARKERS = ("tool_name", "tool_count", "tools_used")

HOOK_SESSION = SourceType(SourceKind.HOOK_SESSION, HOOK_SESSION_LABEL)
CHAT_TRANSCRIPT = SourceType(SourceKind.CHAT_TRANSCRIPT, CHAT_TRANSCRIPT_LABEL)


def categorize_source_type(source: str, data: Any) -> SourceType:
    """Decide what kind of session ``data`` is, from its shape first and ``source`` second."""
    if isinstance(data, dict):
        if "session" in data and "tool_usages" in data:
            return HOOK_SESSION
        if any(marker in data for marker in _HOOK_MARKERS):
            return HOOK_SESSION
        if isinstance(data.get("messages"), list):
            return CHAT_TRANSCRIPT
        message = data.get("message")
        if isinstance(message, dict) and ("model" in message or "usage" in message):
            return CHAT_TRANSCRIPT
    elif isinstance(data, list) and data and isinstance(data[0], dict):
        if "message" in data[0]:
            return CHAT_TRANSCRIPT
        if "tool_name" in data[0]:
            return HOOK_SESSION

    label = TRANSCRIPT_LABELS.get(source)
    if label is not None:
        return SourceType(SourceKind.CHAT_TRANSCRIPT, label)
    return SourceType(SourceKind.UNKNOWN, source or "unknown")


@dataclass
class RawSession:
    session_id: str
    source: str
    data: Any
    mtime_utc: str | None = None
    source_path_hint: str | None = None
    source_type: SourceType = field(init=False)

    def __post_init__(self) -> None:
        self.source_type = categorize_source_type(self.source, self.data)

    def schema_scopes(self) -> tuple[str, ...]:
        """Field-schema scopes that apply to this session (its tool and its shape)."""
        scopes = [self.source]
        if self.source_type.label not in scopes:
            scopes.append(self.source_type.label)
        return tuple(scopes)


def _mtime_utc(path: Path) -> str | None:
    try:
        stamp = path.stat().st_mtime
    except OSError:
        return None
    return datetime.fromtimestamp(stamp, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def load_raw_session(path: Path, source: str | None = None, session_id: str | None = None) -> RawSession:
    """Read a ``.json`` or ``.jsonl`` transcript from disk.

    JSONL files become a list of entries (blank and malformed lines are
    skipped); anything else is parsed as a single JSON document. Raises
    ``OSError`` or ``json.JSONDecodeError`` when the file cannot be read.
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    if path.suffix.lower() == ".jsonl":
        data: Any = parse_json_lines(text)
    else:
        data = json.loads(text)
    resolved_source = source or infer_source(str(path))
    session = RawSession(
        session_id=session_id or path.stem,
        source=resolved_source,
        data=data,
        mtime_utc=_mtime_utc(path),
        source_path_hint=str(path),
    )
    logger.debug("Loaded %s as %s (%s)", path.name, session.source_type.label, resolved_source)
    return session
