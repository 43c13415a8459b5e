"""Data model shared by the preparation pipeline and the CLI."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class SourceKind(str, Enum):
    HOOK_SESSION = "hook_session"
    CHAT_TRANSCRIPT = "chat_transcript"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SourceType:
    """Shape of a raw session, decided once when the session is ingested.

    ``label`` is the grouping key used in reports (``cc_hook``,
    ``cc_transcript``, ``codex_transcript``, ...).
    """

    kind: SourceKind
    label: str


class SessionState(str, Enum):
    RAW = "raw"
    FIELD_STRIPPED = "field_stripped"
    SANITIZED = "sanitized"
    SCORED = "scored"
    READY = "ready"
    BLOCKED = "blocked"


@dataclass
class RedactionOptions:
    redact_secrets: bool = True
    redact_pii: bool = True
    redact_paths: bool = True
    mask_code_blocks: bool = False
    custom_regex: list[str] = field(default_factory=list)
    enable_high_entropy: bool = True
    high_entropy_min_length: int = 20
    high_entropy_threshold: float = 4.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RedactionOptions:
        defaults = cls()
        return cls(
            redact_secrets=bool(data.get("redact_secrets", defaults.redact_secrets)),
            redact_pii=bool(data.get("redact_pii", defaults.redact_pii)),
            redact_paths=bool(data.get("redact_paths", defaults.redact_paths)),
            mask_code_blocks=bool(data.get("mask_code_blocks", defaults.mask_code_blocks)),
            custom_regex=[str(r) for r in data.get("custom_regex", []) or []],
            enable_high_entropy=bool(data.get("enable_high_entropy", defaults.enable_high_entropy)),
            high_entropy_min_length=int(data.get("high_entropy_min_length", defaults.high_entropy_min_length)),
            high_entropy_threshold=float(data.get("high_entropy_threshold", defaults.high_entropy_threshold)),
        )


DEFAULT_RIGHTS_STATEMENT = (
    "I have the right to share this data and have reviewed it for sensitive information."
)


@dataclass
class ContributorMeta:
    contributor_id: str = "anonymous"
    license: str = "CC-BY-4.0"
    ai_preference: str = "train-genai=deny"
    rights_statement: str = DEFAULT_RIGHTS_STATEMENT
    rights_confirmed: bool = False
    reviewed_confirmed: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContributorMeta:
        defaults = cls()
        return cls(
            contributor_id=str(data.get("contributor_id") or defaults.contributor_id),
            license=str(data.get("license") or defaults.license),
            ai_preference=str(data.get("ai_preference") or defaults.ai_preference),
            rights_statement=str(data.get("rights_statement") or defaults.rights_statement),
            rights_confirmed=bool(data.get("rights_confirmed", False)),
            reviewed_confirmed=bool(data.get("reviewed_confirmed", False)),
        )


@dataclass
class PreparationConfig:
    redaction: RedactionOptions = field(default_factory=RedactionOptions)
    # None means "schema defaults for each session's inferred source".
    selected_fields: list[str] | None = None
    contributor: ContributorMeta = field(default_factory=ContributorMeta)
    app_version: str = "0.1.0"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PreparationConfig:
        selected = data.get("selected_fields")
        return cls(
            redaction=RedactionOptions.from_dict(data.get("redaction", {}) or {}),
            selected_fields=[str(p) for p in selected] if selected is not None else None,
            contributor=ContributorMeta.from_dict(data.get("contributor", {}) or {}),
            app_version=str(data.get("app_version") or "0.1.0"),
        )


@dataclass(frozen=True)
class RedactionInfo:
    placeholder: str
    category: str
    rule_name: str
    original_length: int


@dataclass(frozen=True)
class PreparedSession:
    session_id: str
    source: str
    source_type: SourceType
    raw_data: Any
    sanitized_data: Any
    preview_original: str
    preview_redacted: str
    score: float
    approx_chars: int
    raw_sha256: str
    mtime_utc: str
    source_path_hint: str | None = None
    state: SessionState = SessionState.READY

    def summary(self) -> dict[str, Any]:
        """JSON-safe view without the raw data."""
        return {
            "session_id": self.session_id,
            "source": self.source,
            "source_type": self.source_type.label,
            "score": self.score,
            "approx_chars": self.approx_chars,
            "raw_sha256": self.raw_sha256,
            "mtime_utc": self.mtime_utc,
            "source_path_hint": self.source_path_hint,
            "state": self.state.value,
        }


@dataclass
class BatchRedactionReport:
    total_redactions: int
    counts_by_category: dict[str, int]
    enabled_categories: list[str]
    custom_regex_count: int
    residue_warnings: list[str]
    blocked: bool
    total_strings_touched: int = 0


@dataclass
class PreparationStats:
    total_sessions: int = 0
    total_redactions: int = 0
    total_fields_stripped: int = 0
    average_score: float = 0.0


@dataclass
class PreparationResult:
    sessions: list[PreparedSession]
    redaction_report: BatchRedactionReport
    stripped_fields: list[str]
    fields_present: list[str]
    fields_by_source: dict[str, list[str]]
    redaction_info_map: dict[str, RedactionInfo]
    blocked: bool
    residue_warnings: list[str]
    stats: PreparationStats

    def to_dict(self, include_data: bool = False) -> dict[str, Any]:
        sessions = []
        for session in self.sessions:
            entry = session.summary()
            if include_data:
                entry["sanitized_data"] = session.sanitized_data
            sessions.append(entry)
        return {
            "sessions": sessions,
            "redaction_report": asdict(self.redaction_report),
            "stripped_fields": list(self.stripped_fields),
            "fields_present": list(self.fields_present),
            "fields_by_source": {k: list(v) for k, v in self.fields_by_source.items()},
            "redaction_info_map": {k: asdict(v) for k, v in self.redaction_info_map.items()},
            "blocked": self.blocked,
            "residue_warnings": list(self.residue_warnings),
            "stats": asdict(self.stats),
        }
