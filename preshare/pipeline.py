"""Preparation pipeline: field stripping, sanitization, scoring and residue audit.

Each raw session moves through ``RAW -> FIELD_STRIPPED -> SANITIZED ->
SCORED`` and ends ``READY``, unless the batch residue check finds blocking
material, in which case every session of the batch ends ``BLOCKED``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any

from .fields import (
    build_always_strip_set,
    build_keep_set,
    collect_field_paths,
    get_default_selected_fields,
    group_fields_by_category,
    is_always_stripped,
    should_keep_path,
    strip_fields_whitelist,
)
from .preview import (
    approx_chars,
    format_utc_now,
    make_bundle_id,
    random_uuid,
    redact_path_username,
    safe_preview,
    sha256_hex,
)
from .residue import collect_strings, residue_check
from .sanitizer import Sanitizer, create_sanitizer
from .schemas import FieldSchema
from .scoring import score_text
from .sources import RawSession
from .types import (
    BatchRedactionReport,
    ContributorMeta,
    PreparationConfig,
    PreparationResult,
    PreparationStats,
    PreparedSession,
    SessionState,
)

logger = logging.getLogger(__name__)


class SubmissionBlockedError(RuntimeError):
    """Raised by :func:`ensure_exportable` when the residue check blocked a batch."""

    def __init__(self, warnings: list[str]) -> None:
        super().__init__("; ".join(warnings) or "Submission is blocked.")
        self.warnings = warnings


def get_default_field_selection(source: str = "all") -> list[str]:
    return get_default_selected_fields(source)


def get_field_schemas_by_category(source: str = "all") -> dict[str, list[FieldSchema]]:
    return group_fields_by_category(source)


def get_default_contributor() -> ContributorMeta:
    return ContributorMeta()


def _selected_fields(session: RawSession, config: PreparationConfig) -> list[str]:
    if config.selected_fields is not None:
        return list(config.selected_fields)
    return get_default_selected_fields(session.schema_scopes())


def _prepare(
    session: RawSession,
    selected: list[str],
    always_strip: list[str],
    sanitizer: Sanitizer,
) -> PreparedSession:
    stripped = strip_fields_whitelist(session.data, build_keep_set(selected), always_strip)
    sanitized = sanitizer.redact_object(stripped)
    preview_redacted = safe_preview(sanitized)
    prepared = PreparedSession(
        session_id=session.session_id,
        source=session.source,
        source_type=session.source_type,
        raw_data=session.data,
        sanitized_data=sanitized,
        preview_original=safe_preview(session.data),
        preview_redacted=preview_redacted,
        score=score_text(preview_redacted),
        approx_chars=approx_chars(sanitized),
        raw_sha256=sha256_hex(session.data),
        mtime_utc=session.mtime_utc or format_utc_now(),
        source_path_hint=redact_path_username(session.source_path_hint or ""),
        state=SessionState.SCORED,
    )
    logger.debug(
        "Prepared %s (%s): score=%s chars=%d",
        prepared.session_id,
        prepared.source_type.label,
        prepared.score,
        prepared.approx_chars,
    )
    return prepared


def prepare_session(
    session: RawSession,
    config: PreparationConfig | None = None,
    sanitizer: Sanitizer | None = None,
) -> PreparedSession:
    """Prepare one session.

    Without ``sanitizer`` a fresh one is built from ``config``, so placeholder
    numbering starts over for this session. Pass a shared instance to keep
    placeholders consistent with other sessions.
    """
    config = config or PreparationConfig()
    sanitizer = sanitizer or create_sanitizer(config.redaction)
    selected = _selected_fields(session, config)
    prepared = _prepare(session, selected, build_always_strip_set(session.schema_scopes()), sanitizer)
    verdict = residue_check(collect_strings(prepared.sanitized_data))
    return replace(prepared, state=SessionState.BLOCKED if verdict.blocked else SessionState.READY)


def prepare_sessions(
    sessions: Iterable[RawSession],
    config: PreparationConfig | None = None,
    sanitizer: Sanitizer | None = None,
) -> PreparationResult:
    """Prepare a batch with one shared sanitizer and one residue check over all output."""
    config = config or PreparationConfig()
    sanitizer = sanitizer or create_sanitizer(config.redaction)
    sessions = list(sessions)

    fields_present: set[str] = set()
    fields_by_source: dict[str, set[str]] = {}
    stripped_fields: set[str] = set()
    prepared: list[PreparedSession] = []

    for session in sessions:
        scopes = session.schema_scopes()
        always_strip = build_always_strip_set(scopes)
        selected = _selected_fields(session, config)
        keep = build_keep_set(selected)

        present = collect_field_paths(session.data)
        fields_present.update(present)
        fields_by_source.setdefault(session.source_type.label, set()).update(present)
        for path in present:
            if is_always_stripped(path, always_strip) or not should_keep_path(path, keep):
                stripped_fields.add(path)

        prepared.append(_prepare(session, selected, always_strip, sanitizer))

    verdict = residue_check(
        text for item in prepared for text in collect_strings(item.sanitized_data)
    )
    final_state = SessionState.BLOCKED if verdict.blocked else SessionState.READY
    prepared = [replace(item, state=final_state) for item in prepared]

    report = sanitizer.get_report()
    options = config.redaction
    enabled = [
        name
        for name, on in (
            ("secrets", options.redact_secrets),
            ("pii", options.redact_pii),
            ("paths", options.redact_paths),
            ("code_blocks", options.mask_code_blocks),
        )
        if on
    ]
    redaction_report = BatchRedactionReport(
        total_redactions=report.total_redactions,
        counts_by_category=report.counts_by_category,
        enabled_categories=enabled,
        custom_regex_count=len(options.custom_regex),
        residue_warnings=list(verdict.warnings),
        blocked=verdict.blocked,
        total_strings_touched=report.strings_touched,
    )

    scores = [item.score for item in prepared]
    stats = PreparationStats(
        total_sessions=len(prepared),
        total_redactions=report.total_redactions,
        total_fields_stripped=len(stripped_fields),
        average_score=round(sum(scores) / len(scores), 1) if scores else 0.0,
    )
    if verdict.blocked:
        logger.warning("Batch of %d sessions blocked by residue check", len(prepared))
    logger.info(
        "Prepared %d sessions: %d redactions, %d fields stripped",
        stats.total_sessions,
        stats.total_redactions,
        stats.total_fields_stripped,
    )
    return PreparationResult(
        sessions=prepared,
        redaction_report=redaction_report,
        stripped_fields=sorted(stripped_fields),
        fields_present=sorted(fields_present),
        fields_by_source={label: sorted(paths) for label, paths in fields_by_source.items()},
        redaction_info_map=sanitizer.get_redaction_info_map(),
        blocked=verdict.blocked,
        residue_warnings=list(verdict.warnings),
        stats=stats,
    )


def ensure_exportable(result: PreparationResult) -> PreparationResult:
    if result.blocked:
        raise SubmissionBlockedError(list(result.residue_warnings))
    return result


def to_contrib_sessions(sessions: Sequence[PreparedSession]) -> list[dict[str, Any]]:
    """Sanitized view of prepared sessions for bundling. Raw data is not included."""
    return [
        {
            "session_id": session.session_id,
            "source": session.source,
            "raw_sha256": session.raw_sha256,
            "mtime_utc": session.mtime_utc,
            "data": session.sanitized_data,
            "preview": session.preview_redacted,
            "preview_redacted": session.preview_redacted,
            "score": session.score,
            "approx_chars": session.approx_chars,
            "source_path_hint": session.source_path_hint,
        }
        for session in sessions
    ]


def _truncate_regex(regex: str) -> str:
    return regex[:20] + "..."


def generate_prep_report(
    result: PreparationResult,
    config: PreparationConfig,
    bundle_id: str | None = None,
    manifest_sha256: str | None = None,
) -> dict[str, Any]:
    """Build the prep report that accompanies a donated bundle."""
    now = format_utc_now()
    contributor = config.contributor
    return {
        "app_version": config.app_version or "0.1.0",
        "created_at_utc": now,
        "bundle_id": bundle_id or make_bundle_id(contributor.contributor_id),
        "contributor": {
            "contributor_id": contributor.contributor_id,
            "license": contributor.license,
            "ai_use_preference": contributor.ai_preference,
        },
        "inputs": {
            "raw_export_manifest_sha256": manifest_sha256 or "",
            "selected_sessions": [
                {
                    "session_id": session.session_id,
                    "raw_sha256": session.raw_sha256,
                    "source_path_hint": session.source_path_hint,
                    "score": session.score,
                }
                for session in result.sessions
            ],
        },
        "redaction": {
            "counts": dict(result.redaction_report.counts_by_category),
            "total_strings_touched": result.redaction_report.total_strings_touched,
            "enabled_categories": list(result.redaction_report.enabled_categories),
            "custom_regexes": [_truncate_regex(r) for r in config.redaction.custom_regex],
            "residue_check_results": {
                "warnings": list(result.residue_warnings),
                "blocked": result.blocked,
            },
        },
        "rights": {
            "rights_statement": contributor.rights_statement,
            "rights_confirmed": contributor.rights_confirmed,
        },
        "user_attestation": {
            "reviewed": contributor.reviewed_confirmed,
            "reviewed_at_utc": now,
            "attestation_id": random_uuid(),
        },
    }
