"""Prep command: strip, sanitize, score and audit session files, then print the prep report."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from ..config import load_config, preparation_config_from
from ..pipeline import generate_prep_report, prepare_sessions
from ..preview import sha256_hex
from ..sanitizer import create_sanitizer
from ..scoring import select_top_sessions
from ..sources import RawSession
from ..storage import write_jsonl
from ..types import ContributorMeta, PreparationResult
from ._helpers import _base_patterns, _load_sessions, _parse_csv_arg, _print_json

logger = logging.getLogger(__name__)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "selected_fields": _parse_csv_arg(args.fields),
        "custom_regex": args.regex or None,
    }
    if args.no_secrets:
        overrides["redact_secrets"] = False
    if args.no_pii:
        overrides["redact_pii"] = False
    if args.no_paths:
        overrides["redact_paths"] = False
    if args.mask_code_blocks:
        overrides["mask_code_blocks"] = True
    if args.no_entropy:
        overrides["enable_high_entropy"] = False
    return overrides


def _contributor(args: argparse.Namespace) -> ContributorMeta:
    return ContributorMeta.from_dict({
        "contributor_id": args.contributor_id,
        "license": args.license,
        "ai_preference": args.ai_preference,
        "rights_confirmed": args.confirm_rights,
        "reviewed_confirmed": args.reviewed,
    })


def _manifest_sha256(result: PreparationResult) -> str:
    return sha256_hex([[s.session_id, s.raw_sha256] for s in result.sessions])


def _top_raw_sessions(sessions: list[RawSession], result: PreparationResult, count: int) -> list[RawSession]:
    """Raw sessions behind the ``count`` best-scoring prepared sessions, best first."""
    raw_by_prepared = {id(prepared): raw for prepared, raw in zip(result.sessions, sessions)}
    return [raw_by_prepared[id(prepared)] for prepared in select_top_sessions(result.sessions, count)]


def _write_cache(path: Path, result: PreparationResult, config: dict[str, Any]) -> bool:
    rows: list[dict[str, Any]] = []
    for session in result.sessions:
        rows.append({
            "kind": "session",
            **session.summary(),
            "raw_data": session.raw_data,
            "sanitized_data": session.sanitized_data,
            "preview_original": session.preview_original,
            "preview_redacted": session.preview_redacted,
        })
    rows.append({
        "kind": "redaction_info",
        "placeholders": {k: asdict(v) for k, v in result.redaction_info_map.items()},
    })
    return write_jsonl(path, rows, config=config)


def handle_prep(args: argparse.Namespace) -> None:
    """Prepare the given session files for donation and print the outcome as JSON."""
    config = load_config()
    prep_config = preparation_config_from(config, _overrides(args), contributor=_contributor(args))
    sessions = _load_sessions(args.files, args.source)

    sanitizer = create_sanitizer(prep_config.redaction, _base_patterns(config))
    result = prepare_sessions(sessions, prep_config, sanitizer)
    if args.top and args.top > 0:
        # Residue verdict and totals cover only the exported sessions.
        sessions = _top_raw_sessions(sessions, result, args.top)
        sanitizer = create_sanitizer(prep_config.redaction, _base_patterns(config))
        result = prepare_sessions(sessions, prep_config, sanitizer)

    report = generate_prep_report(
        result,
        prep_config,
        bundle_id=args.bundle_id,
        manifest_sha256=_manifest_sha256(result),
    )
    payload: dict[str, Any] = {
        "ok": not result.blocked,
        "blocked": result.blocked,
        "sanitizer_warnings": sanitizer.warnings,
        "summary": result.to_dict(include_data=args.include_data),
        "prep_report": report,
    }
    if args.cache:
        payload["cache"] = {"path": str(args.cache), "encrypted": _write_cache(args.cache, result, config)}
    if result.blocked:
        payload["error"] = "Residue check blocked this batch. Deselect the affected sessions or fields and rerun."
        logger.warning("prep blocked for %d files", len(args.files))
        _print_json(payload)
        sys.exit(1)
    _print_json(payload)
