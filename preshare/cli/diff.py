"""Show what a prep run changed, from its local prep cache."""

from __future__ import annotations

import argparse
from typing import Any

from ..config import load_config
from ..preview import format_chat_preview
from ..storage import EncryptionError, read_jsonl
from ._helpers import _fail, _print_json


def handle_diff(args: argparse.Namespace) -> None:
    """Print side-by-side previews and the placeholder legend for a cached prep run."""
    if not args.file.is_file():
        _fail("Prep cache not found.", path=str(args.file), hint="Run `preshare prep ... --cache PATH` first.")
    try:
        rows = read_jsonl(args.file, config=load_config())
    except EncryptionError as exc:
        _fail("Prep cache could not be decrypted.", path=str(args.file), detail=str(exc))

    sessions: list[dict[str, Any]] = []
    placeholders: dict[str, Any] = {}
    for row in rows:
        if row.get("kind") == "redaction_info":
            placeholders.update(row.get("placeholders") or {})
        elif row.get("kind") == "session":
            sessions.append(row)
    if args.limit and args.limit > 0:
        sessions = sessions[: args.limit]

    by_category: dict[str, int] = {}
    for info in placeholders.values():
        category = str(info.get("category", "unknown"))
        by_category[category] = by_category.get(category, 0) + 1

    payload = {
        "ok": True,
        "file": str(args.file),
        "sessions_shown": len(sessions),
        "placeholders_by_category": by_category,
        "placeholders": placeholders,
        "sessions": [
            {
                "session_id": session.get("session_id"),
                "source_type": session.get("source_type"),
                "score": session.get("score"),
                "state": session.get("state"),
                "original": format_chat_preview(session.get("raw_data")),
                "redacted": format_chat_preview(session.get("sanitized_data")),
            }
            for session in sessions
        ],
    }
    if args.format == "text":
        for entry in payload["sessions"]:
            print(f"=== {entry['session_id']} ({entry['source_type']}, score {entry['score']}) ===")
            print("--- original ---")
            print(entry["original"])
            print("--- redacted ---")
            print(entry["redacted"])
            print()
        print(f"Placeholders: {by_category}")
    else:
        _print_json(payload)
