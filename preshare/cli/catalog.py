"""Read-only commands for the field schema registry and the redaction pattern library."""

from __future__ import annotations

import argparse
from dataclasses import asdict

from ..config import load_config
from ..fields import get_default_selected_fields, group_fields_by_category
from ..pattern_tools import (
    find_all_pattern_matches,
    generate_sample_text,
    highlight_matches,
    summarize_match_results,
    validate_patterns,
)
from ..patterns import patterns_version
from ..schemas import CONTENT_HEAVY_FIELDS
from ._helpers import _fail, _pattern_manager, _print_json


def handle_fields(args: argparse.Namespace) -> None:
    """List known fields for a source, grouped by export category."""
    grouped = group_fields_by_category(args.source)
    _print_json({
        "ok": True,
        "source": args.source,
        "default_selection": get_default_selected_fields(args.source),
        "content_heavy": list(CONTENT_HEAVY_FIELDS),
        "categories": {
            category: [asdict(schema) for schema in schemas]
            for category, schemas in grouped.items()
            if schemas
        },
    })


def handle_patterns(args: argparse.Namespace) -> None:
    """List, validate or try the active pattern set (canonical plus custom file)."""
    manager = _pattern_manager(load_config(), args.file)

    if args.action == "list":
        _print_json({
            "ok": True,
            "version": patterns_version(),
            "summary": manager.get_summary(),
            "patterns": [
                {**p.to_dict(), "custom": manager.is_custom_pattern(p.name)}
                for p in manager.get_all_patterns()
                if args.category is None or p.category == args.category
            ],
        })
        return

    if args.action == "validate":
        result = validate_patterns(manager.get_all_patterns())
        if not result.valid:
            _fail("Pattern set has errors.", errors=result.errors, warnings=result.warnings)
        _print_json({"ok": True, "warnings": result.warnings})
        return

    text = args.text if args.text is not None else generate_sample_text()
    categories = [args.category] if args.category else None
    results = find_all_pattern_matches(manager.build_pattern_set(categories=categories).values(), text)
    _print_json({
        "ok": True,
        "summary": summarize_match_results(results),
        "highlighted": highlight_matches(text, [m for r in results for m in r.matches]),
        "matches": {
            r.pattern_name: [m.match for m in r.matches]
            for r in results
            if r.match_count
        },
    })
