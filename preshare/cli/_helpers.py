"""Shared utilities and formatting helpers used across CLI subcommands."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

from ..config import PreShareConfig
from ..pattern_tools import PatternManager
from ..patterns import PatternDefinition
from ..sources import RawSession, load_raw_session

SOURCE_CHOICES = ["auto", "claude", "codex", "opencode", "gemini"]


def _mask_secret(s: str) -> str:
    """Mask a secret string for display, e.g. 'ghp_...wxyz'."""
    if len(s) <= 8:
        return "***"
    return f"{s[:4]}...{s[-4:]}"


def _mask_config_for_display(config: PreShareConfig) -> dict[str, Any]:
    """Return a copy of config with custom regexes masked (they often embed the secret itself)."""
    out: dict[str, Any] = dict(config)
    if out.get("custom_regex"):
        out["custom_regex"] = [_mask_secret(r) for r in out["custom_regex"]]
    return out


def _parse_csv_arg(value: str | None) -> list[str] | None:
    """Parse a comma-separated CLI argument into a list of stripped strings."""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _on_off(value: str | None) -> bool | None:
    if value is None:
        return None
    return value == "on"


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _fail(error: str, **extra: Any) -> NoReturn:
    _print_json({"ok": False, "error": error, **extra})
    sys.exit(1)


def _load_sessions(paths: list[Path], source: str = "auto") -> list[RawSession]:
    """Read transcript files; unreadable or malformed files abort with a JSON error."""
    sessions: list[RawSession] = []
    for path in paths:
        if not path.is_file():
            _fail("Session file not found.", path=str(path))
        try:
            sessions.append(load_raw_session(path, source=None if source == "auto" else source))
        except (OSError, json.JSONDecodeError) as exc:
            _fail("Could not read session file.", path=str(path), detail=str(exc))
    return sessions


def _pattern_manager(config: PreShareConfig, patterns_file: Path | None = None) -> PatternManager:
    """Canonical patterns plus the custom file from the CLI flag or config, if any."""
    manager = PatternManager()
    path = patterns_file or (Path(config["custom_patterns_file"]) if config.get("custom_patterns_file") else None)
    if path is None:
        return manager
    if not path.is_file():
        _fail("Custom patterns file not found.", path=str(path))
    result = manager.load_file(path)
    if not result.valid:
        _fail("Custom patterns file is invalid.", path=str(path), errors=result.errors)
    return manager


def _base_patterns(config: PreShareConfig) -> dict[str, PatternDefinition] | None:
    """Pattern set for the sanitizer, or None for the canonical library alone."""
    if not config.get("custom_patterns_file"):
        return None
    return _pattern_manager(config).build_pattern_set()
