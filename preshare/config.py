"""Persistent config for preshare, stored at ~/.preshare/config.json."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, TypedDict

from . import __version__
from .types import ContributorMeta, PreparationConfig, RedactionOptions

CONFIG_DIR = Path.home() / ".preshare"
CONFIG_FILE = CONFIG_DIR / "config.json"


class PreShareConfig(TypedDict, total=False):
    """Expected shape of the config dict."""

    redact_secrets: bool
    redact_pii: bool
    redact_paths: bool
    mask_code_blocks: bool
    enable_high_entropy: bool
    high_entropy_min_length: int
    high_entropy_threshold: float
    custom_regex: list[str]
    selected_fields: list[str] | None  # None means schema defaults
    custom_patterns_file: str | None
    encryption_enabled: bool
    encryption_key_ref: str | None
    app_version: str


DEFAULT_CONFIG: PreShareConfig = {
    "redact_secrets": True,
    "redact_pii": True,
    "redact_paths": True,
    "mask_code_blocks": False,
    "enable_high_entropy": True,
    "high_entropy_min_length": 20,
    "high_entropy_threshold": 4.0,
    "custom_regex": [],
    "selected_fields": None,
    "custom_patterns_file": None,
    "encryption_enabled": True,
    "encryption_key_ref": None,
    "app_version": __version__,
}


def load_config() -> PreShareConfig:
    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, encoding="utf-8", errors="replace") as f:
                stored = json.load(f)
            return {**DEFAULT_CONFIG, **stored}
        except (json.JSONDecodeError, OSError) as exc:
            print(f"Warning: could not read {CONFIG_FILE}: {exc}", file=sys.stderr)
    return dict(DEFAULT_CONFIG)


def save_config(config: PreShareConfig) -> None:
    try:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        CONFIG_FILE.chmod(0o600)
    except OSError as exc:
        print(f"Warning: could not save {CONFIG_FILE}: {exc}", file=sys.stderr)


def preparation_config_from(
    config: PreShareConfig,
    overrides: dict[str, Any] | None = None,
    contributor: ContributorMeta | None = None,
) -> PreparationConfig:
    """Build a :class:`PreparationConfig` from stored settings plus per-run overrides.

    ``overrides`` uses the same keys as the stored config; ``None`` values are ignored.
    """
    merged: dict[str, Any] = {**DEFAULT_CONFIG, **config}
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    selected = merged.get("selected_fields")
    return PreparationConfig(
        redaction=RedactionOptions.from_dict(merged),
        selected_fields=list(selected) if selected is not None else None,
        contributor=contributor or ContributorMeta(),
        app_version=str(merged.get("app_version") or __version__),
    )
