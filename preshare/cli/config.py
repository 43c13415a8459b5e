"""Config command and its --flag handlers."""

from __future__ import annotations

import argparse
import json

from ..config import CONFIG_FILE, PreShareConfig, load_config, save_config
from ._helpers import _mask_config_for_display, _on_off, _parse_csv_arg

_TOGGLES = {
    "secrets": "redact_secrets",
    "pii": "redact_pii",
    "paths": "redact_paths",
    "code_blocks": "mask_code_blocks",
    "entropy": "enable_high_entropy",
    "encryption": "encryption_enabled",
}


def _merge_config_list(config: PreShareConfig, key: str, new_values: list[str]) -> None:
    """Append new_values to a config list, keeping order and dropping duplicates."""
    existing = list(config.get(key, []))
    for value in new_values:
        if value not in existing:
            existing.append(value)
    config[key] = existing


def _remove_from_config_list(config: PreShareConfig, key: str, values: list[str]) -> None:
    config[key] = [v for v in config.get(key, []) if v not in set(values)]


def configure(
    toggles: dict[str, bool] | None = None,
    add_regex: list[str] | None = None,
    remove_regex: list[str] | None = None,
    fields: list[str] | None = None,
    patterns_file: str | None = None,
) -> None:
    """Set config values non-interactively. Regex lists are MERGED (append), not replaced."""
    config = load_config()
    for key, value in (toggles or {}).items():
        config[key] = value
    if add_regex is not None:
        _merge_config_list(config, "custom_regex", add_regex)
    if remove_regex is not None:
        _remove_from_config_list(config, "custom_regex", remove_regex)
    if fields is not None:
        config["selected_fields"] = None if fields == ["default"] else fields
    if patterns_file is not None:
        config["custom_patterns_file"] = patterns_file or None
    save_config(config)
    print(f"Config saved to {CONFIG_FILE}")
    print(json.dumps(_mask_config_for_display(config), indent=2))


def _handle_config(args: argparse.Namespace) -> None:
    """Handle the config subcommand."""
    toggles = {
        key: _on_off(getattr(args, flag))
        for flag, key in _TOGGLES.items()
        if getattr(args, flag, None) is not None
    }
    # Regexes may contain commas, so these flags repeat instead of taking CSV.
    add_regex = args.regex or None
    remove_regex = args.remove_regex or None
    fields = _parse_csv_arg(args.fields)
    has_changes = toggles or add_regex or remove_regex or fields or args.patterns_file is not None
    if not has_changes:
        print(json.dumps(_mask_config_for_display(load_config()), indent=2))
        return
    configure(
        toggles=toggles,
        add_regex=add_regex,
        remove_regex=remove_regex,
        fields=fields,
        patterns_file=args.patterns_file,
    )
