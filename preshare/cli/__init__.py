"""CLI entry point for preshare: dispatches to subcommand modules."""

import argparse
import logging
import logging.handlers
import sys
from pathlib import Path

from .. import __version__
from ..config import CONFIG_DIR
from ._helpers import SOURCE_CHOICES
from .catalog import handle_fields, handle_patterns
from .config import _handle_config
from .diff import handle_diff
from .prep import handle_prep

LOG_FILE = CONFIG_DIR / "preshare.log"

COMMAND_HANDLERS = {
    "prep": handle_prep,
    "diff": handle_diff,
    "fields": handle_fields,
    "patterns": handle_patterns,
    "config": _handle_config,
}


def _setup_logger(verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("preshare")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if logger.handlers:
        return logger
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            LOG_FILE,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
    except OSError as exc:
        print(f"Warning: could not open {LOG_FILE}: {exc}", file=sys.stderr)
        handler = logging.NullHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if verbose:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        logger.addHandler(stream)
    return logger


def _on_off_arg(parser: argparse.ArgumentParser, flag: str, help_text: str) -> None:
    parser.add_argument(f"--{flag.replace('_', '-')}", dest=flag, choices=["on", "off"], help=help_text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="preshare",
        description="Prepare coding-agent session transcripts for donation without leaking secrets",
    )
    parser.add_argument("--version", "-V", action="version", version=__version__)
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command")

    prep = sub.add_parser("prep", help="Strip, sanitize, score and audit session files")
    prep.add_argument("files", nargs="+", type=Path, help="Session files (.json or .jsonl)")
    prep.add_argument("--source", choices=SOURCE_CHOICES, default="auto",
                      help="Agent that produced the files (default: infer from path)")
    prep.add_argument("--fields", type=str, help="Comma-separated field paths to keep (default: schema defaults)")
    prep.add_argument("--no-secrets", action="store_true", help="Do not redact secrets and credentials")
    prep.add_argument("--no-pii", action="store_true", help="Do not redact PII and network identifiers")
    prep.add_argument("--no-paths", action="store_true", help="Do not redact home-directory paths")
    prep.add_argument("--mask-code-blocks", action="store_true", help="Replace fenced code blocks")
    prep.add_argument("--no-entropy", action="store_true", help="Disable high-entropy token detection")
    prep.add_argument("--regex", action="append", default=None,
                      help="Extra regex to redact (repeatable); replaces configured custom regexes")
    prep.add_argument("--contributor-id", type=str, default=None)
    prep.add_argument("--license", type=str, default=None)
    prep.add_argument("--ai-preference", type=str, default=None)
    prep.add_argument("--confirm-rights", action="store_true", help="Confirm you have the right to share")
    prep.add_argument("--reviewed", action="store_true", help="Attest that the sanitized output was reviewed")
    prep.add_argument("--bundle-id", type=str, default=None)
    prep.add_argument("--top", type=int, default=0, help="Keep only the N highest-scoring sessions")
    prep.add_argument("--include-data", action="store_true", help="Include sanitized data in the output")
    prep.add_argument("--cache", type=Path, default=None,
                      help="Write a local prep cache (encrypted when enabled) for `preshare diff`")

    diff = sub.add_parser("diff", help="Show original vs redacted previews from a prep cache")
    diff.add_argument("--file", type=Path, required=True)
    diff.add_argument("--limit", type=int, default=0)
    diff.add_argument("--format", choices=["json", "text"], default="json")

    fields = sub.add_parser("fields", help="List known fields and their export category")
    fields.add_argument("--source", default="all",
                        help="Schema scope: all, claude, codex, opencode, cc_hook, cc_transcript")

    patterns = sub.add_parser("patterns", help="List, validate or try redaction patterns")
    patterns.add_argument("action", choices=["list", "validate", "test"])
    patterns.add_argument("--file", type=Path, default=None, help="Custom patterns JSON file")
    patterns.add_argument("--category", type=str, default=None)
    patterns.add_argument("--text", type=str, default=None, help="Text to test against (default: built-in sample)")

    cfg = sub.add_parser("config", help="View or set config")
    _on_off_arg(cfg, "secrets", "Redact secrets and credentials")
    _on_off_arg(cfg, "pii", "Redact PII and network identifiers")
    _on_off_arg(cfg, "paths", "Redact home-directory paths")
    _on_off_arg(cfg, "code_blocks", "Mask fenced code blocks")
    _on_off_arg(cfg, "entropy", "Detect high-entropy tokens")
    _on_off_arg(cfg, "encryption", "Encrypt local prep caches")
    cfg.add_argument("--regex", action="append", default=None, help="Add a custom regex (repeatable)")
    cfg.add_argument("--remove-regex", action="append", default=None, help="Remove a custom regex (repeatable)")
    cfg.add_argument("--fields", type=str,
                     help="Comma-separated default field selection, or 'default' for schema defaults")
    cfg.add_argument("--patterns-file", type=str, default=None,
                     help="Custom patterns JSON merged into every run ('' to clear)")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)
    _setup_logger(verbose=args.verbose)
    COMMAND_HANDLERS[args.command](args)
