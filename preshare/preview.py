"""Shared helpers for session previews, hashing, ids and path hints."""

from __future__ import annotations

import hashlib
import json
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any

_PREVIEW_FIELDS = ("role", "type", "timestamp", "model", "uuid", "message")
_META_FIELDS = ("inputTokens", "outputTokens", "model", "sessionId")
_WS_RE = re.compile(r"\s+")

MAX_TIMELINE_ITEMS = 30
MAX_PREVIEW_MESSAGES = 20
MAX_MESSAGE_CHARS = 200


def _squash(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)


def safe_preview(data: Any, max_len: int = 800) -> str:
    """One-line digest of a session: key fields and the start of the content."""
    if isinstance(data, str):
        return _squash(data[:max_len])

    parts: list[str] = []
    if isinstance(data, list):
        for item in data[:3]:
            if not isinstance(item, dict):
                continue
            for name in _PREVIEW_FIELDS:
                value = item.get(name)
                if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                    parts.append(f"{name}: {str(value)[:50]}")
            content = item.get("content") or item.get("text") or item.get("message")
            if isinstance(content, dict):
                content = content.get("content")
            if isinstance(content, str):
                parts.append(f"content: {content[:100]}...")
            elif isinstance(content, list):
                for block in content[:2]:
                    if not isinstance(block, dict):
                        continue
                    if isinstance(block.get("text"), str):
                        parts.append(f"text: {block['text'][:100]}...")
                    if isinstance(block.get("type"), str):
                        parts.append(f"type: {block['type']}")
            meta = item.get("meta")
            if isinstance(meta, dict):
                for name in _META_FIELDS:
                    if name in meta:
                        parts.append(f"meta.{name}: {str(meta[name])[:30]}")
            parts.append("---")
    elif isinstance(data, dict):
        for key, value in list(data.items())[:10]:
            if value is None:
                continue
            if isinstance(value, (str, int, float, bool)):
                parts.append(f"{key}: {str(value)[:50]}")
            elif isinstance(value, list):
                parts.append(f"{key}: [{len(value)} items]")
            else:
                parts.append(f"{key}: {{...}}")

    preview = _squash(" | ".join(parts)[:max_len])
    return preview or _dumps(data)[:max_len]


def _clock(value: Any, with_seconds: bool = True) -> str:
    """HH:MM[:SS] in UTC for an epoch-ms number or an ISO string; empty when unparseable."""
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str) and value:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        else:
            return ""
    except (ValueError, OverflowError, OSError):
        return ""
    return moment.strftime("%H:%M:%S" if with_seconds else "%H:%M")


def _block_text(block: Any) -> str:
    if not isinstance(block, dict):
        return ""
    if isinstance(block.get("text"), str):
        return block["text"]
    kind = block.get("type")
    if kind == "thinking":
        return "[thinking...]"
    if kind == "tool_use":
        return f"[tool: {block.get('name')}]"
    if kind == "tool_result":
        return "[tool result]"
    return ""


def _message_text(message: dict[str, Any]) -> str:
    content = message.get("content")
    if content is None and isinstance(message.get("message"), dict):
        content = message["message"].get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(text for text in (_block_text(b) for b in content) if text)
    if isinstance(message.get("text"), str):
        return message["text"]
    return ""


def _tool_timeline(data: dict[str, Any]) -> list[str]:
    usages = [u for u in data["tool_usages"] if isinstance(u, dict)]
    session = data.get("session")
    lines: list[str] = []
    if isinstance(session, dict):
        cwd = session.get("cwd")
        tool_count = session.get("tool_count", len(usages))
        lines.append(f"[dir] {redact_path_username(cwd) if isinstance(cwd, str) else 'unknown'}")
        lines.append(f"[permission] {session.get('permission_mode') or 'default'} | Tools: {tool_count}")
        lines.append("")
    lines.append("Tool Timeline:")
    for usage in usages[:MAX_TIMELINE_ITEMS]:
        success = usage.get("success")
        icon = "ok" if success is True else "x" if success is False else "-"
        duration_ms = usage.get("duration_ms")
        duration = f"{duration_ms / 1000:.1f}s" if isinstance(duration_ms, (int, float)) and duration_ms else ""
        line = f"  {icon} {_clock(usage.get('timestamp'))} {usage.get('tool_name') or 'unknown'} {duration}"
        lines.append(line.rstrip())
    if len(usages) > MAX_TIMELINE_ITEMS:
        lines.append(f"  ... and {len(usages) - MAX_TIMELINE_ITEMS} more tool calls")
    return lines


def _usage_line(data: dict[str, Any]) -> str:
    parts: list[str] = []
    for name in ("total_input_tokens", "total_output_tokens"):
        value = data.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            parts.append(f"{name.removeprefix('total_').removesuffix('_tokens')}: {value:,}")
    cost = data.get("estimated_cost_usd")
    if isinstance(cost, (int, float)) and not isinstance(cost, bool):
        parts.append(f"cost: ${cost:.3f}")
    return " | ".join(parts)


def format_chat_preview(data: Any, max_len: int = 4000) -> str:
    """Multi-line, chat-style rendering used for side-by-side review."""
    if not isinstance(data, (dict, list)) or not data:
        return safe_preview(data, max_len)

    if isinstance(data, dict) and isinstance(data.get("tool_usages"), list):
        return "\n".join(_tool_timeline(data))[:max_len]

    if isinstance(data, list):
        messages = data
    elif isinstance(data.get("messages"), list):
        messages = data["messages"]
    else:
        messages = []

    lines: list[str] = []
    for message in messages[:MAX_PREVIEW_MESSAGES]:
        if not isinstance(message, dict):
            continue
        role = str(message.get("role") or message.get("type") or "unknown")
        content = _message_text(message)
        lines.append(f"[{role.capitalize()}] {_clock(message.get('timestamp'), with_seconds=False)}".rstrip())
        snippet = content[:MAX_MESSAGE_CHARS].replace("\n", " ").strip()
        if snippet:
            lines.append(f"  {snippet}{'...' if len(content) > MAX_MESSAGE_CHARS else ''}")
        lines.append("")
    if len(messages) > MAX_PREVIEW_MESSAGES:
        lines.append(f"... and {len(messages) - MAX_PREVIEW_MESSAGES} more messages")

    if isinstance(data, dict):
        usage = _usage_line(data)
        if usage:
            lines.insert(0, f"[usage] {usage}\n")

    return "\n".join(lines)[:max_len] or safe_preview(data, max_len)


def format_utc_now() -> str:
    """Current UTC time as ISO-8601 without fractional seconds, e.g. ``2026-01-02T03:04:05Z``."""
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def random_uuid() -> str:
    return str(uuid.uuid4())


_USER_PATH_RES = (
    (re.compile(r"/Users/[^/]+/"), "/Users/<USER>/"),
    (re.compile(r"/home/[^/]+/"), "/home/<USER>/"),
    (re.compile(r"C:\\Users\\[^\\]+\\", re.IGNORECASE), r"C:\\Users\\<USER>\\"),
)


def redact_path_username(path: str) -> str:
    """Replace the account name in home-directory paths with ``<USER>``."""
    for pattern, replacement in _USER_PATH_RES:
        path = pattern.sub(replacement, path)
    return path


def sha256_hex(data: Any) -> str:
    """SHA-256 of a string as-is, or of the compact JSON encoding of anything else."""
    text = data if isinstance(data, str) else _dumps(data)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def approx_chars(data: Any) -> int:
    return len(_dumps(data))


def parse_json_lines(text: str) -> list[Any]:
    """Parse JSONL text, skipping blank and malformed lines."""
    rows: list[Any] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            rows.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return rows


def infer_source(path: str) -> str:
    lower = path.lower()
    if "opencode" in lower:
        return "opencode"
    if "claude" in lower:
        return "claude"
    if "codex" in lower:
        return "codex"
    return "unknown"


def extract_entry_types(data: Any) -> tuple[dict[str, int], str]:
    """Count entries by ``type`` (or ``role``). Returns the counts and the most common type."""
    types: dict[str, int] = {}
    if not isinstance(data, list):
        return types, "unknown"
    for item in data:
        if isinstance(item, dict):
            kind = str(item.get("type") or item.get("role") or "unknown")
            types[kind] = types.get(kind, 0) + 1
    if not types:
        return types, "unknown"
    return types, max(types.items(), key=lambda kv: kv[1])[0]


def make_bundle_id(contributor_id: str) -> str:
    safe = re.sub(r"[^a-z0-9_-]+", "-", contributor_id.strip().lower())
    stamp = format_utc_now().replace("-", "").replace(":", "")
    return f"{stamp}_{safe or 'anonymous'}_{secrets.token_hex(3)}"
