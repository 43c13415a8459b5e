"""Tests for preshare.sources and preshare.preview."""

import json
import re

import pytest

from preshare.preview import (
    approx_chars,
    extract_entry_types,
    format_chat_preview,
    format_utc_now,
    infer_source,
    make_bundle_id,
    parse_json_lines,
    redact_path_username,
    safe_preview,
    sha256_hex,
)
from preshare.sources import RawSession, categorize_source_type, load_raw_session
from preshare.types import SourceKind, SourceType


# --- classification ---


class TestCategorizeSourceType:
    def test_hook_envelope(self, hook_session):
        assert categorize_source_type("claude", hook_session) == SourceType(SourceKind.HOOK_SESSION, "cc_hook")

    def test_hook_marker_keys(self):
        assert categorize_source_type("unknown", {"tool_name": "Bash"}).kind == SourceKind.HOOK_SESSION

    def test_messages_list(self):
        result = categorize_source_type("unknown", {"messages": []})
        assert result == SourceType(SourceKind.CHAT_TRANSCRIPT, "cc_transcript")

    def test_single_message_entry(self):
        result = categorize_source_type("unknown", {"message": {"model": "m"}})
        assert result.kind == SourceKind.CHAT_TRANSCRIPT

    def test_entry_list(self, claude_entries):
        assert categorize_source_type("codex", claude_entries).label == "cc_transcript"

    def test_tool_list(self):
        assert categorize_source_type("claude", [{"tool_name": "Read"}]).label == "cc_hook"

    def test_falls_back_to_source(self):
        assert categorize_source_type("codex", {"payload": 1}) == SourceType(
            SourceKind.CHAT_TRANSCRIPT, "codex_transcript"
        )

    @pytest.mark.parametrize("source,label", [("mystery", "mystery"), ("", "unknown")])
    def test_unknown(self, source, label):
        assert categorize_source_type(source, "text") == SourceType(SourceKind.UNKNOWN, label)


class TestRawSession:
    def test_classified_once_on_creation(self, hook_session):
        session = RawSession("h", "claude", hook_session)
        assert session.source_type.label == "cc_hook"
        assert session.schema_scopes() == ("claude", "cc_hook")

    def test_scopes_not_duplicated(self):
        session = RawSession("x", "mystery", {"a": 1})
        assert session.schema_scopes() == ("mystery",)


class TestLoadRawSession:
    def test_jsonl_infers_source(self, tmp_path, claude_entries):
        path = tmp_path / ".claude" / "projects" / "abc.jsonl"
        path.parent.mkdir(parents=True)
        lines = [json.dumps(e) for e in claude_entries]
        path.write_text(lines[0] + "\n\nnot json\n" + lines[1] + "\n", encoding="utf-8")

        session = load_raw_session(path)
        assert session.session_id == "abc"
        assert session.source == "claude"
        assert session.data == claude_entries
        assert session.source_path_hint == str(path)
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", session.mtime_utc)

    def test_json_document(self, tmp_path, hook_session):
        path = tmp_path / "session.json"
        path.write_text(json.dumps(hook_session), encoding="utf-8")
        session = load_raw_session(path, source="claude", session_id="custom")
        assert session.session_id == "custom"
        assert session.source_type.kind == SourceKind.HOOK_SESSION

    def test_malformed_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_raw_session(path, source="claude")

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            load_raw_session(tmp_path / "missing.json")


# --- previews ---


class TestSafePreview:
    def test_string_squashed_and_truncated(self):
        assert safe_preview("a \n\n b " + "x" * 1000, max_len=10) == "a b xxx"

    def test_entry_list(self, claude_entries):
        preview = safe_preview(claude_entries)
        assert "type: user" in preview
        assert "uuid: u-2" in preview
        assert "---" in preview

    def test_dict(self):
        preview = safe_preview({"session": {"a": 1}, "tool_usages": [1, 2], "name": "x", "none": None})
        assert preview == "session: {...} | tool_usages: [2 items] | name: x"

    def test_scalar_falls_back_to_json(self):
        assert safe_preview(5) == "5"


class TestFormatChatPreview:
    def test_transcript(self, claude_entries):
        preview = format_chat_preview(claude_entries)
        assert preview.splitlines()[:5] == [
            "[User] 10:00",
            "  Tests fail with a traceback, please fix",
            "",
            "[Assistant] 10:00",
            "  [thinking...] Running pytest now.",
        ]

    def test_hook_timeline(self, hook_session):
        assert format_chat_preview(hook_session).splitlines() == [
            "[dir] /home/<USER>/project",
            "[permission] default | Tools: 2",
            "",
            "Tool Timeline:",
            "  ok 10:00:00 Bash 1.2s",
            "  x 10:01:00 Read",
        ]

    def test_timeline_overflow(self):
        data = {"tool_usages": [{"tool_name": "Read"} for _ in range(35)]}
        assert format_chat_preview(data).splitlines()[-1] == "  ... and 5 more tool calls"

    def test_message_overflow_and_truncation(self):
        messages = [{"role": "user", "content": "y" * 300} for _ in range(25)]
        lines = format_chat_preview({"messages": messages}, max_len=100000).splitlines()
        assert lines[1] == "  " + "y" * 200 + "..."
        assert lines[-1] == "... and 5 more messages"

    def test_usage_header(self):
        data = {"messages": [{"role": "user", "content": "hi"}], "total_input_tokens": 1200, "estimated_cost_usd": 0.5}
        assert format_chat_preview(data).startswith("[usage] input: 1,200 | cost: $0.500\n")

    def test_empty_uses_safe_preview(self):
        assert format_chat_preview([]) == "[]"


# --- small helpers ---


class TestHelpers:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/Users/alice/work/x.py", "/Users/<USER>/work/x.py"),
            ("/home/bob/.claude/p.jsonl", "/home/<USER>/.claude/p.jsonl"),
            ("C:\\Users\\carol\\proj\\a.txt", "C:\\Users\\<USER>\\proj\\a.txt"),
            ("/tmp/x", "/tmp/x"),
        ],
    )
    def test_redact_path_username(self, path, expected):
        assert redact_path_username(path) == expected

    def test_sha256_of_string(self):
        assert sha256_hex("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_sha256_of_object_uses_compact_json(self):
        assert sha256_hex({"a": 1}) == sha256_hex('{"a":1}')

    def test_approx_chars(self):
        assert approx_chars({"a": 1}) == 7

    def test_parse_json_lines(self):
        assert parse_json_lines('{"a":1}\n\nbad\n[2]\n') == [{"a": 1}, [2]]

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/x/.opencode/s.json", "opencode"),
            ("/x/.claude/projects/s.jsonl", "claude"),
            ("/x/.codex/sessions/s.jsonl", "codex"),
            ("/x/s.json", "unknown"),
        ],
    )
    def test_infer_source(self, path, expected):
        assert infer_source(path) == expected

    def test_extract_entry_types(self):
        data = [{"type": "user"}, {"type": "assistant"}, {"type": "user"}, {"role": "system"}, "x"]
        assert extract_entry_types(data) == ({"user": 2, "assistant": 1, "system": 1}, "user")
        assert extract_entry_types({"a": 1}) == ({}, "unknown")

    def test_make_bundle_id(self):
        assert re.fullmatch(r"\d{8}T\d{6}Z_dev-seven-_[0-9a-f]{6}", make_bundle_id("Dev Seven!"))

    def test_format_utc_now(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", format_utc_now())
