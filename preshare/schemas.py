"""Static registry of known transcript fields and how each should be treated on export."""

from __future__ import annotations

import re
from dataclasses import dataclass

ESSENTIAL = "essential"
RECOMMENDED = "recommended"
OPTIONAL = "optional"
STRIP = "strip"
CONTENT_HEAVY = "content_heavy"
ALWAYS_STRIP = "always_strip"

FIELD_CATEGORIES = (ESSENTIAL, RECOMMENDED, OPTIONAL, STRIP, CONTENT_HEAVY, ALWAYS_STRIP)

# Scopes a schema entry can apply to. "all" matches every session.
SOURCE_SCOPES = ("all", "claude", "codex", "opencode", "cc_hook", "cc_transcript")


@dataclass(frozen=True)
class FieldSchema:
    path: str
    category: str
    label: str
    description: str
    source: str = "all"


FIELD_SCHEMAS: tuple[FieldSchema, ...] = (
    # Conversation core
    FieldSchema("type", ESSENTIAL, "Entry Type", "Message type (user, assistant, tool_result)"),
    FieldSchema("role", ESSENTIAL, "Role", "Speaker role (user, assistant, system)"),
    FieldSchema("message.role", ESSENTIAL, "Message Role", "Role inside the message envelope", "claude"),
    FieldSchema("message.content", ESSENTIAL, "Message Content", "Conversation text and content blocks", "claude"),
    FieldSchema("content", ESSENTIAL, "Content", "Conversation text"),
    FieldSchema("text", ESSENTIAL, "Text", "Plain text body"),

    # Timeline and linkage
    FieldSchema("timestamp", RECOMMENDED, "Timestamp", "When the entry was recorded"),
    FieldSchema("sessionId", RECOMMENDED, "Session ID", "Identifier of the session"),
    FieldSchema("uuid", RECOMMENDED, "Entry UUID", "Unique entry identifier", "claude"),
    FieldSchema("parentUuid", RECOMMENDED, "Parent UUID", "Identifier of the previous entry", "claude"),
    FieldSchema("message.model", RECOMMENDED, "Model", "Model that produced the message", "claude"),
    FieldSchema("message.stop_reason", RECOMMENDED, "Stop Reason", "Why generation stopped", "claude"),
    FieldSchema("message.usage", RECOMMENDED, "Token Usage", "Token accounting for the message", "claude"),
    FieldSchema("usage", RECOMMENDED, "Usage", "Token accounting"),

    # Useful but not required
    FieldSchema("version", OPTIONAL, "Client Version", "Version of the agent client", "claude"),
    FieldSchema("message.id", OPTIONAL, "Message ID", "Provider message identifier", "claude"),
    FieldSchema("message.type", OPTIONAL, "Message Type", "Provider message type", "claude"),
    FieldSchema("message.stop_sequence", OPTIONAL, "Stop Sequence", "Stop sequence that ended generation", "claude"),
    FieldSchema("requestId", OPTIONAL, "Request ID", "Provider request identifier", "claude"),
    FieldSchema("isSidechain", OPTIONAL, "Sidechain Flag", "Entry belongs to a sub-agent branch", "claude"),
    FieldSchema("isMeta", OPTIONAL, "Meta Flag", "Entry is client metadata", "claude"),
    FieldSchema("userType", OPTIONAL, "User Type", "Kind of user that produced the entry", "claude"),
    FieldSchema("summary", OPTIONAL, "Summary", "Conversation summary text", "claude"),
    FieldSchema("leafUuid", OPTIONAL, "Leaf UUID", "Last entry covered by a summary", "claude"),
    FieldSchema("subtype", OPTIONAL, "Subtype", "Entry subtype", "claude"),
    FieldSchema("level", OPTIONAL, "Level", "Log level for system entries", "claude"),
    FieldSchema("gitBranch", OPTIONAL, "Git Branch", "Branch checked out during the session", "claude"),
    FieldSchema("exit_code", OPTIONAL, "Exit Code", "Exit status of a command", "codex"),
    FieldSchema("status", OPTIONAL, "Status", "Command or turn status", "codex"),

    # Stripped unless explicitly selected
    FieldSchema("cwd", STRIP, "Working Directory", "Local working directory (contains the username)"),
    FieldSchema("sourcePathHint", STRIP, "Source Path", "Local path of the transcript file"),
    FieldSchema("original_path_hint", STRIP, "Original Path", "Local path before import"),
    FieldSchema("filePath", STRIP, "File Path", "Local file path"),
    FieldSchema("toolUseResult", STRIP, "Tool Result Payload", "Raw tool output, often large", "claude"),
    FieldSchema("hookErrors", STRIP, "Hook Errors", "Errors raised by client hooks", "claude"),
    FieldSchema("hookInfos", STRIP, "Hook Infos", "Client hook diagnostics", "claude"),
    FieldSchema("hasOutput", STRIP, "Has Output", "Hook output flag", "claude"),
    FieldSchema("preventedContinuation", STRIP, "Prevented Continuation", "Hook stopped the turn", "claude"),
    FieldSchema("agentId", STRIP, "Agent ID", "Local agent identifier", "claude"),
    FieldSchema("aggregated_output", STRIP, "Aggregated Output", "Combined command output", "codex"),
    FieldSchema("command", STRIP, "Command", "Shell command line", "codex"),

    # Never exported
    FieldSchema("message.content[].source.data", ALWAYS_STRIP, "Embedded Media",
                "Base64 image or document payload", "claude"),
    FieldSchema("content[].source.data", ALWAYS_STRIP, "Embedded Media", "Base64 image or document payload"),
    FieldSchema("*.source.data", ALWAYS_STRIP, "Embedded Media", "Base64 image or document payload"),
    FieldSchema("message.content[].signature", ALWAYS_STRIP, "Thinking Signature",
                "Opaque provider signature on thinking blocks", "claude"),

    # Hook sessions
    FieldSchema("session", RECOMMENDED, "Session", "Hook session envelope", "cc_hook"),
    FieldSchema("session.session_id", RECOMMENDED, "Session ID", "Hook session identifier", "cc_hook"),
    FieldSchema("session.start_time", RECOMMENDED, "Start Time", "Session start", "cc_hook"),
    FieldSchema("session.end_time", RECOMMENDED, "End Time", "Session end", "cc_hook"),
    FieldSchema("session.permission_mode", RECOMMENDED, "Permission Mode", "Agent permission mode", "cc_hook"),
    FieldSchema("session.source", RECOMMENDED, "Start Source", "How the session was started", "cc_hook"),
    FieldSchema("session.tool_count", RECOMMENDED, "Tool Count", "Number of tool calls", "cc_hook"),
    FieldSchema("session.tools_used", RECOMMENDED, "Tools Used", "Distinct tools called", "cc_hook"),
    FieldSchema("session.total_input_tokens", RECOMMENDED, "Input Tokens", "Total input tokens", "cc_hook"),
    FieldSchema("session.total_output_tokens", RECOMMENDED, "Output Tokens", "Total output tokens", "cc_hook"),
    FieldSchema("session.estimated_cost_usd", RECOMMENDED, "Estimated Cost", "Estimated cost in USD", "cc_hook"),
    FieldSchema("session.commits", OPTIONAL, "Commits", "Commits made during the session", "cc_hook"),
    FieldSchema("session.cwd", STRIP, "Working Directory", "Local working directory", "cc_hook"),
    FieldSchema("session.transcript_path", STRIP, "Transcript Path", "Local transcript location", "cc_hook"),
    FieldSchema("tool_usages", RECOMMENDED, "Tool Usages", "Timeline of tool calls", "cc_hook"),
    FieldSchema("tool_usages[].tool_use_id", RECOMMENDED, "Tool Use ID", "Tool call identifier", "cc_hook"),
    FieldSchema("tool_usages[].tool_name", RECOMMENDED, "Tool Name", "Name of the tool", "cc_hook"),
    FieldSchema("tool_usages[].timestamp", RECOMMENDED, "Tool Timestamp", "When the tool ran", "cc_hook"),
    FieldSchema("tool_usages[].session_id", RECOMMENDED, "Tool Session ID", "Owning session", "cc_hook"),
    FieldSchema("tool_usages[].success", RECOMMENDED, "Tool Success", "Whether the call succeeded", "cc_hook"),
    FieldSchema("tool_usages[].duration_ms", RECOMMENDED, "Tool Duration", "Call duration in ms", "cc_hook"),
    FieldSchema("tool_usages[].tool_input", STRIP, "Tool Input", "Raw tool arguments", "cc_hook"),
    FieldSchema("tool_usages[].tool_response", STRIP, "Tool Response", "Raw tool output", "cc_hook"),
    FieldSchema("tool_usages[].cwd", STRIP, "Tool Working Directory", "Local working directory", "cc_hook"),
)

# Fields that can dominate an export's size. Informational only.
CONTENT_HEAVY_FIELDS = (
    "tool_usages[].tool_input",
    "tool_usages[].tool_response",
    "messages[].content",
    "messages[].message.content",
    "aggregated_output",
    "command",
)

_INDEX_RE = re.compile(r"\[\d+\]")


def is_content_heavy_field(path: str) -> bool:
    """True when ``path`` (concrete indices allowed) is or lies under a content-heavy field."""
    normalized = _INDEX_RE.sub("[]", path)
    return any(
        normalized == heavy or normalized.startswith(heavy + ".")
        for heavy in CONTENT_HEAVY_FIELDS
    )
