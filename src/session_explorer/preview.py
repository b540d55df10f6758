"""Preview building: chat turns, event summaries, folding and caching."""

import json
import logging
from pathlib import Path
from typing import Any

from session_explorer.models import (
    BlockTone,
    CachedPreviewSource,
    ChatTurn,
    PreviewData,
    PreviewMode,
    SessionSummary,
)
from session_explorer.render import render_markdown_lines, slice_chars
from session_explorer.scanner import content_part_text, jsonl_lines, payload_of

logger = logging.getLogger(__name__)

MAX_EVENT_LINES = 220
BODY_INDENT = "   "
FOLDED_MARKER = "▸"
EXPANDED_MARKER = "▾"
SEPARATOR_CHAR = "─"


def _records(content: str):
    """Yield each non-empty line parsed as a JSON object (others skipped)."""
    for line in jsonl_lines(content):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            yield record


def _timestamp(record: dict[str, Any]) -> str:
    ts = record.get("timestamp")
    return ts if isinstance(ts, str) else "-"


def extract_chat_turns(content: str) -> list[ChatTurn]:
    """Extract user/assistant turns in file order.

    Only ``response_item`` messages are used. When none exist, plain
    ``event_msg``/``user_message`` records are used instead. A
    ``developer`` role is reported as ``user``.
    """
    turns: list[ChatTurn] = []
    for record in _records(content):
        if record.get("type") != "response_item":
            continue
        payload = payload_of(record)
        if payload.get("type") != "message":
            continue

        role = payload.get("role")
        role = role if isinstance(role, str) else "unknown"
        if role == "developer":
            role = "user"

        parts: list[str] = []
        items = payload.get("content")
        if isinstance(items, list):
            for item in items:
                text = content_part_text(item)
                if text is not None and text.strip():
                    parts.append(text)

        if not parts:
            continue
        turns.append(ChatTurn(role=role, timestamp=_timestamp(record), text="\n".join(parts)))

    if turns:
        return turns

    for record in _records(content):
        if record.get("type") != "event_msg":
            continue
        payload = payload_of(record)
        if payload.get("type") != "user_message":
            continue
        message = payload.get("message")
        if not isinstance(message, str):
            continue
        turns.append(ChatTurn(role="user", timestamp=_timestamp(record), text=message))

    return turns


def summarize_event_line(record: Any) -> str:
    """One-line description of a raw event record."""
    if not isinstance(record, dict):
        return "[-] unknown"

    ts = _timestamp(record)
    record_type = record.get("type")
    record_type = record_type if isinstance(record_type, str) else "unknown"
    payload = payload_of(record)
    payload_type = payload.get("type")
    payload_type = payload_type if isinstance(payload_type, str) else "?"

    if record_type == "response_item":
        if payload_type == "message":
            role = payload.get("role")
            role = role if isinstance(role, str) else "?"
            return f"[{ts}] response_item/message role={role}"
        return f"[{ts}] response_item/{payload_type}"
    if record_type == "event_msg":
        return f"[{ts}] event_msg/{payload_type}"
    return f"[{ts}] {record_type}"


def summarize_events(content: str) -> list[str]:
    events: list[str] = []
    for line in jsonl_lines(content):
        if not line.strip():
            continue
        try:
            events.append(summarize_event_line(json.loads(line)))
        except json.JSONDecodeError:
            events.append("<invalid event>")
    return events


def load_preview_source(path: Path, mtime: float = 0.0) -> CachedPreviewSource:
    """Read and parse a session file for previewing."""
    content = path.read_text(encoding="utf-8")
    return CachedPreviewSource(
        mtime=mtime,
        turns=extract_chat_turns(content),
        events=summarize_events(content),
    )


class PreviewCache:
    """Parsed preview sources keyed by session path.

    An entry is re-parsed only when the file's modification time is newer
    than the one recorded at parse time. Entries are never evicted.
    """

    def __init__(self) -> None:
        self.entries: dict[Path, CachedPreviewSource] = {}

    def __contains__(self, path: Path) -> bool:
        return path in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, path: Path) -> CachedPreviewSource:
        """Return the cached source for path, re-parsing it if stale.

        Raises OSError if the file cannot be stat'ed or read.
        """
        mtime = path.stat().st_mtime
        cached = self.entries.get(path)
        if cached is not None and cached.mtime >= mtime:
            return cached

        logger.debug("Parsing preview source %s", path)
        source = load_preview_source(path, mtime)
        self.entries[path] = source
        return source


def session_header_lines(session: SessionSummary) -> list[str]:
    return [
        f"Session {session.id}",
        f"Path    {session.path}",
        f"Cwd     {session.cwd}",
        f"Started {session.started_at}",
        "",
    ]


def build_preview_from_cached(
    session: SessionSummary,
    mode: PreviewMode,
    width: int,
    cached: CachedPreviewSource,
    folded: set[int] | frozenset[int] = frozenset(),
) -> PreviewData:
    """Render a preview from already-parsed source material."""
    data = PreviewData(lines=session_header_lines(session))
    lines = data.lines

    if mode is PreviewMode.EVENTS:
        lines.append("Event Stream")
        events = cached.events
        start = max(len(events) - MAX_EVENT_LINES, 0)
        if start > 0:
            lines.append(f"... showing last {len(events) - start} of {len(events)} events ...")
            lines.append("")
        lines.extend(events[start:])
        return data

    lines.append("Conversation")
    turns = cached.turns
    if not turns:
        lines.append("No user/assistant chat messages found in this session.")
        return data

    user_count = sum(1 for t in turns if t.role == "user")
    assistant_count = sum(1 for t in turns if t.role == "assistant")
    lines.append(f"Turns: user={user_count} assistant={assistant_count} total={len(turns)}")
    if assistant_count == 0:
        lines.append("Warning: no assistant messages detected in this session.")
    lines.append("")

    def push(text: str, tone: BlockTone) -> None:
        lines.append(text)
        data.tone_rows.append((len(lines) - 1, tone))

    for turn_idx, turn in enumerate(turns):
        tone = BlockTone.USER if turn.role == "user" else BlockTone.ASSISTANT
        is_folded = turn_idx in folded
        marker = FOLDED_MARKER if is_folded else EXPANDED_MARKER

        block_start = len(lines)
        push("", tone)
        push(f"{marker}  {turn.role.upper()}  {turn.timestamp}", tone)
        data.header_rows.append((len(lines) - 1, turn_idx))

        if not is_folded:
            for wrapped in render_markdown_lines(turn.text, max(width - len(BODY_INDENT), 0)):
                push(BODY_INDENT + wrapped, tone)

        push("", tone)
        data.block_ranges.append((turn_idx, block_start, len(lines) - 1))

        if turn_idx + 1 < len(turns):
            if tone is BlockTone.USER:
                lines.append("")
            else:
                lines.append(SEPARATOR_CHAR * max(width - 1, 1))

    return data


def build_preview(
    session: SessionSummary,
    mode: PreviewMode,
    width: int,
    folded: set[int] | frozenset[int] = frozenset(),
    cache: PreviewCache | None = None,
) -> PreviewData:
    """Build a session preview, going through cache when one is given.

    Raises OSError if the session file cannot be read.
    """
    if cache is None:
        source = load_preview_source(session.path)
    else:
        source = cache.get(session.path)
    return build_preview_from_cached(session, mode, width, source, folded)


def clamp_position(lines: list[str], row: int, col: int) -> tuple[int, int]:
    """Clamp a (row, col) character position onto the rendered lines."""
    if not lines:
        return 0, 0
    row = min(max(row, 0), len(lines) - 1)
    length = len(lines[row])
    col = 0 if length == 0 else min(max(col, 0), length - 1)
    return row, col


def selected_text(lines: list[str], start: tuple[int, int], end: tuple[int, int]) -> str | None:
    """Text between two inclusive character positions, in either order."""
    if not lines:
        return None

    begin, finish = sorted((clamp_position(lines, *start), clamp_position(lines, *end)))
    if begin[0] == finish[0]:
        return slice_chars(lines[begin[0]], begin[1], finish[1] + 1)

    first = lines[begin[0]]
    out = [slice_chars(first, begin[1], len(first))]
    out.extend(lines[begin[0] + 1 : finish[0]])
    out.append(slice_chars(lines[finish[0]], 0, finish[1] + 1))
    return "\n".join(out)
