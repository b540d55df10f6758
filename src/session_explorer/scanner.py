"""Session store scanner."""

import json
import logging
from pathlib import Path
from typing import Any

from session_explorer.config import SESSION_EXTENSION
from session_explorer.models import ProjectBucket, SessionSummary

logger = logging.getLogger(__name__)

TEXT_KEYS = ("text", "input_text", "output_text")


def content_part_text(item: Any) -> str | None:
    """Return the text of a message content part, if it has one."""
    if not isinstance(item, dict):
        return None
    for key in TEXT_KEYS:
        if key in item and item[key] is not None:
            value = item[key]
            return value if isinstance(value, str) else None
    return None


def jsonl_lines(content: str) -> list[str]:
    """Split file content into JSONL records on ``\\n`` only.

    U+2028, U+2029 and U+0085 may appear raw inside JSON strings, so
    ``str.splitlines`` would cut records apart. A trailing ``\\r`` is dropped.
    """
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def payload_of(record: dict[str, Any]) -> dict[str, Any]:
    payload = record.get("payload")
    return payload if isinstance(payload, dict) else {}


def collect_session_files(root: Path) -> list[Path]:
    """Recursively collect session files under root.

    Raises OSError if any directory cannot be listed.
    """
    files: list[Path] = []
    for entry in sorted(root.iterdir()):
        if entry.is_dir():
            files.extend(collect_session_files(entry))
        elif entry.is_file() and entry.name.endswith(SESSION_EXTENSION):
            files.append(entry)
    return files


def parse_session_summary(path: Path) -> SessionSummary:
    """Parse a session file into a summary.

    Raises OSError/UnicodeDecodeError when the file cannot be read. Lines
    that are not JSON objects still count as events.
    """
    session_id = "unknown"
    cwd = "<unknown>"
    started_at = "unknown"
    event_count = 0
    search_parts: list[str] = []

    with open(path, encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue

            event_count += 1

            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue

            if not isinstance(record, dict):
                continue

            record_type = record.get("type")
            payload = payload_of(record)

            if record_type == "session_meta":
                # Last session_meta wins
                if isinstance(payload.get("id"), str):
                    session_id = payload["id"]
                if isinstance(payload.get("cwd"), str):
                    cwd = payload["cwd"]
                if isinstance(payload.get("timestamp"), str):
                    started_at = payload["timestamp"]

            elif record_type == "response_item":
                if payload.get("type") != "message":
                    continue
                content = payload.get("content")
                if not isinstance(content, list):
                    continue
                for item in content:
                    text = content_part_text(item)
                    if text is not None:
                        search_parts.append(text.lower())

            elif record_type == "event_msg":
                if payload.get("type") != "user_message":
                    continue
                message = payload.get("message")
                if isinstance(message, str):
                    search_parts.append(message.lower())

    return SessionSummary(
        path=path,
        file_name=path.name,
        id=session_id,
        cwd=cwd,
        started_at=started_at,
        event_count=event_count,
        search_blob="\n".join(search_parts),
    )


def scan_sessions(root: Path) -> list[ProjectBucket]:
    """Scan root into project buckets sorted by cwd.

    A missing root yields an empty catalog. Errors listing the tree
    propagate; unreadable individual files are skipped.
    """
    if not root.exists():
        return []

    by_cwd: dict[str, list[SessionSummary]] = {}
    for path in collect_session_files(root):
        try:
            summary = parse_session_summary(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable session %s: %s", path, exc)
            continue
        by_cwd.setdefault(summary.cwd, []).append(summary)

    buckets: list[ProjectBucket] = []
    for cwd in sorted(by_cwd):
        sessions = sorted(by_cwd[cwd], key=lambda s: s.started_at, reverse=True)
        buckets.append(ProjectBucket(cwd=cwd, sessions=sessions))

    logger.debug(
        "Scanned %d sessions in %d projects under %s",
        sum(len(b.sessions) for b in buckets),
        len(buckets),
        root,
    )
    return buckets


def all_session_paths(catalog: list[ProjectBucket]) -> set[Path]:
    return {session.path for bucket in catalog for session in bucket.sessions}
