"""Move, copy, fork and delete session files.

In-place rewrites and deletes always take a timestamped backup first, and
rewritten content is written to a temporary sibling that is renamed over
the original, so the live file is never observed half-written.
"""

import contextlib
import json
import logging
import os
import shutil
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from session_explorer.config import SESSION_EXTENSION, expand_tilde
from session_explorer.exceptions import (
    BackupError,
    DeleteNotConfirmedError,
    EmptyTargetError,
    MutationError,
    SessionExplorerError,
    SessionParseError,
    ValidationError,
)
from session_explorer.models import Action, BatchResult, SessionSummary
from session_explorer.scanner import jsonl_lines

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE"
MAX_NUMBERED_SUFFIX = 10_000


def rewrite_string_field(value: Any, key: str, replacement: str) -> Any:
    """Return a copy of a JSON value with every string ``key`` replaced.

    Walks objects and arrays at any depth; non-string values under
    ``key`` are descended into rather than replaced.
    """
    if isinstance(value, dict):
        return {
            k: replacement
            if k == key and isinstance(v, str)
            else rewrite_string_field(v, key, replacement)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [rewrite_string_field(item, key, replacement) for item in value]
    return value


def rewrite_cwd_fields(value: Any, target_cwd: str) -> Any:
    return rewrite_string_field(value, "cwd", target_cwd)


def rewrite_session_meta(record: Any, **fields: str) -> Any:
    """Set payload fields on a ``session_meta`` record; other records pass through."""
    if not isinstance(record, dict) or record.get("type") != "session_meta":
        return record
    payload = record.get("payload")
    if not isinstance(payload, dict):
        return record
    return {**record, "payload": {**payload, **fields}}


def _dump(record: Any) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MutationError(f"failed to read {path}: {exc}") from exc


def rewrite_content(
    path: Path,
    content: str,
    transform: Callable[[Any], Any],
) -> str:
    """Apply transform to every JSON line, keeping blank lines.

    Raises SessionParseError on the first line that is not valid JSON.
    """
    out: list[str] = []
    for line_num, line in enumerate(jsonl_lines(content), 1):
        if not line.strip():
            out.append("\n")
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise SessionParseError(f"invalid JSON line {line_num} in {path}") from exc
        out.append(_dump(transform(record)) + "\n")
    return "".join(out)


def backup_file(path: Path, now: datetime | None = None) -> Path:
    """Copy path to a timestamped sibling and return the backup path."""
    now = now or datetime.now(tz=timezone.utc)
    backup = path.with_name(f"{path.name}.bak.{now:%Y%m%d%H%M%S}")
    counter = 1
    while backup.exists():
        backup = path.with_name(f"{path.name}.bak.{now:%Y%m%d%H%M%S}-{counter}")
        counter += 1

    try:
        shutil.copy2(path, backup)
    except OSError as exc:
        raise BackupError(f"failed to create backup {backup} from {path}: {exc}") from exc

    logger.debug("Backed up %s to %s", path, backup)
    return backup


def atomic_write(path: Path, content: str) -> None:
    """Write content to a temp sibling, then rename it over path."""
    tmp = path.with_name(f"{path.name}.tmp")
    try:
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise MutationError(f"failed writing {tmp}: {exc}") from exc

    try:
        os.replace(tmp, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise MutationError(f"failed renaming {tmp} to {path}: {exc}") from exc


def unique_path(path: Path) -> Path:
    """Return path, or a numbered (then random) sibling if it exists."""
    if not path.exists():
        return path

    stem = path.stem or "rollout"
    ext = path.suffix or SESSION_EXTENSION
    for idx in range(1, MAX_NUMBERED_SUFFIX):
        candidate = path.with_name(f"{stem}-{idx}{ext}")
        if not candidate.exists():
            return candidate

    return path.with_name(f"{stem}-{uuid.uuid4()}{ext}")


def move_session(session: SessionSummary, target_cwd: str) -> Path:
    """Rewrite every cwd in the session file in place."""
    content = _read(session.path)
    rewritten = rewrite_content(
        session.path, content, lambda record: rewrite_cwd_fields(record, target_cwd)
    )
    backup_file(session.path)
    atomic_write(session.path, rewritten)
    logger.info("Moved %s -> %s", session.path, target_cwd)
    return session.path


def duplicate_session(
    sessions_root: Path,
    session: SessionSummary,
    target_cwd: str,
    fork: bool = False,
    now: datetime | None = None,
) -> Path:
    """Write a copy of a session under the date-sharded sessions root.

    A fork additionally gets a fresh id and a start timestamp of now.
    Returns the new file's path.
    """
    now = now or datetime.now(tz=timezone.utc)
    new_id = str(uuid.uuid4()) if fork else None

    def transform(record: Any) -> Any:
        record = rewrite_cwd_fields(record, target_cwd)
        if new_id is not None:
            record = rewrite_session_meta(record, id=new_id, timestamp=now.isoformat())
        return record

    content = _read(session.path)
    rewritten = rewrite_content(session.path, content, transform)

    target_dir = sessions_root / f"{now:%Y}" / f"{now:%m}" / f"{now:%d}"
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MutationError(f"failed to create {target_dir}: {exc}") from exc

    file_name = f"rollout-{now:%Y-%m-%dT%H-%M-%S}-{new_id or session.id}{SESSION_EXTENSION}"
    final_path = unique_path(target_dir / file_name)
    atomic_write(final_path, rewritten)
    logger.info("%s %s -> %s", "Forked" if fork else "Copied", session.path, final_path)
    return final_path


def copy_session(sessions_root: Path, session: SessionSummary, target_cwd: str) -> Path:
    return duplicate_session(sessions_root, session, target_cwd, fork=False)


def fork_session(sessions_root: Path, session: SessionSummary, target_cwd: str) -> Path:
    return duplicate_session(sessions_root, session, target_cwd, fork=True)


def delete_session(session: SessionSummary) -> None:
    """Back up, then remove, a session file."""
    backup_file(session.path)
    try:
        session.path.unlink()
    except OSError as exc:
        raise MutationError(f"failed deleting {session.path}: {exc}") from exc
    logger.info("Deleted %s", session.path)


def delete_confirmation_valid(text: str | None) -> bool:
    return text == DELETE_CONFIRMATION


def validate_batch(
    action: Action,
    targets: list[SessionSummary],
    target: str = "",
    confirmation: str | None = None,
) -> str:
    """Check an action before any I/O; return the resolved target path.

    Raises a ValidationError subclass describing why the action cannot run.
    """
    if not targets:
        raise ValidationError("No applicable sessions for this action")

    if action is Action.DELETE:
        if not delete_confirmation_valid(confirmation):
            raise DeleteNotConfirmedError("Delete cancelled: type DELETE to confirm")
        return ""

    raw = target.strip()
    if not raw:
        raise EmptyTargetError("Target path is empty")
    return str(expand_tilde(raw))


def apply_batch(
    action: Action,
    targets: list[SessionSummary],
    target: str = "",
    sessions_root: Path | None = None,
    confirmation: str | None = None,
) -> BatchResult:
    """Apply one action to each target independently.

    Validation errors raise before any file is touched. Per-target
    failures are collected into the result and never stop the batch.
    """
    target_cwd = validate_batch(action, targets, target, confirmation)
    if action in (Action.COPY, Action.FORK, Action.PROJECT_COPY) and sessions_root is None:
        raise ValueError(f"{action.value} requires a sessions root")

    result = BatchResult(action=action, target=target_cwd)

    for session in targets:
        try:
            if action in (Action.MOVE, Action.PROJECT_RENAME):
                if session.cwd == target_cwd:
                    result.skipped += 1
                    continue
                move_session(session, target_cwd)
            elif action in (Action.COPY, Action.PROJECT_COPY):
                result.new_paths.append(copy_session(sessions_root, session, target_cwd))
            elif action is Action.FORK:
                result.new_paths.append(fork_session(sessions_root, session, target_cwd))
            elif action is Action.DELETE:
                delete_session(session)
        except (SessionExplorerError, OSError) as exc:
            logger.warning("%s failed for %s: %s", action.value, session.path, exc)
            result.failures.append(f"{session.file_name}: {exc}")
            continue
        result.succeeded += 1

    logger.info(
        "%s: %d succeeded, %d skipped, %d failed",
        action.value,
        result.succeeded,
        result.skipped,
        len(result.failures),
    )
    return result
