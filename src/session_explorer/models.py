"""Data models for session-explorer."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class PreviewMode(Enum):
    CHAT = "chat"
    EVENTS = "events"


class BlockTone(Enum):
    """Background category of a rendered preview row."""

    USER = "user"
    ASSISTANT = "assistant"


class Action(Enum):
    MOVE = "move"
    COPY = "copy"
    FORK = "fork"
    DELETE = "delete"
    PROJECT_RENAME = "project_rename"
    PROJECT_COPY = "project_copy"

    @property
    def past_tense(self) -> str:
        return {
            Action.MOVE: "moved",
            Action.COPY: "copied",
            Action.FORK: "forked",
            Action.DELETE: "deleted",
            Action.PROJECT_RENAME: "renamed",
            Action.PROJECT_COPY: "copied",
        }[self]

    @property
    def is_project_scope(self) -> bool:
        return self in (Action.PROJECT_RENAME, Action.PROJECT_COPY)


@dataclass(frozen=True)
class SessionSummary:
    """One parsed session log file."""

    path: Path
    file_name: str
    id: str = "unknown"
    cwd: str = "<unknown>"
    started_at: str = "unknown"
    event_count: int = 0
    search_blob: str = ""


@dataclass
class ProjectBucket:
    """Sessions sharing the same recorded working directory."""

    cwd: str
    sessions: list[SessionSummary] = field(default_factory=list)


@dataclass(frozen=True)
class ChatTurn:
    """A single user or assistant message within a session."""

    role: str  # "user" | "assistant"
    timestamp: str
    text: str


@dataclass
class CachedPreviewSource:
    """Parsed preview material for one session file."""

    mtime: float
    turns: list[ChatTurn]
    events: list[str]


@dataclass
class PreviewData:
    """Rendered preview lines plus the row metadata the UI draws from."""

    lines: list[str] = field(default_factory=list)
    tone_rows: list[tuple[int, BlockTone]] = field(default_factory=list)
    header_rows: list[tuple[int, int]] = field(default_factory=list)  # (row, turn index)
    block_ranges: list[tuple[int, int, int]] = field(default_factory=list)  # (turn, start, end)


@dataclass
class BatchResult:
    """Outcome of applying one action to a set of sessions."""

    action: Action
    target: str = ""
    succeeded: int = 0
    skipped: int = 0
    failures: list[str] = field(default_factory=list)
    new_paths: list[Path] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.succeeded > 0 or self.skipped > 0

    def status_line(self) -> str:
        """Summarize the batch the way the status bar shows it."""
        name = self.action.past_tense
        ok = self.succeeded
        if not self.failures:
            if self.action is Action.DELETE:
                return f"{name} {ok} session(s)"
            if self.skipped > 0:
                return f"{name} {ok} session(s), skipped {self.skipped} unchanged -> {self.target}"
            return f"{name} {ok} session(s) -> {self.target}"
        first = self.failures[0]
        return (
            f"{name} {ok} session(s), {len(self.failures)} failed, "
            f"skipped {self.skipped}. First error: {first}"
        )
