"""Workspace state: focus, selection, search, preview folding and actions.

A single ``WorkspaceState`` is owned by the control loop and handed to
every operation. The only long-lived caches it holds are the parsed
preview sources and the per-session fold sets.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from session_explorer.config import expand_tilde
from session_explorer.exceptions import ValidationError
from session_explorer.models import (
    Action,
    BatchResult,
    PreviewData,
    PreviewMode,
    ProjectBucket,
    SessionSummary,
)
from session_explorer.mutations import apply_batch
from session_explorer.pointer import PointerState, ReleaseKind, Splitter
from session_explorer.preview import PreviewCache, build_preview, clamp_position, selected_text
from session_explorer.scanner import all_session_paths, scan_sessions
from session_explorer.searcher import filter_projects

logger = logging.getLogger(__name__)

MIN_PANE_PCT = 15
TAB_REPEAT_WINDOW = 0.8  # seconds
MAX_LISTED_COMPLETIONS = 12


class Focus(Enum):
    PROJECTS = "projects"
    SESSIONS = "sessions"
    PREVIEW = "preview"


class Mode(Enum):
    NORMAL = "normal"
    INPUT = "input"


FOCUS_ORDER = [Focus.PROJECTS, Focus.SESSIONS, Focus.PREVIEW]

ACTION_PROMPTS = {
    Action.MOVE: "Move {n} session(s): enter target project path and press Enter",
    Action.COPY: "Copy {n} session(s): enter target project path and press Enter",
    Action.FORK: "Fork {n} session(s): enter target project path and press Enter",
    Action.DELETE: "Delete {n} session(s): type DELETE and press Enter",
    Action.PROJECT_RENAME: "Rename folder sessions ({n}) to target path and press Enter",
    Action.PROJECT_COPY: "Copy folder sessions ({n}) to target path and press Enter",
}


def longest_common_prefix(items: list[str]) -> str:
    if not items:
        return ""
    prefix = items[0]
    for item in items[1:]:
        n = 0
        while n < min(len(prefix), len(item)) and prefix[n] == item[n]:
            n += 1
        prefix = prefix[:n]
        if not prefix:
            break
    return prefix


@dataclass
class WorkspaceState:
    sessions_root: Path
    all_projects: list[ProjectBucket] = field(default_factory=list)
    projects: list[ProjectBucket] = field(default_factory=list)
    project_idx: int = 0
    session_idx: int = 0
    selected_sessions: set[Path] = field(default_factory=set)
    session_select_anchor: int | None = None
    focus: Focus = Focus.PROJECTS
    mode: Mode = Mode.NORMAL
    pending_action: Action | None = None
    input: str = ""
    input_tab_last_at: float | None = None
    input_tab_last_query: str = ""
    search_query: str = ""
    search_focused: bool = False
    search_dirty: bool = False
    preview_mode: PreviewMode = PreviewMode.CHAT
    status: str = "Press q to quit, g to refresh"
    project_width_pct: int = 20
    session_width_pct: int = 38
    preview_scroll: int = 0
    preview_viewport: int = 0
    preview_rendered_lines: list[str] = field(default_factory=list)
    preview_header_rows: list[tuple[int, int]] = field(default_factory=list)
    preview_focus_turn: int | None = None
    preview_session_path: Path | None = None
    preview_selection: tuple[tuple[int, int], tuple[int, int]] | None = None
    preview_cache: PreviewCache = field(default_factory=PreviewCache)
    preview_folded: dict[Path, set[int]] = field(default_factory=dict)
    pointer: PointerState = field(default_factory=PointerState)

    @classmethod
    def load(cls, sessions_root: Path) -> "WorkspaceState":
        """Create a workspace and scan the store once."""
        state = cls(sessions_root=sessions_root)
        state.reload()
        return state

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def reload(self) -> None:
        """Rescan the store. Raises OSError if the root cannot be read."""
        self.all_projects = scan_sessions(self.sessions_root)
        self.prune_selected_sessions()
        self.apply_search_filter()

        if not self.projects:
            self.project_idx = 0
            self.session_idx = 0
            self.status = f"No sessions found under {self.sessions_root}"
            return

        self.project_idx = min(self.project_idx, len(self.projects) - 1)
        self.clamp_session_idx()
        self.status = f"Loaded {len(self.projects)} projects"

    def prune_selected_sessions(self) -> None:
        self.selected_sessions &= all_session_paths(self.all_projects)

    def current_project(self) -> ProjectBucket | None:
        if 0 <= self.project_idx < len(self.projects):
            return self.projects[self.project_idx]
        return None

    def current_session(self) -> SessionSummary | None:
        project = self.current_project()
        if project is None or not 0 <= self.session_idx < len(project.sessions):
            return None
        return project.sessions[self.session_idx]

    def clamp_session_idx(self) -> None:
        project = self.current_project()
        length = len(project.sessions) if project else 0
        self.session_idx = 0 if length == 0 else min(self.session_idx, length - 1)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_focus(self) -> None:
        self.focus = FOCUS_ORDER[(FOCUS_ORDER.index(self.focus) + 1) % len(FOCUS_ORDER)]

    def prev_focus(self) -> None:
        self.focus = FOCUS_ORDER[(FOCUS_ORDER.index(self.focus) - 1) % len(FOCUS_ORDER)]

    def move_up(self) -> None:
        if not self.projects:
            return
        if self.focus is Focus.PROJECTS:
            self.project_idx = max(self.project_idx - 1, 0)
            self.clamp_session_idx()
            self.session_select_anchor = None
            self.preview_scroll = 0
        elif self.focus is Focus.SESSIONS:
            self.session_idx = max(self.session_idx - 1, 0)
            self.preview_scroll = 0
        else:
            self.preview_scroll = max(self.preview_scroll - 1, 0)

    def move_down(self) -> None:
        if not self.projects:
            return
        if self.focus is Focus.PROJECTS:
            self.project_idx = min(self.project_idx + 1, len(self.projects) - 1)
            self.clamp_session_idx()
            self.session_select_anchor = None
            self.preview_scroll = 0
        elif self.focus is Focus.SESSIONS:
            project = self.current_project()
            if project and self.session_idx + 1 < len(project.sessions):
                self.session_idx += 1
            self.preview_scroll = 0
        else:
            self.preview_scroll += 1

    def preview_width_pct(self) -> int:
        return max(100 - self.project_width_pct - self.session_width_pct, 0)

    def resize_focused_pane(self, delta: int) -> bool:
        """Grow or shrink the focused pane, keeping every pane >= 15%."""
        p, s = self.project_width_pct, self.session_width_pct
        r = 100 - p - s
        if self.focus is Focus.PROJECTS:
            p, r = p + delta, r - delta
        elif self.focus is Focus.SESSIONS:
            s, r = s + delta, r - delta
        else:
            r, s = r + delta, s - delta

        if min(p, s, r) < MIN_PANE_PCT:
            return False
        self.project_width_pct, self.session_width_pct = p, s
        return True

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def set_search_query(self, query: str) -> None:
        self.search_query = query
        self.search_dirty = True

    def push_search_char(self, ch: str) -> None:
        self.set_search_query(self.search_query + ch)

    def pop_search_char(self) -> None:
        self.set_search_query(self.search_query[:-1])

    def flush_search(self, input_pending: bool) -> bool:
        """Recompute the filtered view once input has gone quiet.

        Call on every loop iteration with whether more input is already
        queued; returns True when the filter actually ran.
        """
        if not self.search_dirty or input_pending:
            return False
        self.apply_search_filter()
        return True

    def apply_search_filter(self) -> None:
        self.search_dirty = False
        self.projects = filter_projects(self.all_projects, self.search_query)
        self.preview_scroll = 0

        if not self.search_query.strip():
            self.project_idx = min(self.project_idx, max(len(self.projects) - 1, 0))
            self.clamp_session_idx()
            return

        self.project_idx = 0
        self.session_idx = 0
        self.status = f"Search '{self.search_query}' matched {len(self.projects)} projects"

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def selected_sessions_in_current_project(self) -> list[SessionSummary]:
        project = self.current_project()
        if project is None:
            return []
        return [s for s in project.sessions if s.path in self.selected_sessions]

    def selected_count_current_project(self) -> int:
        return len(self.selected_sessions_in_current_project())

    def _selection_status(self) -> None:
        self.status = f"Selected {self.selected_count_current_project()} session(s)"

    def toggle_current_session_selection(self) -> None:
        session = self.current_session()
        if session is None:
            self.status = "No session selected"
            return
        self.selected_sessions ^= {session.path}
        self.session_select_anchor = self.session_idx
        self._selection_status()

    def select_all_sessions_current_project(self) -> None:
        project = self.current_project()
        if project is None:
            return
        self.selected_sessions |= {s.path for s in project.sessions}
        if project.sessions:
            self.session_select_anchor = min(self.session_idx, len(project.sessions) - 1)
        self._selection_status()

    def invert_sessions_selection_current_project(self) -> None:
        project = self.current_project()
        if project is None:
            return
        self.selected_sessions ^= {s.path for s in project.sessions}
        if project.sessions:
            self.session_select_anchor = min(self.session_idx, len(project.sessions) - 1)
        self._selection_status()

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def toggle_preview_mode(self) -> None:
        self.preview_mode = PreviewMode.EVENTS if self.preview_mode is PreviewMode.CHAT else PreviewMode.CHAT
        self.preview_scroll = 0

    def refresh_preview(self, width: int, height: int = 0) -> PreviewData:
        """Build the preview for the focused session and remember its rows."""
        session = self.current_session()
        if session is None:
            preview = PreviewData(lines=["No session selected"])
        else:
            folded = self.preview_folded.get(session.path, set())
            try:
                preview = build_preview(session, self.preview_mode, width, folded, self.preview_cache)
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Preview failed for %s: %s", session.path, exc)
                preview = PreviewData(lines=[f"Preview error: {exc}"])

        self.preview_viewport = height
        self.preview_rendered_lines = list(preview.lines)
        self.preview_scroll = min(self.preview_scroll, max(len(preview.lines) - height, 0))
        self.preview_header_rows = list(preview.header_rows)
        self.preview_session_path = session.path if session else None
        self.ensure_preview_focus_valid()
        return preview

    def _turn_ids(self) -> list[int]:
        return [turn for _, turn in self.preview_header_rows]

    def _header_row_of(self, turn_idx: int) -> int | None:
        for row, turn in self.preview_header_rows:
            if turn == turn_idx:
                return row
        return None

    def toggle_fold_by_row(self, row: int) -> None:
        if self.preview_session_path is None:
            return
        turn_idx = next((t for r, t in self.preview_header_rows if r == row), None)
        if turn_idx is None:
            return
        self.preview_folded.setdefault(self.preview_session_path, set()).symmetric_difference_update({turn_idx})
        self.preview_focus_turn = turn_idx

    def toggle_fold_at_scroll(self) -> None:
        """Toggle the first header at or below the scroll row (else the last)."""
        if self.focus is not Focus.PREVIEW or not self.preview_header_rows:
            return
        target = next(
            (r for r, _ in self.preview_header_rows if r >= self.preview_scroll),
            self.preview_header_rows[-1][0],
        )
        self.toggle_fold_by_row(target)

    def ensure_preview_focus_valid(self) -> None:
        turns = self._turn_ids()
        if not turns:
            self.preview_focus_turn = None
        elif self.preview_focus_turn not in turns:
            self.preview_focus_turn = turns[0]

    def _step_preview_focus(self, step: int) -> None:
        self.ensure_preview_focus_valid()
        if self.preview_focus_turn is None:
            return
        turns = self._turn_ids()
        pos = turns.index(self.preview_focus_turn)
        self.preview_focus_turn = turns[min(max(pos + step, 0), len(turns) - 1)]
        self.scroll_preview_focus_into_view()

    def focus_next_preview_turn(self) -> None:
        self._step_preview_focus(1)

    def focus_prev_preview_turn(self) -> None:
        self._step_preview_focus(-1)

    def scroll_preview_focus_into_view(self) -> None:
        if self.preview_focus_turn is None or self.preview_viewport <= 0:
            return
        row = self._header_row_of(self.preview_focus_turn)
        if row is None:
            return
        if row < self.preview_scroll:
            self.preview_scroll = row
        elif row >= self.preview_scroll + self.preview_viewport:
            self.preview_scroll = row + 1 - self.preview_viewport

    def toggle_fold_focused_preview_turn(self) -> None:
        self.ensure_preview_focus_valid()
        if self.preview_focus_turn is None:
            return
        row = self._header_row_of(self.preview_focus_turn)
        if row is not None:
            self.toggle_fold_by_row(row)
            self.scroll_preview_focus_into_view()

    def fold_focused_preview_turn(self) -> None:
        self.ensure_preview_focus_valid()
        if self.preview_session_path is None or self.preview_focus_turn is None:
            return
        self.preview_folded.setdefault(self.preview_session_path, set()).add(self.preview_focus_turn)
        self.scroll_preview_focus_into_view()

    def unfold_focused_preview_turn(self) -> None:
        self.ensure_preview_focus_valid()
        if self.preview_session_path is None or self.preview_focus_turn is None:
            return
        self.preview_folded.setdefault(self.preview_session_path, set()).discard(self.preview_focus_turn)
        self.scroll_preview_focus_into_view()

    def toggle_fold_all_preview_turns(self) -> None:
        if self.preview_session_path is None:
            return
        turns = set(self._turn_ids())
        if not turns:
            return
        folded = self.preview_folded.setdefault(self.preview_session_path, set())
        if turns <= folded:
            folded -= turns
            self.status = "Expanded all preview blocks"
        else:
            folded |= turns
            self.status = "Collapsed all preview blocks"

    def clamp_preview_pos(self, row: int, col: int) -> tuple[int, int]:
        return clamp_position(self.preview_rendered_lines, row, col)

    def preview_selected_text(self, start: tuple[int, int], end: tuple[int, int]) -> str | None:
        return selected_text(self.preview_rendered_lines, start, end)

    # ------------------------------------------------------------------
    # Pointer gestures (positions already mapped to preview characters)
    # ------------------------------------------------------------------

    def press_preview(self, row: int, col: int) -> None:
        self.search_focused = False
        self.focus = Focus.PREVIEW
        above = [(r, t) for r, t in self.preview_header_rows if r <= row]
        if above:
            self.preview_focus_turn = max(above)[1]
        self.preview_selection = None
        self.pointer.press_text(self.clamp_preview_pos(row, col))

    def press_splitter(self, splitter: Splitter) -> None:
        self.pointer.press_splitter(splitter)

    def drag_pointer(self, row: int, col: int) -> None:
        self.pointer.drag(self.clamp_preview_pos(row, col))
        if self.pointer.selecting:
            self.preview_selection = (self.pointer.anchor, self.pointer.cursor)

    def release_pointer(self, row: int | None = None, col: int | None = None) -> str | None:
        """Finish a gesture; returns the selected text when one was made.

        A plain click on a turn header toggles its fold.
        """
        position = self.clamp_preview_pos(row, col) if row is not None and col is not None else None
        outcome = self.pointer.release(position)

        if outcome.kind is ReleaseKind.CLICK:
            self.preview_selection = None
            if position is not None:
                self.toggle_fold_by_row(position[0])
            return None

        if outcome.kind is ReleaseKind.SELECTION:
            self.preview_selection = (outcome.anchor, outcome.cursor)
            text = self.preview_selected_text(outcome.anchor, outcome.cursor)
            lines = abs(outcome.anchor[0] - outcome.cursor[0]) + 1
            self.status = f"Selection captured ({lines} line(s))"
            return text

        return None

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_targets(self, action: Action) -> list[SessionSummary]:
        """Selected sessions in the current project, else the focused one."""
        if action.is_project_scope:
            project = self.current_project()
            return list(project.sessions) if project else []

        selected = self.selected_sessions_in_current_project()
        if selected:
            return selected
        session = self.current_session()
        return [session] if session else []

    def start_action(self, action: Action) -> bool:
        targets = self.action_targets(action)
        if not targets:
            self.status = "No project selected" if action.is_project_scope else "No session selected"
            return False

        self.mode = Mode.INPUT
        self.pending_action = action
        self.input = ""
        self.clear_input_completion_cycle()
        self.search_focused = False
        self.status = ACTION_PROMPTS[action].format(n=len(targets))
        return True

    def cancel_input(self) -> None:
        self.mode = Mode.NORMAL
        self.pending_action = None
        self.input = ""
        self.clear_input_completion_cycle()
        self.status = "Action cancelled"

    def submit_input(self) -> BatchResult | None:
        """Run the pending action against its targets.

        Validation failures only update the status and keep the prompt
        open. After a batch the selection is always cleared, and the
        catalog is rescanned if anything succeeded or was skipped.
        """
        action = self.pending_action
        if action is None:
            self.cancel_input()
            return None

        targets = self.action_targets(action)
        try:
            result = apply_batch(
                action,
                targets,
                target=self.input,
                sessions_root=self.sessions_root,
                confirmation=self.input,
            )
        except ValidationError as exc:
            self.status = str(exc)
            return None

        self.mode = Mode.NORMAL
        self.pending_action = None
        self.input = ""
        self.clear_input_completion_cycle()

        if result.changed:
            self.reload()
        self.selected_sessions.clear()
        self.session_select_anchor = None
        self.status = result.status_line()
        return result

    def clear_input_completion_cycle(self) -> None:
        self.input_tab_last_at = None
        self.input_tab_last_query = ""

    def tab_complete_input_path(self, now: float | None = None) -> None:
        """Complete the target path input against existing directories.

        A unique match is completed with a trailing slash; several matches
        extend to their common prefix, and a second Tab within a short
        window lists them.
        """
        now = time.monotonic() if now is None else now
        query = self.input
        repeated = (
            self.input_tab_last_at is not None
            and now - self.input_tab_last_at <= TAB_REPEAT_WINDOW
            and self.input_tab_last_query == query
        )
        self.input_tab_last_at = now
        self.input_tab_last_query = query

        if query.endswith("/"):
            dir_part, prefix = query, ""
        elif "/" in query:
            pos = query.rfind("/")
            dir_part, prefix = query[: pos + 1], query[pos + 1 :]
        else:
            dir_part, prefix = "", query

        dir_path = expand_tilde(dir_part) if dir_part else Path(".")
        try:
            matches = sorted(
                entry.name
                for entry in dir_path.iterdir()
                if entry.is_dir() and entry.name.startswith(prefix)
            )
        except OSError:
            self.status = f"Cannot read directory: {dir_path}"
            return

        if not matches:
            self.status = f"No directory matches for '{query}'"
            return

        if len(matches) == 1:
            self.input = f"{dir_part}{matches[0]}/"
            self.status = f"Completed: {self.input}"
            return

        common = longest_common_prefix(matches)
        if len(common) > len(prefix):
            self.input = f"{dir_part}{common}"
            self.status = f"{len(matches)} matches"
            return

        if repeated:
            shown = "  ".join(matches[:MAX_LISTED_COMPLETIONS])
            extra = len(matches) - MAX_LISTED_COMPLETIONS
            self.status = f"Matches: {shown}" + (f"  ... (+{extra} more)" if extra > 0 else "")
        else:
            self.status = f"{len(matches)} matches (Tab again to list)"
