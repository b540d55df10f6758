"""Pointer (mouse) interaction state machine.

Every left-button gesture moves through exactly one named mode. A release
always returns to IDLE, whatever the current mode.
"""

from dataclasses import dataclass
from enum import Enum

Position = tuple[int, int]  # (row, column) in rendered preview characters


class PointerMode(Enum):
    IDLE = "idle"
    DRAGGING_SPLITTER = "dragging-splitter"
    DRAGGING_SCROLLBAR = "dragging-scrollbar"
    SELECTING_TEXT = "selecting-text"


class PointerEvent(Enum):
    PRESS_SPLITTER = "press-splitter"
    PRESS_SCROLLBAR = "press-scrollbar"
    PRESS_TEXT = "press-text"
    DRAG = "drag"
    RELEASE = "release"


class Splitter(Enum):
    LEFT = "left"
    RIGHT = "right"


class ScrollTarget(Enum):
    PROJECTS = "projects"
    SESSIONS = "sessions"
    PREVIEW = "preview"


TRANSITIONS: dict[tuple[PointerMode, PointerEvent], PointerMode] = {
    (PointerMode.IDLE, PointerEvent.PRESS_SPLITTER): PointerMode.DRAGGING_SPLITTER,
    (PointerMode.IDLE, PointerEvent.PRESS_SCROLLBAR): PointerMode.DRAGGING_SCROLLBAR,
    (PointerMode.IDLE, PointerEvent.PRESS_TEXT): PointerMode.SELECTING_TEXT,
    (PointerMode.DRAGGING_SPLITTER, PointerEvent.DRAG): PointerMode.DRAGGING_SPLITTER,
    (PointerMode.DRAGGING_SCROLLBAR, PointerEvent.DRAG): PointerMode.DRAGGING_SCROLLBAR,
    (PointerMode.SELECTING_TEXT, PointerEvent.DRAG): PointerMode.SELECTING_TEXT,
    **{(mode, PointerEvent.RELEASE): PointerMode.IDLE for mode in PointerMode},
}


class ReleaseKind(Enum):
    NONE = "none"
    CLICK = "click"
    SELECTION = "selection"


@dataclass
class PointerRelease:
    """What a finished gesture amounted to."""

    kind: ReleaseKind
    anchor: Position | None = None
    cursor: Position | None = None


@dataclass
class PointerState:
    mode: PointerMode = PointerMode.IDLE
    splitter: Splitter | None = None
    scroll_target: ScrollTarget | None = None
    anchor: Position | None = None
    cursor: Position | None = None

    def _transition(self, event: PointerEvent) -> bool:
        next_mode = TRANSITIONS.get((self.mode, event))
        if next_mode is None:
            return False
        self.mode = next_mode
        return True

    @property
    def selecting(self) -> bool:
        """True once a text press has been dragged away from its anchor."""
        return (
            self.mode is PointerMode.SELECTING_TEXT
            and self.anchor is not None
            and self.cursor is not None
            and self.cursor != self.anchor
        )

    def press_splitter(self, splitter: Splitter) -> bool:
        if not self._transition(PointerEvent.PRESS_SPLITTER):
            return False
        self.splitter = splitter
        return True

    def press_scrollbar(self, target: ScrollTarget) -> bool:
        if not self._transition(PointerEvent.PRESS_SCROLLBAR):
            return False
        self.scroll_target = target
        return True

    def press_text(self, position: Position) -> bool:
        if not self._transition(PointerEvent.PRESS_TEXT):
            return False
        self.anchor = position
        self.cursor = position
        return True

    def drag(self, position: Position | None = None) -> PointerMode:
        """Advance the current gesture; text drags update the cursor."""
        if self._transition(PointerEvent.DRAG) and self.mode is PointerMode.SELECTING_TEXT:
            if position is not None:
                self.cursor = position
        return self.mode

    def release(self, position: Position | None = None) -> PointerRelease:
        """End the gesture, clearing every drag mode."""
        if self.mode is PointerMode.SELECTING_TEXT and position is not None:
            self.cursor = position

        if self.mode is PointerMode.SELECTING_TEXT:
            kind = ReleaseKind.SELECTION if self.selecting else ReleaseKind.CLICK
            outcome = PointerRelease(kind=kind, anchor=self.anchor, cursor=self.cursor)
        else:
            outcome = PointerRelease(kind=ReleaseKind.NONE)

        self._transition(PointerEvent.RELEASE)
        self.splitter = None
        self.scroll_target = None
        self.anchor = None
        self.cursor = None
        return outcome
