"""Locating the session store."""

import os
from pathlib import Path

# Environment override for the data home; falls back to ~/.codex
CODEX_HOME_ENV = "CODEX_HOME"
DEFAULT_HOME_DIR = ".codex"
SESSIONS_SUBDIR = "sessions"

SESSION_EXTENSION = ".jsonl"


def expand_tilde(text: str) -> Path:
    """Expand a leading ``~`` or ``~/`` using $HOME.

    Returns an empty ``Path("")`` for empty input so callers can detect it.
    """
    if not text:
        return Path("")

    home = os.environ.get("HOME")
    if text == "~" and home:
        return Path(home)
    if text.startswith("~/") and home:
        return Path(home) / text[2:]
    return Path(text)


def resolve_codex_home() -> Path:
    """Resolve the data home from $CODEX_HOME, else ~/.codex."""
    override = os.environ.get(CODEX_HOME_ENV)
    if override is not None and override.strip():
        return expand_tilde(override.strip())

    home = os.environ.get("HOME")
    if not home:
        raise RuntimeError("HOME is not set")
    return Path(home) / DEFAULT_HOME_DIR


def resolve_sessions_root(override: Path | None = None) -> Path:
    """Return the directory holding session files."""
    if override is not None:
        return override
    return resolve_codex_home() / SESSIONS_SUBDIR
