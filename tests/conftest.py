"""Pytest fixtures for session-explorer tests."""

import json
import tempfile
from pathlib import Path

import pytest


def meta(session_id: str, cwd: str, timestamp: str) -> dict:
    return {
        "type": "session_meta",
        "timestamp": timestamp,
        "payload": {"id": session_id, "cwd": cwd, "timestamp": timestamp},
    }


def message(role: str, text: str, timestamp: str = "2025-01-01T00:00:01Z") -> dict:
    part_key = "input_text" if role == "user" else "output_text"
    return {
        "type": "response_item",
        "timestamp": timestamp,
        "payload": {
            "type": "message",
            "role": role,
            "content": [{"type": part_key, part_key: text}],
        },
    }


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sessions_root(temp_dir):
    root = temp_dir / "sessions"
    root.mkdir()
    return root


@pytest.fixture
def write_session(sessions_root):
    """Factory writing JSONL records (dicts or raw strings) under the sessions root."""

    def _write(relative: str, records: list) -> Path:
        path = sessions_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for record in records:
                f.write((record if isinstance(record, str) else json.dumps(record)) + "\n")
        return path

    return _write


@pytest.fixture
def sample_session(write_session):
    """A short session in /work/alpha with one user and one assistant turn."""
    return write_session(
        "2025/01/01/rollout-2025-01-01T00-00-00-s1.jsonl",
        [
            meta("s1", "/work/alpha", "2025-01-01T00:00:00Z"),
            message("user", "How do I fix the login bug?"),
            message("assistant", "Check the **session** cookie.", "2025-01-01T00:00:05Z"),
        ],
    )


@pytest.fixture
def records():
    """Builders for session_meta and message records."""

    class Records:
        meta = staticmethod(meta)
        message = staticmethod(message)

    return Records
