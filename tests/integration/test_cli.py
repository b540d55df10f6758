"""Integration tests for the CLI."""

import json
import os
import subprocess
import sys

from session_explorer.scanner import parse_session_summary


def run_cli(*args, env=None):
    return subprocess.run(
        [sys.executable, "-m", "session_explorer.cli", *args],
        capture_output=True,
        text=True,
        env={**os.environ, "COLUMNS": "200", **(env or {})},
    )


def test_cli_help():
    """Test that --help works."""
    result = run_cli("--help")
    assert result.returncode == 0
    assert "search" in result.stdout
    assert "preview" in result.stdout
    assert "delete" in result.stdout


def test_cli_version():
    """Test that --version works."""
    result = run_cli("--version")
    assert result.returncode == 0
    assert "session-explorer" in result.stdout


def test_projects_uses_codex_home(sample_session, temp_dir):
    result = run_cli("projects", env={"CODEX_HOME": str(temp_dir)})
    assert result.returncode == 0
    assert "/work/alpha (1 sessions)" in result.stdout


def test_projects_empty_store(temp_dir):
    result = run_cli("projects", "--root", str(temp_dir / "none"))
    assert result.returncode == 0
    assert "No sessions found" in result.stdout


def test_search_json_output(sample_session, sessions_root):
    """Test that search with --json outputs valid JSON."""
    result = run_cli("search", "login", "--json", "--root", str(sessions_root))

    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data["query"] == "login"
    assert data["total_projects"] == 1
    assert data["projects"][0]["sessions"][0]["id"] == "s1"


def test_search_requires_query(sessions_root):
    result = run_cli("search", "  ", "--root", str(sessions_root))
    assert result.returncode == 1
    assert "Query required" in result.stdout


def test_preview_chat_and_events(sample_session):
    result = run_cli("preview", str(sample_session), "--width", "60")
    assert result.returncode == 0
    assert "Conversation" in result.stdout
    assert "How do I fix the login bug?" in result.stdout

    result = run_cli("preview", str(sample_session), "--events")
    assert result.returncode == 0
    assert "response_item/message role=user" in result.stdout


def test_move_then_delete(sample_session, sessions_root):
    result = run_cli("move", str(sample_session), "--to", "/work/beta", "--root", str(sessions_root))
    assert result.returncode == 0
    assert "moved 1 session(s) -> /work/beta" in result.stdout
    assert parse_session_summary(sample_session).cwd == "/work/beta"

    result = run_cli("delete", str(sample_session), "--confirm", "nope")
    assert result.returncode == 1
    assert sample_session.exists()

    result = run_cli("delete", str(sample_session), "--confirm", "DELETE")
    assert result.returncode == 0
    assert not sample_session.exists()


def test_fork_writes_new_session(sample_session, sessions_root):
    result = run_cli("fork", str(sample_session), "--to", "/work/beta", "--root", str(sessions_root))

    assert result.returncode == 0
    assert "forked 1 session(s) -> /work/beta" in result.stdout
    assert len(list(sessions_root.rglob("*.jsonl"))) == 2
