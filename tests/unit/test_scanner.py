"""Tests for the scanner module."""

from session_explorer.scanner import (
    all_session_paths,
    content_part_text,
    jsonl_lines,
    parse_session_summary,
    scan_sessions,
)


def test_scan_missing_root_is_empty(temp_dir):
    assert scan_sessions(temp_dir / "nope") == []


def test_scan_groups_by_cwd(write_session, records, sessions_root):
    write_session("a/1.jsonl", [records.meta("s1", "/work/b", "2025-01-01T00:00:00Z")])
    write_session("a/2.jsonl", [records.meta("s2", "/work/a", "2025-01-02T00:00:00Z")])
    write_session("b/3.jsonl", [records.meta("s3", "/work/a", "2025-01-03T00:00:00Z")])
    (sessions_root / "notes.txt").write_text("ignored")

    catalog = scan_sessions(sessions_root)

    assert [b.cwd for b in catalog] == ["/work/a", "/work/b"]
    assert [s.id for s in catalog[0].sessions] == ["s3", "s2"]
    assert len(all_session_paths(catalog)) == 3


def test_parse_summary_fields(sample_session):
    summary = parse_session_summary(sample_session)

    assert summary.id == "s1"
    assert summary.cwd == "/work/alpha"
    assert summary.started_at == "2025-01-01T00:00:00Z"
    assert summary.event_count == 3
    assert summary.file_name == sample_session.name
    assert summary.search_blob == "how do i fix the login bug?\ncheck the **session** cookie."


def test_parse_summary_defaults_and_invalid_lines(write_session):
    path = write_session("x.jsonl", ["not json", "", "[1, 2]", {"type": "other"}])

    summary = parse_session_summary(path)

    assert summary.id == "unknown"
    assert summary.cwd == "<unknown>"
    assert summary.started_at == "unknown"
    assert summary.event_count == 3
    assert summary.search_blob == ""


def test_last_session_meta_wins(write_session, records):
    path = write_session(
        "x.jsonl",
        [
            records.meta("first", "/one", "2025-01-01T00:00:00Z"),
            records.meta("second", "/two", "2025-02-01T00:00:00Z"),
        ],
    )

    summary = parse_session_summary(path)

    assert summary.id == "second"
    assert summary.cwd == "/two"


def test_user_message_events_are_searchable(write_session):
    path = write_session(
        "x.jsonl",
        [{"type": "event_msg", "payload": {"type": "user_message", "message": "Deploy NOW"}}],
    )

    assert parse_session_summary(path).search_blob == "deploy now"


def test_unreadable_file_is_skipped(write_session, records, sessions_root):
    write_session("good.jsonl", [records.meta("ok", "/w", "2025-01-01T00:00:00Z")])
    (sessions_root / "bad.jsonl").write_bytes(b"\xff\xfe\x00broken")

    catalog = scan_sessions(sessions_root)

    assert [s.id for b in catalog for s in b.sessions] == ["ok"]


def test_content_part_text():
    assert content_part_text({"text": "a"}) == "a"
    assert content_part_text({"input_text": "b"}) == "b"
    assert content_part_text({"text": None, "output_text": "c"}) == "c"
    assert content_part_text({"text": 3, "output_text": "c"}) is None
    assert content_part_text("plain") is None


def test_jsonl_lines_split_on_newline_only():
    assert jsonl_lines('{"a": "x\u2028y\u0085z"}\r\n{}\n') == ['{"a": "x\u2028y\u0085z"}', "{}"]
    assert jsonl_lines("a\n\nb") == ["a", "", "b"]
    assert jsonl_lines("") == []
