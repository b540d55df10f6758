"""Tests for the fuzzy search."""

from pathlib import Path

from session_explorer.models import ProjectBucket, SessionSummary
from session_explorer.searcher import filter_projects, fuzzy_score, score_session


def make_session(name: str, cwd: str, blob: str = "", started: str = "2025-01-01") -> SessionSummary:
    return SessionSummary(
        path=Path(f"/s/{name}.jsonl"),
        file_name=f"{name}.jsonl",
        id=name,
        cwd=cwd,
        started_at=started,
        search_blob=blob,
    )


def test_empty_query_scores_zero():
    assert fuzzy_score("", "anything") == 0


def test_non_subsequence_is_none():
    assert fuzzy_score("xyz", "abc") is None
    assert fuzzy_score("ba", "ab") is None


def test_scoring_weights():
    # a: 10 + 6 (start); b: 10 + 8 (contiguous); no length penalty below 8 chars
    assert fuzzy_score("ab", "ab") == 34
    assert fuzzy_score("AB", "ab") == 34


def test_compact_match_beats_spread_match():
    compact = fuzzy_score("log", "login page")
    spread = fuzzy_score("log", "l o g   xx")
    assert compact is not None and spread is not None
    assert compact > spread


def test_length_penalty():
    short = fuzzy_score("ab", "ab")
    long = fuzzy_score("ab", "ab" + "z" * 30)
    assert short - long == 32 // 8


def test_path_score_is_halved():
    session = make_session("s", "/zz", blob="")
    # haystack match vs cwd-only match: "zz" appears in both, full text wins
    full = fuzzy_score("zz", "\ns.jsonl\ns\n/zz")
    path = fuzzy_score("zz", "/zz")
    assert score_session("zz", session, "/zz") == max(full, int(path / 2))


def test_blank_query_keeps_catalog():
    catalog = [ProjectBucket("/a", [make_session("1", "/a")]), ProjectBucket("/b", [])]

    result = filter_projects(catalog, "   ")

    assert [b.cwd for b in result] == ["/a", "/b"]
    assert result[0].sessions == catalog[0].sessions
    assert result[0] is not catalog[0]


def test_filter_ranks_projects_and_sessions():
    catalog = [
        ProjectBucket(
            "/work/alpha",
            [
                make_session("a1", "/work/alpha", "the alpha release", "2025-01-02"),
                make_session("a2", "/work/alpha", "nothing here", "2025-01-03"),
            ],
        ),
        ProjectBucket("/work/beta", [make_session("b1", "/work/beta", "alpha notes", "2025-01-01")]),
        ProjectBucket("/work/gamma", [make_session("g1", "/work/gamma", "zzz", "2025-01-01")]),
    ]

    result = filter_projects(catalog, "alpha")

    # every alpha session matches via its cwd; gamma has no match at all
    assert [b.cwd for b in result] == ["/work/alpha", "/work/beta"]
    assert len(result[0].sessions) == 2
    assert result[0].sessions[0].id == "a1"


def test_projects_with_equal_counts_sort_by_cwd():
    catalog = [
        ProjectBucket("/z", [make_session("1", "/z", "match")]),
        ProjectBucket("/m", [make_session("2", "/m", "match")]),
    ]

    assert [b.cwd for b in filter_projects(catalog, "match")] == ["/m", "/z"]


def test_equal_scores_keep_newest_first():
    sessions = [
        make_session("x", "/p", "same", "2025-01-01"),
        make_session("y", "/p", "same", "2025-03-01"),
    ]
    result = filter_projects([ProjectBucket("/p", sessions)], "same")

    # ids differ in the haystack only after the match; same length, same score
    assert [s.id for s in result[0].sessions] == ["y", "x"]
