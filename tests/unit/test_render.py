"""Tests for markup rendering and wrapping."""

from session_explorer.render import render_markdown_lines, slice_chars, wrap_text_lines


def test_wrap_respects_width():
    text = "the quick brown fox jumps over a supercalifragilistic dog"
    for width in (1, 3, 7, 12, 40):
        lines = wrap_text_lines(text, width)
        assert all(len(line) <= width for line in lines)
        assert "".join(lines).replace(" ", "") == text.replace(" ", "")


def test_wrap_greedy():
    assert wrap_text_lines("aaa bbb ccc", 7) == ["aaa bbb", "ccc"]


def test_wrap_keeps_blank_lines():
    assert wrap_text_lines("one\n\ntwo", 10) == ["one", "", "two"]


def test_wrap_degenerate_inputs():
    assert wrap_text_lines("", 10) == [""]
    assert wrap_text_lines("words", 0) == [""]


def test_single_paragraph_fits_one_line():
    assert render_markdown_lines("hello *there*", 40) == ["hello there"]


def test_paragraphs_separated_by_blank():
    assert render_markdown_lines("first\n\nsecond", 40) == ["first", "", "second"]


def test_heading_keeps_hashes():
    assert render_markdown_lines("## Title\n\nBody", 40) == ["## Title", "", "Body"]


def test_lists():
    assert render_markdown_lines("- one\n- two", 40) == ["- one", "- two"]
    assert render_markdown_lines("1. a\n2. b\n3. c", 40) == ["1. a", "2. b", "3. c"]
    assert render_markdown_lines("- a\n  - b", 40) == ["- a", "  - b"]


def test_ordered_list_start_number():
    assert render_markdown_lines("4. d\n5. e", 40) == ["4. d", "5. e"]


def test_list_continuation_aligned_under_prefix():
    assert render_markdown_lines("- aaa bbb ccc", 9) == ["- aaa bbb", "  ccc"]


def test_blockquote_prefix():
    assert render_markdown_lines("> quoted", 40) == ["> quoted"]


def test_code_block_indented_and_chunked():
    assert render_markdown_lines("```\nx = 1\n```", 40) == ["    x = 1"]
    lines = render_markdown_lines("```\n" + "y" * 10 + "\n```", 8)
    assert lines == ["    yyyy", "    yyyy", "    yy"]


def test_rule_and_table():
    assert render_markdown_lines("---", 10) == ["─" * 10]
    table = "| a | b |\n|---|---|\n| 1 | 2 |"
    assert render_markdown_lines(table, 40) == ["a | b", "1 | 2"]


def test_rendered_lines_within_width():
    text = "# Heading words here\n\n> a quote that goes on and on\n\n- item " + "x" * 30
    for line in render_markdown_lines(text, 12):
        assert len(line) <= 12


def test_slice_chars_clamps():
    assert slice_chars("hello", 1, 3) == "el"
    assert slice_chars("hello", 3, 99) == "lo"
    assert slice_chars("hello", 9, 12) == ""
