"""Tests for the fence-aware markdown scanner."""

from __future__ import annotations

from docforest.markdown.scanner import parse_annotation, parse_heading, scan_text


def test_scan_text_classifies_headings_and_fences() -> None:
    body = "\n".join(
        [
            "# Title",
            "Intro text.",
            "```python",
            "# not a heading",
            "print('hi')",
            "```",
            "## Usage",
        ]
    )

    scanned = scan_text(body)

    assert scanned[0].heading_level == 1
    assert scanned[0].heading_text == "Title"
    assert scanned[2].is_fence and scanned[2].fence_language == "python"
    assert scanned[3].in_code_block and scanned[3].heading_level is None
    assert scanned[5].is_fence and scanned[5].in_code_block
    assert not scanned[6].in_code_block
    assert scanned[6].heading_level == 2


def test_fence_closes_only_with_matching_marker() -> None:
    body = "\n".join(["~~~~", "```", "still code", "~~~", "~~~~", "after"])

    scanned = scan_text(body)

    assert all(line.in_code_block for line in scanned[:5])
    assert scanned[4].is_fence
    assert not scanned[5].in_code_block


def test_unterminated_fence_runs_to_end() -> None:
    scanned = scan_text("text\n```\ncode\n## Hidden")

    assert scanned[3].in_code_block
    assert scanned[3].heading_level is None


def test_annotation_attaches_to_first_line_after_heading() -> None:
    body = "\n".join(
        [
            "## Overview",
            "",
            "<!-- docforest:keep -->",
            "Text",
            "<!-- docforest:split -->",
        ]
    )

    scanned = scan_text(body)

    assert scanned[2].annotation == "keep"
    assert scanned[4].annotation is None


def test_annotation_ignored_when_not_first_content_line() -> None:
    scanned = scan_text("## Setup\nSome prose.\n<!-- docforest:keep -->")

    assert all(line.annotation is None for line in scanned)


def test_parse_helpers() -> None:
    assert parse_heading("### Deep dive  ") == (3, "Deep dive")
    assert parse_heading("#NoSpace") is None
    assert parse_annotation("  <!--docforest:KEEP-->  ") == "keep"
    assert parse_annotation("<!-- other -->") is None


def test_scan_text_empty_body() -> None:
    assert scan_text("") == []
