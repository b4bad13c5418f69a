"""Tests for the content analyzer."""

from __future__ import annotations

import pytest

from docforest.atomic.analyzer import ContentAnalyzer, analyze_content, is_code_heavy
from docforest.config import AtomicConfig
from docforest.errors import ValidationError
from docforest.models import CodeBlock

GUIDE = "\n".join(
    [
        "---",
        "title: Guide",
        "---",
        "# Guide",
        "",
        "Intro line.",
        "",
        "## Setup",
        "<!-- docforest:keep -->",
        "Install it.",
        "### Linux",
        "apt install.",
        "### Mac",
        "brew install.",
        "## Example Config",
        "```yaml",
        "key: [[Link]]",
        "```",
        "## Usage",
        "Use [[Tool|the tool]] daily.",
    ]
)


def test_analyze_profiles_sections_and_sub_concepts() -> None:
    profile = ContentAnalyzer().analyze(GUIDE)

    assert profile.title == "Guide"
    assert profile.frontmatter_lines == 3
    assert profile.line_count == 17
    assert profile.intro_end_line == 3
    assert [section.title for section in profile.sections] == ["Setup", "Example Config", "Usage"]

    setup = profile.sections[0]
    assert (setup.start_line, setup.end_line, setup.line_count) == (4, 10, 7)
    assert setup.annotation == "keep"
    assert [sub.title for sub in profile.sub_concepts_of(setup)] == ["Linux", "Mac"]
    linux = profile.sub_concepts_of(setup)[0]
    assert (linux.start_line, linux.end_line, linux.parent_section) == (7, 8, "Setup")


def test_analyze_tracks_code_and_links() -> None:
    profile = analyze_content(GUIDE)

    assert profile.code_lines == 3
    assert profile.code_blocks == [CodeBlock(language="yaml", start_line=12, end_line=14)]
    assert [link.target for link in profile.links] == ["Tool"]
    occurrences = profile.link_occurrences
    assert [(item.link.target, item.in_code_block) for item in occurrences] == [
        ("Link", True),
        ("Tool", False),
    ]
    assert profile.sections[1].is_template_content


def test_sections_end_before_next_h1() -> None:
    body = "## First\ntext\n# Appendix\nmore\n## Second\nend"

    profile = ContentAnalyzer().analyze(body)

    first, second = profile.sections
    assert (first.start_line, first.end_line) == (0, 1)
    assert (second.start_line, second.end_line) == (4, 5)


def test_headings_inside_fences_are_not_sections() -> None:
    body = "```\n## not a section\n```\n## Real\ntext"

    profile = ContentAnalyzer().analyze(body)

    assert [section.title for section in profile.sections] == ["Real"]


def test_large_sections_use_configured_limit() -> None:
    body = "\n".join(["## Long", *[f"line {index}" for index in range(10)], "## Short", "x"])

    profile = ContentAnalyzer(AtomicConfig(section_max_lines=5)).analyze(body)

    assert profile.large_sections == ["Long"]


@pytest.mark.parametrize(
    "body",
    [
        "## Demo Walkthrough\ntext",
        "## Notes\n> one\n> two\n> three\n> four\nplain",
        "## Notes\n<!-- template -->\nFill me in.\n<!-- /template -->",
    ],
)
def test_template_content_detection(body: str) -> None:
    profile = ContentAnalyzer().analyze(body)

    assert profile.sections[0].is_template_content


def test_plain_section_is_not_template_content() -> None:
    profile = ContentAnalyzer().analyze("## Notes\n> quoted\nplain prose\nmore prose")

    assert not profile.sections[0].is_template_content


def test_code_heavy_ratio() -> None:
    body = "\n".join(["```", "a", "b", "```", "text"])

    profile = ContentAnalyzer().analyze(body)

    assert profile.code_ratio == pytest.approx(0.8)
    assert is_code_heavy(profile, 0.5)
    assert not is_code_heavy(profile, 0.9)


def test_analyze_rejects_non_string() -> None:
    with pytest.raises(ValidationError):
        ContentAnalyzer().analyze(None)  # type: ignore[arg-type]
