"""Tests for the split decision engine."""

from __future__ import annotations

import pytest

from docforest.atomic.analyzer import ContentAnalyzer
from docforest.atomic.decision import (
    VIOLATION_LARGE_SECTION,
    VIOLATION_LINES,
    VIOLATION_SECTIONS,
    WITHIN_LIMITS_REASON,
    analyze_for_split,
    decide,
    effective_max_lines,
    needs_split,
    oversized_section,
)
from docforest.config import AtomicConfig
from docforest.errors import ValidationError
from docforest.models import STRATEGY_BY_SECTIONS, STRATEGY_BY_SUBCONCEPTS, STRATEGY_NONE


def _code_heavy(total: int, code_body: int) -> str:
    lines = ["# Snippets", "", "```python", *["x = 1"] * code_body, "```"]
    lines.extend(f"Note {index}." for index in range(total - len(lines)))
    return "\n".join(lines)


def _sections(count: int) -> str:
    lines = ["# Topic"]
    for index in range(count):
        lines.extend([f"## Part {index}", f"Body {index}."])
    return "\n".join(lines)


def _big_section(sub_count: int, sub_lines: int = 19) -> str:
    lines = ["# Topic", "## Big"]
    for index in range(sub_count):
        lines.append(f"### Sub {index}")
        lines.extend(f"detail {index}.{line}" for line in range(sub_lines))
    lines.extend(["## Small", "tiny"])
    return "\n".join(lines)


def test_short_document_is_within_limits() -> None:
    decision = analyze_for_split("# Note\n\nA short note.")

    assert not decision.should_split
    assert decision.violations == []
    assert decision.suggested_strategy == STRATEGY_NONE
    assert decision.reason == WITHIN_LIMITS_REASON
    assert not needs_split("# Note")


def test_code_heavy_document_gets_the_multiplied_limit() -> None:
    text = _code_heavy(total=180, code_body=160)
    profile = ContentAnalyzer().analyze(text)
    thresholds = AtomicConfig(max_lines=200, code_heavy_multiplier=1.5)

    decision = decide(profile, thresholds)

    assert profile.line_count == 180
    assert profile.code_ratio == pytest.approx(0.9)
    assert effective_max_lines(profile, thresholds) == 300
    assert decision.metrics["effective_max_lines"] == 300
    assert not decision.should_split


def test_code_heavy_document_over_base_limit_is_not_split() -> None:
    decision = analyze_for_split(_code_heavy(total=250, code_body=225))

    assert decision.metrics["line_count"] == 250
    assert not decision.should_split


def test_long_prose_document_is_split_by_sections() -> None:
    text = "\n".join(["# Long", *[f"Sentence {index}." for index in range(249)]])

    decision = analyze_for_split(text)

    assert decision.should_split
    assert [violation.type for violation in decision.violations] == [VIOLATION_LINES]
    assert decision.violations[0].value == 250
    assert decision.violations[0].limit == 200
    assert decision.suggested_strategy == STRATEGY_BY_SECTIONS


def test_too_many_sections() -> None:
    decision = analyze_for_split(_sections(7))

    assert decision.should_split
    assert [violation.type for violation in decision.violations] == [VIOLATION_SECTIONS]
    assert decision.metrics["section_count"] == 7
    assert decision.suggested_strategy == STRATEGY_BY_SECTIONS


def test_single_oversized_section_with_sub_concepts() -> None:
    text = _big_section(sub_count=3)
    profile = ContentAnalyzer().analyze(text)

    decision = decide(profile)

    assert [violation.type for violation in decision.violations] == [VIOLATION_LARGE_SECTION]
    assert decision.violations[0].value == 61
    assert decision.suggested_strategy == STRATEGY_BY_SUBCONCEPTS
    assert decision.metrics["sub_concept_count"] == 3
    assert "Big" in decision.reason
    assert oversized_section(profile, AtomicConfig()).title == "Big"


def test_oversized_section_without_enough_sub_concepts_splits_by_sections() -> None:
    decision = analyze_for_split(_big_section(sub_count=1, sub_lines=60))

    assert decision.should_split
    assert decision.suggested_strategy == STRATEGY_BY_SECTIONS


def test_decision_is_deterministic() -> None:
    profile = ContentAnalyzer().analyze(_sections(9))

    assert decide(profile) == decide(profile)


@pytest.mark.parametrize(
    "thresholds",
    [
        AtomicConfig(max_lines=0),
        AtomicConfig(max_sections=-1),
        AtomicConfig(code_heavy_multiplier=0),
    ],
)
def test_invalid_thresholds_raise(thresholds: AtomicConfig) -> None:
    profile = ContentAnalyzer().analyze("# Note")

    with pytest.raises(ValidationError):
        decide(profile, thresholds)
