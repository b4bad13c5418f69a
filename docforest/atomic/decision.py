"""Pure split decision over a content profile."""

from __future__ import annotations

import math
from typing import Dict, List, Optional

from ..config import AtomicConfig
from ..models import (
    STRATEGY_BY_SECTIONS,
    STRATEGY_BY_SUBCONCEPTS,
    STRATEGY_NONE,
    ContentProfile,
    Section,
    SplitDecision,
    Violation,
)
from .analyzer import ContentAnalyzer, is_code_heavy

VIOLATION_LINES = "lines"
VIOLATION_SECTIONS = "sections"
VIOLATION_LARGE_SECTION = "large_section"

WITHIN_LIMITS_REASON = "Document is within limits"

_STRATEGY_DESCRIPTIONS: Dict[str, str] = {
    STRATEGY_BY_SECTIONS: "split top-level sections into child documents",
    STRATEGY_BY_SUBCONCEPTS: "split the oversized section's sub-concepts into child documents",
}


def effective_max_lines(profile: ContentProfile, thresholds: AtomicConfig) -> int:
    """``max_lines``, scaled by the code-heavy multiplier for fence-dominated bodies."""
    if is_code_heavy(profile, thresholds.code_heavy_ratio):
        return int(math.floor(thresholds.max_lines * thresholds.code_heavy_multiplier))
    return thresholds.max_lines


def decide(profile: ContentProfile, thresholds: AtomicConfig | None = None) -> SplitDecision:
    """Decide whether and how ``profile`` should be split.

    Deterministic and free of I/O. Raises ``ValidationError`` for
    non-positive thresholds.
    """
    thresholds = (thresholds or AtomicConfig()).validate()
    max_lines = effective_max_lines(profile, thresholds)
    oversized = [
        section
        for section in profile.sections
        if section.line_count > thresholds.section_max_lines
    ]

    violations: List[Violation] = []
    if profile.line_count > max_lines:
        limit_note = " (code-heavy limit)" if max_lines != thresholds.max_lines else ""
        violations.append(
            Violation(
                type=VIOLATION_LINES,
                message=f"Document has {profile.line_count} lines (max {max_lines}{limit_note})",
                value=profile.line_count,
                limit=max_lines,
            )
        )
    if profile.section_count > thresholds.max_sections:
        violations.append(
            Violation(
                type=VIOLATION_SECTIONS,
                message=(
                    f"Document has {profile.section_count} sections "
                    f"(max {thresholds.max_sections})"
                ),
                value=profile.section_count,
                limit=thresholds.max_sections,
            )
        )
    if oversized:
        largest = max(section.line_count for section in oversized)
        names = ", ".join(f'"{section.title}"' for section in oversized)
        violations.append(
            Violation(
                type=VIOLATION_LARGE_SECTION,
                message=(
                    f"{len(oversized)} section(s) exceed {thresholds.section_max_lines} lines: {names}"
                ),
                value=largest,
                limit=thresholds.section_max_lines,
            )
        )

    metrics = {
        "line_count": profile.line_count,
        "effective_max_lines": max_lines,
        "section_count": profile.section_count,
        "word_count": profile.word_count,
        "large_section_count": len(oversized),
        "sub_concept_count": len(profile.sub_concepts),
        "code_lines": profile.code_lines,
    }

    if not violations:
        return SplitDecision(
            should_split=False,
            violations=[],
            suggested_strategy=STRATEGY_NONE,
            reason=WITHIN_LIMITS_REASON,
            metrics=metrics,
        )

    strategy = _choose_strategy(profile, violations, oversized, thresholds)
    messages = "; ".join(violation.message for violation in violations)
    return SplitDecision(
        should_split=True,
        violations=violations,
        suggested_strategy=strategy,
        reason=f"{messages}. Suggested: {_STRATEGY_DESCRIPTIONS[strategy]}",
        metrics=metrics,
    )


def needs_split(text: str, thresholds: AtomicConfig | None = None) -> bool:
    return analyze_for_split(text, thresholds).should_split


def analyze_for_split(text: str, thresholds: AtomicConfig | None = None) -> SplitDecision:
    """Analyze raw document text and decide in one call."""
    thresholds = (thresholds or AtomicConfig()).validate()
    profile = ContentAnalyzer(thresholds).analyze(text)
    return decide(profile, thresholds)


def oversized_section(
    profile: ContentProfile, thresholds: AtomicConfig
) -> Optional[Section]:
    """The single section over ``section_max_lines``, if exactly one exists."""
    oversized = [
        section
        for section in profile.sections
        if section.line_count > thresholds.section_max_lines
    ]
    return oversized[0] if len(oversized) == 1 else None


def _choose_strategy(
    profile: ContentProfile,
    violations: List[Violation],
    oversized: List[Section],
    thresholds: AtomicConfig,
) -> str:
    only_large = all(violation.type == VIOLATION_LARGE_SECTION for violation in violations)
    if only_large and len(oversized) == 1:
        if len(profile.sub_concepts_of(oversized[0])) >= thresholds.min_subconcepts:
            return STRATEGY_BY_SUBCONCEPTS
    return STRATEGY_BY_SECTIONS


__all__ = [
    "VIOLATION_LARGE_SECTION",
    "VIOLATION_LINES",
    "VIOLATION_SECTIONS",
    "WITHIN_LIMITS_REASON",
    "analyze_for_split",
    "decide",
    "effective_max_lines",
    "needs_split",
    "oversized_section",
]
