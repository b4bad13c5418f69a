"""Partition an oversized document into a hub and child documents."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import ValidationError
from ..logging import get_logger
from ..markdown.frontmatter import DocumentMetadata, hub_kind
from ..markdown.naming import child_title, filename_for, join_path, sanitize_filename
from ..markdown.scanner import parse_heading
from ..markdown.wikilinks import strip_wiki_links
from ..models import (
    ANNOTATION_KEEP,
    KIND_CHILD,
    STRATEGY_BY_SECTIONS,
    STRATEGY_BY_SUBCONCEPTS,
    STRATEGY_NONE,
    ContentBlock,
    ContentProfile,
    PlannedDocument,
    Section,
    SplitDecision,
    SplitResult,
)
from .analyzer import ContentAnalyzer
from .knowledge_map import KNOWLEDGE_MAP_HEADING, knowledge_map_entry, summarize

STATUS_ACTIVE = "active"
PRESERVED_KEYS = ("tags", "aliases", "source", "confidence")


@dataclass
class SplitOptions:
    """Caller-supplied parameters for one split."""

    target_dir: str
    title: str
    hub_sections: Optional[Sequence[str]] = None
    strategy: Optional[str] = None
    original_metadata: Optional[DocumentMetadata] = None
    hub_filename: Optional[str] = None


@dataclass
class _Candidate:
    block: ContentBlock
    section: Optional[Section]
    extractable: bool


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class ContentSplitter:
    """Computes a complete :class:`SplitResult` in memory; never writes."""

    def __init__(
        self,
        hub_sections: Iterable[str] = (),
        *,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.hub_sections = [entry for entry in hub_sections if entry and entry.strip()]
        self._clock = clock or _utc_now
        self.logger = get_logger("atomic.splitter")

    def split(
        self,
        text: str,
        profile: ContentProfile | None,
        decision: SplitDecision | None,
        options: SplitOptions,
    ) -> SplitResult:
        """Partition ``text`` into hub-retained blocks and extracted children.

        Raises ``ValidationError`` for a blank title or when the computed
        result would drop, duplicate or misplace content.
        """
        if not options.title or not options.title.strip():
            raise ValidationError("Split requires a non-empty hub title")
        hub_title = strip_wiki_links(options.title).strip()
        if not sanitize_filename(hub_title):
            raise ValidationError(f"Hub title {options.title!r} has no usable filename characters")
        profile = profile or ContentAnalyzer().analyze(text)
        strategy = self._resolve_strategy(options, decision)

        hub_sections = list(options.hub_sections) if options.hub_sections is not None else []
        keep_titles = {entry.strip().lower() for entry in [*self.hub_sections, *hub_sections]}

        focus = _focus_section(profile) if strategy == STRATEGY_BY_SUBCONCEPTS else None
        if strategy == STRATEGY_BY_SUBCONCEPTS and focus is None:
            self.logger.debug("No oversized section with sub-concepts; splitting by sections")
            strategy = STRATEGY_BY_SECTIONS

        candidates = _partition(profile, focus)
        now = self._clock()

        retained: List[ContentBlock] = []
        children: List[PlannedDocument] = []
        for position, candidate in enumerate(candidates, start=1):
            section = candidate.section
            if not candidate.extractable or section is None or _stays_in_hub(section, keep_titles):
                retained.append(candidate.block)
                continue
            name = child_title(hub_title, section.title or f"Section {position}")
            children.append(
                PlannedDocument(
                    title=name,
                    relative_path=join_path(options.target_dir, f"{name}.md"),
                    body=f"# {name}\n\n{candidate.block.text}",
                    metadata=DocumentMetadata(
                        kind=KIND_CHILD,
                        title=name,
                        status=STATUS_ACTIVE,
                        created=now,
                        modified=now,
                    ),
                    block=candidate.block,
                    summary=summarize(_without_heading(candidate.block.text)),
                )
            )

        hub = PlannedDocument(
            title=hub_title,
            relative_path=join_path(
                options.target_dir, options.hub_filename or filename_for(hub_title)
            ),
            body=_hub_body(hub_title, retained, children),
            metadata=_hub_metadata(hub_title, len(children), options.original_metadata, now),
        )
        result = SplitResult(
            hub=hub,
            children=children,
            retained=retained,
            source_blocks=[candidate.block for candidate in candidates],
            strategy=strategy,
        )

        problems = validate_split_result(result)
        if problems:
            raise ValidationError("Split validation failed: " + "; ".join(problems))
        self.logger.debug(
            "Planned split of %s (%s): %d retained block(s), %d child(ren)",
            hub_title,
            strategy,
            len(retained),
            len(children),
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _resolve_strategy(options: SplitOptions, decision: SplitDecision | None) -> str:
        strategy = options.strategy
        if strategy is None and decision is not None:
            strategy = decision.suggested_strategy
        if strategy in (None, STRATEGY_NONE):
            return STRATEGY_BY_SECTIONS
        if strategy not in (STRATEGY_BY_SECTIONS, STRATEGY_BY_SUBCONCEPTS):
            raise ValidationError(f"Unknown split strategy: {strategy}")
        return strategy


def validate_split_result(result: SplitResult) -> List[str]:
    """Return every structural problem in ``result``; empty means safe to write."""
    problems: List[str] = []

    seen: Dict[str, str] = {result.hub.title.lower(): result.hub.title}
    for child in result.children:
        key = child.title.lower()
        if key in seen:
            problems.append(f'Duplicate document title "{child.title}"')
        else:
            seen[key] = child.title

    extracted = [child.block for child in result.children if child.block is not None]
    if len(extracted) != len(result.children):
        problems.append("Every child must carry the block it was extracted from")
    combined = sorted([*result.retained, *extracted], key=lambda block: block.start_line)
    if combined != list(result.source_blocks):
        problems.append("Retained and extracted blocks do not reproduce the source content")

    for block in result.retained:
        if block.text.strip() not in result.hub.body:
            problems.append(f'Retained block "{block.title or "intro"}" missing from hub body')
    for child in result.children:
        if child.block is not None and child.block.text.strip() not in child.body:
            problems.append(f'Section "{child.block.title}" missing from child "{child.title}"')
    return problems


def section_text_from_child(body: str) -> str:
    """Recover the verbatim section from a child body by dropping its title heading."""
    lines = body.split("\n")
    if lines and (parse_heading(lines[0]) or (0, ""))[0] == 1:
        lines = lines[1:]
        if lines and not lines[0].strip():
            lines = lines[1:]
    return "\n".join(lines)


def _stays_in_hub(section: Section, keep_titles: set[str]) -> bool:
    if section.annotation == ANNOTATION_KEEP:
        return True
    if section.is_template_content:
        return True
    return section.title.strip().lower() in keep_titles


def _focus_section(profile: ContentProfile) -> Optional[Section]:
    by_name = {section.title: section for section in profile.sections}
    oversized = [by_name[name] for name in profile.large_sections if name in by_name]
    pool = oversized or profile.sections
    with_subs = [section for section in pool if profile.sub_concepts_of(section)]
    if not with_subs:
        return None
    return max(with_subs, key=lambda section: section.line_count)


def _partition(profile: ContentProfile, focus: Optional[Section]) -> List[_Candidate]:
    """Cut the body (minus its title heading) into contiguous, non-blank blocks."""
    lines = profile.lines
    first = 0
    if lines and (parse_heading(lines[0]) or (0, ""))[0] == 1:
        first = 1

    spans: List[Tuple[int, int, Optional[Section], bool]] = []
    cursor = first
    for section in profile.sections:
        if section.start_line > cursor:
            spans.append((cursor, section.start_line - 1, None, False))
        if focus is not None and section.start_line != focus.start_line:
            spans.append((section.start_line, section.end_line, section, False))
        elif focus is not None:
            subs = profile.sub_concepts_of(section)
            if subs[0].start_line > section.start_line:
                spans.append((section.start_line, subs[0].start_line - 1, section, False))
            for sub in subs:
                spans.append((sub.start_line, sub.end_line, sub, True))
        else:
            spans.append((section.start_line, section.end_line, section, True))
        cursor = section.end_line + 1
    if cursor < len(lines):
        spans.append((cursor, len(lines) - 1, None, False))

    candidates: List[_Candidate] = []
    for start, end, section, extractable in spans:
        text = "\n".join(lines[start : end + 1])
        if not text.strip():
            continue
        title = section.title if section is not None else _span_title(lines[start])
        candidates.append(
            _Candidate(
                block=ContentBlock(title=title, start_line=start, end_line=end, text=text),
                section=section,
                extractable=extractable,
            )
        )
    return candidates


def _span_title(first_line: str) -> str:
    heading = parse_heading(first_line)
    return strip_wiki_links(heading[1]).strip() if heading else ""


def _without_heading(text: str) -> str:
    lines = text.split("\n")
    if lines and parse_heading(lines[0]):
        return "\n".join(lines[1:])
    return text


def _hub_body(title: str, retained: Sequence[ContentBlock], children: Sequence[PlannedDocument]) -> str:
    parts = [f"# {title}"]
    parts.extend(block.text.strip("\n").rstrip() for block in retained)
    entries = [knowledge_map_entry(child.title, child.summary) for child in children]
    parts.append(KNOWLEDGE_MAP_HEADING)
    body = "\n\n".join(parts)
    if entries:
        body += "\n\n" + "\n".join(entries)
    return body


def _hub_metadata(
    title: str,
    children_count: int,
    original: Optional[DocumentMetadata],
    now: str,
) -> DocumentMetadata:
    original = original or DocumentMetadata()
    extra = {key: original.extra[key] for key in PRESERVED_KEYS if key in original.extra}
    return DocumentMetadata(
        kind=hub_kind(original.kind),
        title=title,
        status=STATUS_ACTIVE,
        children_count=children_count,
        created=original.created or now,
        modified=now,
        extra=extra,
    )


__all__ = [
    "ContentSplitter",
    "PRESERVED_KEYS",
    "SplitOptions",
    "section_text_from_child",
    "validate_split_result",
]
