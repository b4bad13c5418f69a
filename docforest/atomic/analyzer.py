"""Structural profiling of a single markdown document."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from ..config import AtomicConfig
from ..errors import ValidationError
from ..logging import get_logger
from ..markdown.frontmatter import split_frontmatter
from ..markdown.scanner import ScannedLine, scan_lines
from ..markdown.wikilinks import extract_wiki_links, strip_wiki_links
from ..models import (
    CodeBlock,
    ContentProfile,
    LinkOccurrence,
    Section,
    SubConcept,
    WikiLink,
)

TEMPLATE_KEYWORDS = ("example", "template", "sample", "placeholder", "demo")
_TEMPLATE_OPEN = re.compile(r"<!--\s*template\s*-->", re.IGNORECASE)
_TEMPLATE_CLOSE = re.compile(r"<!--\s*/template\s*-->", re.IGNORECASE)
_QUOTE_THRESHOLD = 0.7
_QUOTE_MIN_LINES = 3


class ContentAnalyzer:
    """Parses a document into a :class:`ContentProfile`."""

    def __init__(self, config: AtomicConfig | None = None) -> None:
        self.config = config or AtomicConfig()
        self.logger = get_logger("atomic.analyzer")

    def analyze(self, text: str) -> ContentProfile:
        if not isinstance(text, str):
            raise ValidationError("Document text must be a string")
        _, body, frontmatter_lines = split_frontmatter(text)
        body = _normalise_body(body)
        lines = body.split("\n") if body else []
        scanned = scan_lines(lines)

        sections = self._extract_sections(scanned)
        sub_concepts: List[SubConcept] = []
        for section in sections:
            sub_concepts.extend(self._extract_sub_concepts(scanned, section))

        code_blocks = _extract_code_blocks(scanned)
        occurrences = _link_occurrences(scanned)
        links = _unique_links(occurrences)
        code_lines = sum(1 for line in scanned if line.in_code_block)
        intro_end = (sections[0].start_line - 1) if sections else len(lines) - 1
        large = [
            section.title
            for section in sections
            if section.line_count > self.config.section_max_lines
        ]

        profile = ContentProfile(
            title=_first_title(scanned),
            line_count=len(lines),
            frontmatter_lines=frontmatter_lines,
            word_count=_count_words(scanned),
            code_lines=code_lines,
            intro_end_line=intro_end,
            sections=sections,
            sub_concepts=sub_concepts,
            code_blocks=code_blocks,
            links=links,
            link_occurrences=occurrences,
            large_sections=large,
            body=body,
        )
        self.logger.debug(
            "Analyzed document: %d lines, %d sections, %d code lines",
            profile.line_count,
            profile.section_count,
            profile.code_lines,
        )
        return profile

    # ------------------------------------------------------------------
    # Internal helpers

    def _extract_sections(self, scanned: Sequence[ScannedLine]) -> List[Section]:
        boundaries = [
            line.index for line in scanned if line.heading_level is not None and line.heading_level <= 2
        ]
        sections: List[Section] = []
        for line in scanned:
            if line.heading_level != 2:
                continue
            following = [index for index in boundaries if index > line.index]
            end = (following[0] - 1) if following else len(scanned) - 1
            sections.append(self._build_section(scanned, line, end, Section))
        return sections

    def _extract_sub_concepts(
        self, scanned: Sequence[ScannedLine], section: Section
    ) -> List[SubConcept]:
        span = scanned[section.start_line + 1 : section.end_line + 1]
        boundaries = [
            line.index for line in span if line.heading_level is not None and line.heading_level <= 3
        ]
        subs: List[SubConcept] = []
        for line in span:
            if line.heading_level != 3:
                continue
            following = [index for index in boundaries if index > line.index]
            end = (following[0] - 1) if following else section.end_line
            sub = self._build_section(scanned, line, end, SubConcept)
            sub.parent_section = section.title
            subs.append(sub)
        return subs

    def _build_section(self, scanned: Sequence[ScannedLine], heading: ScannedLine, end: int, cls):
        title = strip_wiki_links(heading.heading_text or "").strip()
        content = scanned[heading.index + 1 : end + 1]
        return cls(
            title=title,
            level=heading.heading_level or 2,
            start_line=heading.index,
            end_line=end,
            line_count=end - heading.index + 1,
            word_count=_count_words(scanned[heading.index : end + 1]),
            annotation=_annotation_after(content),
            is_template_content=is_template_content(title, content),
        )


def analyze_content(text: str, config: AtomicConfig | None = None) -> ContentProfile:
    """Module-level shortcut for :meth:`ContentAnalyzer.analyze`."""
    return ContentAnalyzer(config).analyze(text)


def is_code_heavy(profile: ContentProfile, ratio: float) -> bool:
    return profile.code_ratio > ratio


def is_template_content(title: str, content: Sequence[ScannedLine]) -> bool:
    """Heuristic for example/template material that belongs in the hub."""
    lowered = title.lower()
    if any(keyword in lowered for keyword in TEMPLATE_KEYWORDS):
        return True

    prose = [
        line
        for line in content
        if not line.is_blank and line.annotation is None
    ]
    quoted = sum(1 for line in prose if line.text.lstrip().startswith(">"))
    if len(prose) > _QUOTE_MIN_LINES and quoted / len(prose) > _QUOTE_THRESHOLD:
        return True

    opened = False
    for line in content:
        if line.in_code_block:
            continue
        if not opened and _TEMPLATE_OPEN.search(line.text):
            opened = True
        if opened and _TEMPLATE_CLOSE.search(line.text):
            return True
    return False


def _normalise_body(body: str) -> str:
    lines = body.replace("\r\n", "\n").split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    return "\n".join(lines).rstrip()


def _first_title(scanned: Sequence[ScannedLine]) -> Optional[str]:
    for line in scanned:
        if line.heading_level == 1:
            return strip_wiki_links(line.heading_text or "").strip() or None
    return None


def _annotation_after(content: Sequence[ScannedLine]) -> Optional[str]:
    for line in content:
        if line.is_blank:
            continue
        return line.annotation
    return None


def _count_words(scanned: Sequence[ScannedLine]) -> int:
    total = 0
    for line in scanned:
        if line.in_code_block:
            continue
        text = line.heading_text if line.heading_level is not None else line.text
        total += len(strip_wiki_links(text or "").split())
    return total


def _extract_code_blocks(scanned: Sequence[ScannedLine]) -> List[CodeBlock]:
    blocks: List[CodeBlock] = []
    start: Optional[int] = None
    language = ""
    for line in scanned:
        if not line.is_fence:
            continue
        if start is None:
            start = line.index
            language = line.fence_language or ""
        else:
            blocks.append(CodeBlock(language=language, start_line=start, end_line=line.index))
            start = None
    if start is not None:
        blocks.append(CodeBlock(language=language, start_line=start, end_line=len(scanned) - 1))
    return blocks


def _link_occurrences(scanned: Sequence[ScannedLine]) -> List[LinkOccurrence]:
    occurrences: List[LinkOccurrence] = []
    for line in scanned:
        for link in extract_wiki_links(line.text):
            occurrences.append(
                LinkOccurrence(
                    link=link,
                    line=line.index,
                    in_code_block=line.in_code_block,
                    in_heading=line.heading_level is not None,
                )
            )
    return occurrences


def _unique_links(occurrences: Sequence[LinkOccurrence]) -> List[WikiLink]:
    seen: Dict[str, WikiLink] = {}
    for occurrence in occurrences:
        if occurrence.in_code_block:
            continue
        seen.setdefault(occurrence.link.target, occurrence.link)
    return list(seen.values())


__all__ = [
    "ContentAnalyzer",
    "TEMPLATE_KEYWORDS",
    "analyze_content",
    "is_code_heavy",
    "is_template_content",
]
