"""Core data models shared across docforest components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .errors import PartialFailureError

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docforest.markdown.frontmatter import DocumentMetadata

KIND_HUB = "hub"
KIND_CHILD = "child"
KIND_STUB = "stub"
KIND_STANDALONE = "standalone"
DOCUMENT_KINDS: tuple[str, ...] = (KIND_HUB, KIND_CHILD, KIND_STUB, KIND_STANDALONE)

ANNOTATION_KEEP = "keep"
ANNOTATION_SPLIT = "split"

STRATEGY_NONE = "none"
STRATEGY_BY_SECTIONS = "by_sections"
STRATEGY_BY_SUBCONCEPTS = "by_subconcepts"

UNPREFIXED_CHILDREN = "unprefixed_children"
CORRUPTED_HEADINGS = "corrupted_headings"
NAMING_INCONSISTENCIES = "naming_inconsistencies"
BROKEN_WIKI_LINKS = "broken_wiki_links"
CODE_BLOCK_LINKS = "code_block_links"
ORPHANED_FRAGMENTS = "orphaned_fragments"

ISSUE_CATEGORIES: tuple[str, ...] = (
    UNPREFIXED_CHILDREN,
    CORRUPTED_HEADINGS,
    NAMING_INCONSISTENCIES,
    BROKEN_WIKI_LINKS,
    CODE_BLOCK_LINKS,
    ORPHANED_FRAGMENTS,
)
FIXABLE_CATEGORIES: frozenset[str] = frozenset(
    {UNPREFIXED_CHILDREN, CORRUPTED_HEADINGS, BROKEN_WIKI_LINKS, CODE_BLOCK_LINKS}
)


@dataclass
class Document:
    """A corpus document with its parsed metadata."""

    path: str
    title: str
    kind: str
    children_count: Optional[int]
    body: str
    metadata: "DocumentMetadata"


@dataclass
class Section:
    """A heading-delimited span of a document body (0-based, inclusive lines)."""

    title: str
    level: int
    start_line: int
    end_line: int
    line_count: int
    word_count: int = 0
    annotation: Optional[str] = None
    is_template_content: bool = False


@dataclass
class SubConcept(Section):
    """A level-3 heading nested under a top-level section."""

    parent_section: Optional[str] = None


@dataclass
class CodeBlock:
    """A fenced code block, delimiters included."""

    language: str
    start_line: int
    end_line: int

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


@dataclass(frozen=True)
class WikiLink:
    """A ``[[target]]`` or ``[[target|display]]`` reference."""

    target: str
    display: Optional[str]
    raw: str

    @property
    def text(self) -> str:
        return self.display or self.target


@dataclass(frozen=True)
class LinkOccurrence:
    """A single wiki-link occurrence with its position in the body."""

    link: WikiLink
    line: int
    in_code_block: bool
    in_heading: bool


@dataclass
class ContentProfile:
    """Structural profile of one document, recomputed on every read."""

    title: Optional[str]
    line_count: int
    frontmatter_lines: int
    word_count: int
    code_lines: int
    intro_end_line: int
    sections: List[Section]
    sub_concepts: List[SubConcept]
    code_blocks: List[CodeBlock]
    links: List[WikiLink]
    link_occurrences: List[LinkOccurrence]
    large_sections: List[str]
    body: str

    @property
    def section_count(self) -> int:
        return len(self.sections)

    @property
    def code_ratio(self) -> float:
        if self.line_count == 0:
            return 0.0
        return self.code_lines / self.line_count

    @property
    def lines(self) -> List[str]:
        return self.body.split("\n") if self.body else []

    def sub_concepts_of(self, section: Section) -> List[SubConcept]:
        return [
            sub
            for sub in self.sub_concepts
            if section.start_line < sub.start_line <= section.end_line
        ]


@dataclass
class Violation:
    """A single threshold breach reported by the decision engine."""

    type: str
    message: str
    value: int
    limit: int


@dataclass
class SplitDecision:
    """Whether and how a document should be split."""

    should_split: bool
    violations: List[Violation]
    suggested_strategy: str
    reason: str
    metrics: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ContentBlock:
    """A contiguous body span that the splitter moves as one unit."""

    title: str
    start_line: int
    end_line: int
    text: str


@dataclass
class PlannedDocument:
    """A hub or child document computed in memory before any write."""

    title: str
    relative_path: str
    body: str
    metadata: "DocumentMetadata"
    block: Optional[ContentBlock] = None
    summary: Optional[str] = None


@dataclass
class SplitResult:
    """Hub and children produced by one split, plus the partition they came from."""

    hub: PlannedDocument
    children: List[PlannedDocument]
    retained: List[ContentBlock]
    source_blocks: List[ContentBlock]
    strategy: str


@dataclass
class Issue:
    """A structural drift finding produced by the inspector."""

    category: str
    path: str
    description: str
    suggestion: Optional[str] = None
    fixable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InspectionResult:
    """Issues from one inspector run with per-category counts."""

    issues: List[Issue]
    summary: Dict[str, int]
    documents_scanned: int
    truncated: bool = False


@dataclass
class RepairResult:
    """Outcome of applying a batch of fixes."""

    operation_id: Optional[str]
    processed: int = 0
    fixed: int = 0
    skipped: int = 0
    dry_run: bool = False
    fixes: List[Dict[str, Any]] = field(default_factory=list)
    skipped_items: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)

    def raise_for_errors(self) -> None:
        """Raise ``PartialFailureError`` when any issue failed to apply."""
        if not self.errors:
            return
        raise PartialFailureError(
            f"{len(self.errors)} of {self.processed} fix(es) failed "
            f"({self.fixed} applied)",
            self,
        )


__all__ = [
    "ANNOTATION_KEEP",
    "ANNOTATION_SPLIT",
    "BROKEN_WIKI_LINKS",
    "CODE_BLOCK_LINKS",
    "CORRUPTED_HEADINGS",
    "CodeBlock",
    "ContentBlock",
    "ContentProfile",
    "DOCUMENT_KINDS",
    "Document",
    "FIXABLE_CATEGORIES",
    "ISSUE_CATEGORIES",
    "InspectionResult",
    "Issue",
    "KIND_CHILD",
    "KIND_HUB",
    "KIND_STANDALONE",
    "KIND_STUB",
    "LinkOccurrence",
    "NAMING_INCONSISTENCIES",
    "ORPHANED_FRAGMENTS",
    "PlannedDocument",
    "RepairResult",
    "STRATEGY_BY_SECTIONS",
    "STRATEGY_BY_SUBCONCEPTS",
    "STRATEGY_NONE",
    "Section",
    "SplitDecision",
    "SplitResult",
    "SubConcept",
    "UNPREFIXED_CHILDREN",
    "Violation",
    "WikiLink",
]
