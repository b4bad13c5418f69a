"""Read-only detection of structural drift across the corpus."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence

from ..atomic.attribution import HubCandidate, attribute
from ..atomic.knowledge_map import knowledge_map_targets, target_key
from ..errors import NotFoundError, ValidationError
from ..logging import get_logger
from ..markdown.naming import child_title, parent_dir, stem
from ..markdown.scanner import scan_text
from ..markdown.wikilinks import (
    BROKEN_LINK_PATTERN,
    WIKILINK_PATTERN,
    has_wiki_link,
    strip_wiki_links,
)
from ..models import (
    BROKEN_WIKI_LINKS,
    CODE_BLOCK_LINKS,
    CORRUPTED_HEADINGS,
    ISSUE_CATEGORIES,
    KIND_HUB,
    KIND_STUB,
    NAMING_INCONSISTENCIES,
    ORPHANED_FRAGMENTS,
    UNPREFIXED_CHILDREN,
    Document,
    InspectionResult,
    Issue,
)
from ..stores.metadata_index import IndexEntry

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docforest.context import EngineContext


class ConsistencyInspector:
    """Scans indexed documents for drift categories.

    Documents are visited in path order and categories in a fixed order, so
    two runs without intervening writes return identical issue lists.
    """

    def __init__(self, context: "EngineContext") -> None:
        self.context = context
        self.logger = get_logger("consistency.inspector")
        self._bodies: Dict[str, Document] = {}
        self._checks: Dict[str, Callable[[Sequence[IndexEntry]], List[Issue]]] = {
            UNPREFIXED_CHILDREN: self._unprefixed_children,
            CORRUPTED_HEADINGS: self._corrupted_headings,
            NAMING_INCONSISTENCIES: self._naming_inconsistencies,
            BROKEN_WIKI_LINKS: self._broken_wiki_links,
            CODE_BLOCK_LINKS: self._code_block_links,
            ORPHANED_FRAGMENTS: self._orphaned_fragments,
        }

    def inspect(
        self,
        categories: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> InspectionResult:
        selected = self._select_categories(categories)
        limit = limit if limit is not None else self.context.config.inspect.limit
        if limit is not None and limit <= 0:
            raise ValidationError("limit must be a positive integer")

        self._bodies = {}
        entries = self._readable(
            sorted(self.context.index.entries(), key=lambda entry: entry.path)
        )
        issues: List[Issue] = []
        for category in selected:
            issues.extend(self._checks[category](entries))

        truncated = limit is not None and len(issues) > limit
        if truncated:
            issues = issues[:limit]
        summary = {category: 0 for category in selected}
        for issue in issues:
            summary[issue.category] += 1
        self.logger.debug(
            "Inspected %d document(s): %d issue(s)%s",
            len(entries),
            len(issues),
            " (truncated)" if truncated else "",
        )
        return InspectionResult(
            issues=issues,
            summary=summary,
            documents_scanned=len(entries),
            truncated=truncated,
        )

    # ------------------------------------------------------------------
    # Categories

    def _unprefixed_children(self, entries: Sequence[IndexEntry]) -> List[Issue]:
        issues: List[Issue] = []
        hubs_by_dir = self._hubs_by_dir(entries)
        policy = self.context.config.attribution.ambiguous
        for entry in entries:
            if self._is_hub(entry) or entry.kind == KIND_STUB:
                continue
            hubs = hubs_by_dir.get(parent_dir(entry.path))
            if not hubs:
                continue
            title = strip_wiki_links(entry.title).strip()
            if len(hubs) == 1:
                hub: Optional[HubCandidate] = hubs[0]
            else:
                hub = attribute([title], hubs, policy)
            if hub is None:
                continue
            prefix = hub.prefix
            current = stem(entry.path)
            if current.lower().startswith(prefix.lower()):
                continue
            section = title[len(prefix):] if title.lower().startswith(prefix.lower()) else title
            if not section or section.lower() == hub.title.lower():
                continue
            suggested = f"{child_title(hub.title, section)}.md"
            issues.append(
                Issue(
                    category=UNPREFIXED_CHILDREN,
                    path=entry.path,
                    description=f'Child "{current}" lacks hub prefix "{prefix}"',
                    suggestion=f'Rename to "{suggested}"',
                    fixable=True,
                    details={
                        "hub_path": hub.path,
                        "hub_title": hub.title,
                        "current_filename": current + ".md",
                        "suggested_filename": suggested,
                    },
                )
            )
        return issues

    def _corrupted_headings(self, entries: Sequence[IndexEntry]) -> List[Issue]:
        issues: List[Issue] = []
        for entry in entries:
            for line in scan_text(self._document(entry.path).body):
                if line.heading_level != 1:
                    continue
                if has_wiki_link(line.text):
                    clean = f"{'#' * line.heading_level} {strip_wiki_links(line.heading_text or '').strip()}"
                    issues.append(
                        Issue(
                            category=CORRUPTED_HEADINGS,
                            path=entry.path,
                            description=f'Title heading contains wiki-links: "{line.text.strip()}"',
                            suggestion=clean,
                            fixable=True,
                            details={
                                "line_number": line.index + 1,
                                "current_heading": line.text.strip(),
                                "clean_heading": clean,
                            },
                        )
                    )
                break
        return issues

    def _naming_inconsistencies(self, entries: Sequence[IndexEntry]) -> List[Issue]:
        by_name: Dict[str, List[str]] = defaultdict(list)
        for entry in entries:
            by_name[entry.path.rsplit("/", 1)[-1].lower()].append(entry.path)
        issues: List[Issue] = []
        for paths in by_name.values():
            if len({parent_dir(path) for path in paths}) < 2:
                continue
            for path in paths:
                filename = path.rsplit("/", 1)[-1]
                issues.append(
                    Issue(
                        category=NAMING_INCONSISTENCIES,
                        path=path,
                        description=f'Filename "{filename}" appears in {len(paths)} directories',
                        suggestion="Prefix with the parent hub title to make the name unique",
                        fixable=False,
                        details={"duplicate_paths": list(paths)},
                    )
                )
        issues.sort(key=lambda issue: issue.path)
        return issues

    def _broken_wiki_links(self, entries: Sequence[IndexEntry]) -> List[Issue]:
        issues: List[Issue] = []
        for entry in entries:
            for line in scan_text(self._document(entry.path).body):
                if line.in_code_block:
                    continue
                for match in BROKEN_LINK_PATTERN.finditer(line.text):
                    broken = match.group(0)
                    fixed_link = f"[[{match.group(1)}{match.group(2) or ''}]]"
                    fixed_line = line.text.replace(broken, fixed_link, 1)
                    issues.append(
                        Issue(
                            category=BROKEN_WIKI_LINKS,
                            path=entry.path,
                            description=f'Malformed wiki-link "{broken}" on line {line.index + 1}',
                            suggestion=fixed_line.strip(),
                            fixable=True,
                            details={
                                "line_number": line.index + 1,
                                "line_content": line.text.strip(),
                                "broken_link": broken,
                                "fixed_link": fixed_link,
                                "link_target": match.group(1),
                                "trailing_text": match.group(3),
                            },
                        )
                    )
        return issues

    def _code_block_links(self, entries: Sequence[IndexEntry]) -> List[Issue]:
        issues: List[Issue] = []
        for entry in entries:
            for line in scan_text(self._document(entry.path).body):
                if not line.in_code_block or line.is_fence:
                    continue
                for match in WIKILINK_PATTERN.finditer(line.text):
                    target = match.group(1).strip()
                    display = (match.group(2) or "").strip() or target
                    issues.append(
                        Issue(
                            category=CODE_BLOCK_LINKS,
                            path=entry.path,
                            description=f"Wiki-link [[{target}]] inside code block on line {line.index + 1}",
                            suggestion=line.text.replace(match.group(0), display, 1).strip(),
                            fixable=True,
                            details={
                                "line_number": line.index + 1,
                                "line_content": line.text.strip(),
                                "raw_link": match.group(0),
                                "link_target": target,
                                "display_text": display,
                            },
                        )
                    )
        return issues

    def _orphaned_fragments(self, entries: Sequence[IndexEntry]) -> List[Issue]:
        issues: List[Issue] = []
        hubs_by_dir = self._hubs_by_dir(entries)
        policy = self.context.config.attribution.ambiguous
        listed_by_hub: Dict[str, set[str]] = {}
        for hubs in hubs_by_dir.values():
            for hub in hubs:
                targets = knowledge_map_targets(self._document(hub.path).body)
                listed_by_hub[hub.path] = {target_key(target) for target in targets}

        for entry in entries:
            if self._is_hub(entry) or entry.kind == KIND_STUB:
                continue
            hubs = hubs_by_dir.get(parent_dir(entry.path))
            if not hubs:
                continue
            keys = {stem(entry.path).lower(), entry.title.lower()}
            if any(keys & listed_by_hub[hub.path] for hub in hubs):
                continue
            owner = attribute([stem(entry.path), entry.title], hubs, policy)
            if owner is not None:
                description = f'Not listed in the Knowledge Map of hub "{owner.title}"'
                suggestion = f"Add [[{stem(entry.path)}]] to {owner.path} or reconcile the hub"
            else:
                names = ", ".join(f'"{hub.title}"' for hub in hubs)
                description = f"In a hub directory but not listed by any hub ({names})"
                suggestion = "Rename with a hub prefix or move the document"
            issues.append(
                Issue(
                    category=ORPHANED_FRAGMENTS,
                    path=entry.path,
                    description=description,
                    suggestion=suggestion,
                    fixable=False,
                    details={
                        "hub_path": owner.path if owner else None,
                        "hub_title": owner.title if owner else None,
                        "candidate_hubs": [hub.path for hub in hubs],
                    },
                )
            )
        return issues

    # ------------------------------------------------------------------
    # Internal helpers

    def _select_categories(self, categories: Optional[Iterable[str]]) -> List[str]:
        if categories is None:
            return list(ISSUE_CATEGORIES)
        requested = set(categories)
        unknown = sorted(requested - set(ISSUE_CATEGORIES))
        if unknown:
            raise ValidationError(f"Unknown issue categories: {', '.join(unknown)}")
        return [category for category in ISSUE_CATEGORIES if category in requested]

    def _is_hub(self, entry: IndexEntry) -> bool:
        legacy = self.context.config.atomic.hub_filename
        if legacy and entry.path.rsplit("/", 1)[-1] == legacy:
            return True
        return entry.kind == KIND_HUB

    def _hubs_by_dir(self, entries: Sequence[IndexEntry]) -> Dict[str, List[HubCandidate]]:
        hubs: Dict[str, List[HubCandidate]] = defaultdict(list)
        for entry in entries:
            if self._is_hub(entry):
                hubs[parent_dir(entry.path)].append(
                    HubCandidate(path=entry.path, title=strip_wiki_links(entry.title).strip())
                )
        return hubs

    def _readable(self, entries: Sequence[IndexEntry]) -> List[IndexEntry]:
        readable: List[IndexEntry] = []
        for entry in entries:
            try:
                self._document(entry.path)
            except (NotFoundError, ValidationError) as exc:
                self.logger.warning("Skipping %s: %s", entry.path, exc)
                continue
            readable.append(entry)
        return readable

    def _document(self, path: str) -> Document:
        document = self._bodies.get(path)
        if document is None:
            document = self.context.store.read_document(path)
            self._bodies[path] = document
        return document


__all__ = ["ConsistencyInspector"]
