"""Hub and child document lifecycle on top of the document store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Union

from ..errors import ConflictError, NotFoundError, ValidationError
from ..logging import get_logger
from ..markdown.frontmatter import DocumentMetadata, hub_kind, is_hub_kind
from ..markdown.naming import (
    MARKDOWN_SUFFIX,
    filename_for,
    is_markdown,
    join_path,
    parent_dir,
    stem,
)
from ..models import KIND_CHILD, KIND_HUB, KIND_STUB, Document, SplitResult
from .attribution import HubCandidate, attribute
from .knowledge_map import (
    add_child_entry,
    append_entries,
    knowledge_map_entry,
    knowledge_map_targets,
    remove_child_entry,
    summarize,
    target_key,
)
from .splitter import STATUS_ACTIVE
from .templates import ScaffoldRenderer

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docforest.context import EngineContext

STUB_CONFIDENCE = 0.2


@dataclass
class HubChild:
    """A Knowledge Map entry to seed a new hub with."""

    title: str
    summary: Optional[str] = None


@dataclass
class HubInfo:
    path: str
    title: str
    children_count: int
    stored_children_count: Optional[int]
    children: List[str] = field(default_factory=list)


@dataclass
class ChildrenCountReport:
    """Stored ``children_count`` compared with what is on disk."""

    path: str
    stored_count: int
    actual_count: int
    existing_children: List[str] = field(default_factory=list)
    missing_children: List[str] = field(default_factory=list)
    orphaned_children: List[str] = field(default_factory=list)

    @property
    def is_accurate(self) -> bool:
        return self.stored_count == self.actual_count


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class HubManager:
    """Creates hubs and children and keeps Knowledge Maps in sync with siblings."""

    def __init__(
        self,
        context: "EngineContext",
        *,
        renderer: ScaffoldRenderer | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.context = context
        self.renderer = renderer or ScaffoldRenderer(context.config.templates_dir)
        self._clock = clock or _utc_now
        self.logger = get_logger("atomic.hubs")

    # ------------------------------------------------------------------
    # Classification

    @staticmethod
    def is_hub(metadata: DocumentMetadata) -> bool:
        return is_hub_kind(metadata.kind)

    def is_hub_path(self, path: str) -> bool:
        """Hub status comes from the kind tag; a legacy hub filename is also accepted."""
        legacy = self.context.config.atomic.hub_filename
        if legacy and PurePosixPath(path).name == legacy:
            return True
        try:
            document = self.context.store.read_document(path)
        except NotFoundError:
            return False
        return self.is_hub(document.metadata)

    def hub_path_for(self, directory: str, title: str) -> str:
        filename = self.context.config.atomic.hub_filename or filename_for(title)
        return join_path(directory, filename)

    # ------------------------------------------------------------------
    # Creation

    def create_hub(
        self,
        directory: str,
        title: str,
        children: Sequence[Union[HubChild, str]] = (),
        overview: Optional[str] = None,
        original_metadata: Optional[DocumentMetadata] = None,
    ) -> str:
        """Write a new hub with an initial Knowledge Map and return its path."""
        if not title or not title.strip():
            raise ValidationError("Hub title must not be empty")
        title = title.strip()
        path = self.hub_path_for(directory, title)
        if self.context.store.exists(path):
            raise ConflictError(path)

        entries = []
        for child in children:
            if isinstance(child, str):
                child = HubChild(title=child)
            entries.append(knowledge_map_entry(child.title, child.summary))
        now = self._clock()
        original = original_metadata or DocumentMetadata()
        metadata = DocumentMetadata(
            kind=hub_kind(original.kind),
            title=title,
            status=STATUS_ACTIVE,
            children_count=len(entries),
            created=original.created or now,
            modified=now,
        )
        body = self.renderer.render_hub(title, entries, overview)

        operation_id = self.context.start_operation("create_hub")
        self.context.write_document(operation_id, path, metadata, body)
        return path

    def create_child_note(
        self,
        directory: str,
        path: str,
        title: str,
        body: str,
        hub_path: str,
        add_to_hub: bool = False,
    ) -> str:
        """Write a child document; optionally list it in ``hub_path`` in the same call.

        Without ``add_to_hub`` the child stays an orphan candidate until the
        hub is reconciled.
        """
        child_path = path if "/" in path else join_path(directory, path)
        if not is_markdown(child_path):
            child_path = f"{child_path}{MARKDOWN_SUFFIX}"
        if self.context.store.exists(child_path):
            raise ConflictError(child_path)

        hub: Optional[Document] = None
        if add_to_hub:
            hub = self._read_hub(hub_path)

        now = self._clock()
        metadata = DocumentMetadata(
            kind=KIND_CHILD,
            title=title.strip() or stem(child_path),
            status=STATUS_ACTIVE,
            created=now,
            modified=now,
        )
        operation_id = self.context.start_operation("create_child")
        self.context.write_document(operation_id, child_path, metadata, body)

        if hub is not None:
            new_metadata, new_body, added = add_child_entry(
                hub.metadata, hub.body, stem(child_path), summarize(body)
            )
            if added:
                self.context.write_document(
                    operation_id, hub.path, new_metadata.updated(modified=now), new_body
                )
        return child_path

    def create_stub(self, title: str, mentioned_in: str, directory: str = "") -> str:
        """Create a placeholder for a concept that is linked but not yet written."""
        if not title or not title.strip():
            raise ValidationError("Stub title must not be empty")
        title = title.strip()
        path = join_path(directory, filename_for(title))
        if self.context.store.exists(path):
            raise ConflictError(path)
        mention = stem(mentioned_in)
        now = self._clock()
        metadata = DocumentMetadata(
            kind=KIND_STUB,
            title=title,
            status=KIND_STUB,
            created=now,
            modified=now,
            extra={"mentioned_in": [mention], "confidence": STUB_CONFIDENCE, "tags": ["stub"]},
        )
        body = self.renderer.render_stub(title, mention)
        operation_id = self.context.start_operation("create_stub")
        self.context.write_document(operation_id, path, metadata, body)
        return path

    # ------------------------------------------------------------------
    # Knowledge Map maintenance

    def add_child(self, hub_path: str, child_title: str, summary: Optional[str] = None) -> bool:
        hub = self._read_hub(hub_path)
        metadata, body, added = add_child_entry(hub.metadata, hub.body, child_title, summary)
        if not added:
            return False
        operation_id = self.context.start_operation("update_hub")
        self.context.write_document(
            operation_id, hub_path, metadata.updated(modified=self._clock()), body
        )
        return True

    def remove_child(self, hub_path: str, child_title: str) -> bool:
        hub = self._read_hub(hub_path)
        metadata, body, removed = remove_child_entry(hub.metadata, hub.body, child_title)
        if not removed:
            return False
        operation_id = self.context.start_operation("update_hub")
        self.context.write_document(
            operation_id, hub_path, metadata.updated(modified=self._clock()), body
        )
        return True

    def reconcile_hub_children(self, hub_path: str) -> int:
        """Append attributed siblings missing from the Knowledge Map.

        A sibling belongs to this hub when its filename stem or title carries
        the hub's ``"{title} - "`` prefix and no other hub in the directory
        claims it with a longer prefix. ``children_count`` is set to the map
        size. Safe to call repeatedly; returns the number of entries added.
        """
        hub = self._read_hub(hub_path)
        directory = parent_dir(hub_path)
        siblings = self._siblings(directory)
        candidates = [
            HubCandidate(path=document.path, title=document.title)
            for document in siblings
            if self._is_hub_document(document)
        ]
        listed = {target_key(target) for target in knowledge_map_targets(hub.body)}
        policy = self.context.config.attribution.ambiguous

        entries: List[str] = []
        for document in siblings:
            if document.path == hub_path or self._is_hub_document(document):
                continue
            owner = attribute([stem(document.path), document.title], candidates, policy)
            if owner is None or owner.path != hub_path:
                continue
            if stem(document.path).lower() in listed or document.title.lower() in listed:
                continue
            entries.append(knowledge_map_entry(stem(document.path), summarize(document.body)))
            listed.add(stem(document.path).lower())

        body = append_entries(hub.body, entries)
        count = len(knowledge_map_targets(body))
        if not entries and hub.metadata.children_count == count:
            self.logger.debug("Hub %s already reconciled", hub_path)
            return 0

        metadata = hub.metadata.updated(children_count=count, modified=self._clock())
        operation_id = self.context.start_operation("reconcile_hub")
        self.context.write_document(operation_id, hub_path, metadata, body)
        if entries:
            self.logger.info("Reconciled %s: %d child(ren) added", hub_path, len(entries))
        return len(entries)

    def write_split(self, result: SplitResult, source_path: Optional[str] = None) -> List[str]:
        """Persist a planned split after checking every target path for collisions."""
        store = self.context.store
        for child in result.children:
            if child.relative_path == source_path or store.exists(child.relative_path):
                raise ConflictError(child.relative_path)
        if result.hub.relative_path != source_path and store.exists(result.hub.relative_path):
            raise ConflictError(result.hub.relative_path)

        operation_id = self.context.start_operation("split")
        written: List[str] = []
        for child in result.children:
            self.context.write_document(operation_id, child.relative_path, child.metadata, child.body)
            written.append(child.relative_path)
        self.context.write_document(
            operation_id, result.hub.relative_path, result.hub.metadata, result.hub.body
        )
        written.append(result.hub.relative_path)
        if source_path and source_path != result.hub.relative_path and store.exists(source_path):
            self.context.delete_document(operation_id, source_path)
        self.logger.info(
            "Split into %s with %d child(ren)", result.hub.relative_path, len(result.children)
        )
        return written

    # ------------------------------------------------------------------
    # Reporting

    def get_hub_info(self, hub_path: str, validate_children: bool = True) -> HubInfo:
        hub = self._read_hub(hub_path)
        targets = knowledge_map_targets(hub.body)
        count = hub.metadata.children_count or 0
        if validate_children:
            directory = parent_dir(hub_path)
            existing = [
                target for target in targets
                if self.context.store.exists(_target_path(target, directory))
            ]
            count = len(existing)
            if count != (hub.metadata.children_count or 0):
                self.logger.debug(
                    "Hub %s children_count mismatch: stored=%s, actual=%d",
                    hub_path,
                    hub.metadata.children_count,
                    count,
                )
        return HubInfo(
            path=hub_path,
            title=hub.title,
            children_count=count,
            stored_children_count=hub.metadata.children_count,
            children=targets,
        )

    def children_count_report(self, hub_path: str) -> ChildrenCountReport:
        hub = self._read_hub(hub_path)
        directory = parent_dir(hub_path)
        targets = knowledge_map_targets(hub.body)
        existing: List[str] = []
        missing: List[str] = []
        for target in targets:
            child_path = _target_path(target, directory)
            (existing if self.context.store.exists(child_path) else missing).append(child_path)

        listed = {target_key(target) for target in targets}
        orphaned = [
            document.path
            for document in self._siblings(directory)
            if document.path != hub_path
            and not self._is_hub_document(document)
            and stem(document.path).lower() not in listed
            and document.title.lower() not in listed
        ]
        return ChildrenCountReport(
            path=hub_path,
            stored_count=hub.metadata.children_count or 0,
            actual_count=len(existing),
            existing_children=existing,
            missing_children=missing,
            orphaned_children=orphaned,
        )

    def repair_children_counts(self) -> List[ChildrenCountReport]:
        """Correct stale ``children_count`` values on every indexed hub."""
        repaired: List[ChildrenCountReport] = []
        operation_id: Optional[str] = None
        for entry in self.context.index.entries():
            if entry.kind != KIND_HUB:
                continue
            report = self.children_count_report(entry.path)
            if report.is_accurate:
                continue
            hub = self.context.store.read_document(entry.path)
            if operation_id is None:
                operation_id = self.context.start_operation("repair_children_counts")
            metadata = hub.metadata.updated(
                children_count=report.actual_count, modified=self._clock()
            )
            self.context.write_document(operation_id, entry.path, metadata, hub.body)
            repaired.append(report)
        return repaired

    # ------------------------------------------------------------------
    # Internal helpers

    def _read_hub(self, hub_path: str) -> Document:
        document = self.context.store.read_document(hub_path)
        if document.kind != KIND_HUB and not self.is_hub_path(hub_path):
            raise ValidationError(f"Document is not a hub: {hub_path}")
        return document

    def _is_hub_document(self, document: Document) -> bool:
        legacy = self.context.config.atomic.hub_filename
        if legacy and PurePosixPath(document.path).name == legacy:
            return True
        return document.kind == KIND_HUB

    def _siblings(self, directory: str) -> List[Document]:
        documents: List[Document] = []
        for path in self.context.store.list_documents(directory):
            if parent_dir(path) != directory:
                continue
            try:
                documents.append(self.context.store.read_document(path))
            except ValidationError as exc:
                self.logger.warning("Skipping unreadable sibling %s: %s", path, exc)
        return documents


def _target_path(target: str, directory: str) -> str:
    cleaned = target.strip()
    if not cleaned.lower().endswith(MARKDOWN_SUFFIX):
        cleaned = f"{cleaned}{MARKDOWN_SUFFIX}"
    if "/" in cleaned:
        return cleaned.lstrip("/")
    return join_path(directory, cleaned)


__all__ = [
    "ChildrenCountReport",
    "HubChild",
    "HubInfo",
    "HubManager",
    "STUB_CONFIDENCE",
]
