"""Edit/store flow tying the analyzer, splitter, hub manager and inspector together."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Iterable, List, Optional, Sequence

from .atomic.analyzer import ContentAnalyzer
from .atomic.decision import decide
from .atomic.hub_manager import HubManager
from .atomic.splitter import ContentSplitter, SplitOptions
from .consistency.executor import ConsistencyExecutor
from .consistency.inspector import ConsistencyInspector
from .context import EngineContext
from .errors import ValidationError
from .logging import get_logger
from .markdown.frontmatter import DocumentMetadata
from .markdown.naming import MARKDOWN_SUFFIX, is_markdown, parent_dir, stem
from .markdown.wikilinks import strip_wiki_links
from .models import (
    FIXABLE_CATEGORIES,
    ContentProfile,
    Document,
    InspectionResult,
    Issue,
    RepairResult,
    SplitDecision,
    SplitResult,
)
from .stores.documents import first_heading, normalise_path


@dataclass
class StoreOutcome:
    """What a store or split request did (or, in dry-run, would do)."""

    path: str
    decision: SplitDecision
    split: Optional[SplitResult] = None
    written: List[str] = field(default_factory=list)
    reconciled: int = 0
    dry_run: bool = False

    @property
    def was_split(self) -> bool:
        return self.split is not None


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class DocumentEngine:
    """Front door for callers: stores documents and keeps the hierarchy consistent."""

    def __init__(
        self,
        context: EngineContext,
        *,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.context = context
        self._clock = clock or _utc_now
        atomic = context.config.atomic
        self.analyzer = ContentAnalyzer(atomic)
        self.splitter = ContentSplitter(atomic.hub_sections, clock=self._clock)
        self.hubs = HubManager(context, clock=self._clock)
        self.inspector = ConsistencyInspector(context)
        self.executor = ConsistencyExecutor(context, clock=self._clock)
        self.logger = get_logger("engine")

    def store_document(
        self,
        path: str,
        body: str,
        metadata: DocumentMetadata | None = None,
        title: str | None = None,
    ) -> StoreOutcome:
        """Write ``body`` at ``path``, splitting it first when it is over the limits.

        Hubs are never split; storing one reconciles its Knowledge Map with
        the siblings in its directory instead.
        """
        path = _document_path(path)
        store = self.context.store
        existing = store.read_document(path) if store.exists(path) else None
        metadata = self._prepare_metadata(path, body, metadata, title, existing)
        profile = self.analyzer.analyze(body)
        decision = decide(profile, self.context.config.atomic)

        if self._is_hub(path, metadata, existing):
            if existing is not None and not self.hubs.is_hub(metadata):
                metadata = metadata.updated(kind=existing.metadata.kind)
            operation_id = self.context.start_operation("store")
            written = self.context.write_document(operation_id, path, metadata, body)
            reconciled = self._reconcile_after_write(path)
            self.context.finish()
            return StoreOutcome(
                path=path,
                decision=decision,
                written=[path] if written else [],
                reconciled=reconciled,
                dry_run=self.context.dry_run,
            )

        if not decision.should_split:
            self.logger.debug("%s: %s", path, decision.reason)
            operation_id = self.context.start_operation("store")
            written = self.context.write_document(operation_id, path, metadata, body)
            self.context.finish()
            return StoreOutcome(
                path=path,
                decision=decision,
                written=[path] if written else [],
                dry_run=self.context.dry_run,
            )

        self.logger.info("Splitting %s: %s", path, decision.reason)
        outcome = self._split(
            path,
            body,
            metadata,
            profile,
            decision,
            source=path if existing is not None else None,
        )
        if outcome is None:
            self.logger.info("%s has no extractable sections; storing unchanged", path)
            operation_id = self.context.start_operation("store")
            written = self.context.write_document(operation_id, path, metadata, body)
            outcome = StoreOutcome(
                path=path,
                decision=decision,
                written=[path] if written else [],
                dry_run=self.context.dry_run,
            )
        self.context.finish()
        return outcome

    def split_document(
        self,
        path: str,
        *,
        hub_sections: Optional[Sequence[str]] = None,
        strategy: Optional[str] = None,
        force: bool = False,
    ) -> StoreOutcome:
        """Split an existing document in place when the decision engine asks for it.

        ``force`` splits even a document within the limits.
        """
        path = _document_path(path)
        document = self.context.store.read_document(path)
        if self._is_hub(path, document.metadata, document):
            raise ValidationError(f"Refusing to split a hub: {path}")
        profile = self.analyzer.analyze(document.body)
        decision = decide(profile, self.context.config.atomic)
        if not decision.should_split and not force:
            self.logger.info("%s does not need splitting: %s", path, decision.reason)
            return StoreOutcome(path=path, decision=decision, dry_run=self.context.dry_run)
        metadata = document.metadata
        if not metadata.title:
            metadata = metadata.updated(title=document.title)
        outcome = self._split(
            path,
            document.body,
            metadata,
            profile,
            decision,
            source=path,
            hub_sections=hub_sections,
            strategy=strategy,
        )
        if outcome is None:
            self.logger.info("%s has no extractable sections; left unchanged", path)
            return StoreOutcome(path=path, decision=decision, dry_run=self.context.dry_run)
        self.context.finish()
        return outcome

    def reconcile(self, hub_path: str) -> int:
        added = self.hubs.reconcile_hub_children(_document_path(hub_path))
        self.context.finish()
        return added

    def inspect(
        self,
        categories: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> InspectionResult:
        return self.inspector.inspect(categories=categories, limit=limit)

    def repair(
        self,
        issues: Optional[Sequence[Issue]] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> RepairResult:
        """Apply fixable issues, inspecting first when none are supplied.

        Without an explicit ``categories`` filter, fresh inspection covers the
        fixable categories only.
        """
        if issues is None:
            selected = list(categories) if categories is not None else list(FIXABLE_CATEGORIES)
            issues = self.inspector.inspect(categories=selected).issues
        elif categories is not None:
            wanted = set(categories)
            issues = [issue for issue in issues if issue.category in wanted]
        result = self.executor.apply(issues)
        self.context.finish()
        return result

    # ------------------------------------------------------------------
    # Internal helpers

    def _prepare_metadata(
        self,
        path: str,
        body: str,
        metadata: Optional[DocumentMetadata],
        title: Optional[str],
        existing: Optional[Document],
    ) -> DocumentMetadata:
        now = self._clock()
        if metadata is not None:
            base = metadata
        else:
            base = existing.metadata if existing else DocumentMetadata()
        created = base.created or (existing.metadata.created if existing else None) or now
        return base.updated(
            title=_resolve_title(title, base, body, path),
            created=created,
            modified=now,
        )

    def _is_hub(
        self, path: str, metadata: DocumentMetadata, existing: Optional[Document]
    ) -> bool:
        if self.hubs.is_hub(metadata):
            return True
        if existing is not None and self.hubs.is_hub(existing.metadata):
            return True
        legacy = self.context.config.atomic.hub_filename
        return bool(legacy) and path.rsplit("/", 1)[-1] == legacy

    def _split(
        self,
        path: str,
        body: str,
        metadata: DocumentMetadata,
        profile: ContentProfile,
        decision: SplitDecision,
        *,
        source: Optional[str],
        hub_sections: Optional[Sequence[str]] = None,
        strategy: Optional[str] = None,
    ) -> Optional[StoreOutcome]:
        """Plan and write a split; ``None`` when no section can become a child."""
        options = SplitOptions(
            target_dir=parent_dir(path),
            title=metadata.title or stem(path),
            hub_sections=hub_sections,
            strategy=strategy,
            original_metadata=metadata,
            hub_filename=self.context.config.atomic.hub_filename,
        )
        result = self.splitter.split(body, profile, decision, options)
        if not result.children:
            return None
        written = self.hubs.write_split(result, source)
        reconciled = self._reconcile_after_write(result.hub.relative_path)
        return StoreOutcome(
            path=result.hub.relative_path,
            decision=decision,
            split=result,
            written=[] if self.context.dry_run else written,
            reconciled=reconciled,
            dry_run=self.context.dry_run,
        )

    def _reconcile_after_write(self, hub_path: str) -> int:
        # A dry run leaves the store untouched, so only an already-stored hub can be reconciled.
        if self.context.dry_run and not self.hubs.is_hub_path(hub_path):
            return 0
        return self.hubs.reconcile_hub_children(hub_path)


def _document_path(path: str) -> str:
    normalised = normalise_path(path)
    if not is_markdown(normalised):
        normalised = f"{normalised}{MARKDOWN_SUFFIX}"
    return normalised


def _resolve_title(
    title: Optional[str], metadata: DocumentMetadata, body: str, path: str
) -> str:
    for candidate in (title, metadata.title, first_heading(body)):
        cleaned = strip_wiki_links(candidate or "").strip()
        if cleaned:
            return cleaned
    return stem(path)


__all__ = ["DocumentEngine", "StoreOutcome"]
