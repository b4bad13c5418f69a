"""Per-request context shared by every engine component."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Optional

from .config import DocForestConfig, load_config
from .logging import get_logger
from .markdown.frontmatter import DocumentMetadata
from .stores.documents import DocumentStore, FileSystemDocumentStore
from .stores.metadata_index import JsonMetadataIndex, MetadataIndex
from .stores.operations import InMemoryOperationLog, OperationLog

DEFAULT_INDEX_PATH = Path(".docforest") / "index.json"


@dataclass
class EngineContext:
    """Collaborators and settings for one request, owned by the caller.

    All mutations go through :meth:`write_document` and
    :meth:`delete_document`, which honour ``dry_run``, emit operation events
    and signal the index.
    """

    store: DocumentStore
    index: MetadataIndex
    operations: OperationLog
    config: DocForestConfig
    dry_run: bool = False
    logger: logging.Logger = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.logger = get_logger("context")

    @classmethod
    def for_corpus(
        cls,
        root: Path,
        *,
        dry_run: bool = False,
        config: DocForestConfig | None = None,
    ) -> "EngineContext":
        """Wire the filesystem store, JSON index and in-memory log for ``root``."""
        root = Path(root).resolve()
        config = config or load_config(root)
        store = FileSystemDocumentStore(root)
        index_path = config.index_path or (root / DEFAULT_INDEX_PATH)
        index = JsonMetadataIndex(index_path, store)
        index.sync()
        if not dry_run:
            index.persist()
        return cls(
            store=store,
            index=index,
            operations=InMemoryOperationLog(),
            config=config,
            dry_run=dry_run,
        )

    def start_operation(self, kind: str) -> Optional[str]:
        """Open an operation; dry runs have none."""
        if self.dry_run:
            return None
        return self.operations.start_operation(kind)

    def write_document(
        self,
        operation_id: Optional[str],
        path: str,
        metadata: DocumentMetadata,
        body: str,
    ) -> bool:
        """Write (or, in dry-run, only log) a document. Returns whether it was written."""
        if self.dry_run:
            self.logger.info("[dry-run] would write %s", path)
            return False
        existed = self.store.exists(path)
        self.store.write_document(path, metadata, body)
        if operation_id is not None:
            if existed:
                self.operations.track_file_modified(operation_id, path)
            else:
                self.operations.track_file_created(operation_id, path)
        self.index.reindex(path)
        self.logger.info("%s %s", "Updated" if existed else "Created", path)
        return True

    def delete_document(self, operation_id: Optional[str], path: str) -> bool:
        if self.dry_run:
            self.logger.info("[dry-run] would delete %s", path)
            return False
        self.store.delete_document(path)
        if operation_id is not None:
            self.operations.track_file_deleted(operation_id, path)
        self.index.reindex(path)
        self.logger.info("Deleted %s", path)
        return True

    def finish(self) -> None:
        """Persist the index when it supports persistence."""
        persist = getattr(self.index, "persist", None)
        if callable(persist) and not self.dry_run:
            persist()


__all__ = ["DEFAULT_INDEX_PATH", "EngineContext"]
