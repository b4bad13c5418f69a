"""Metadata index mapping document paths to title, kind and outbound links."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
import hashlib
import json
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from ..errors import NotFoundError, ValidationError
from ..logging import get_logger
from ..markdown.frontmatter import render_document
from ..atomic.analyzer import ContentAnalyzer
from .documents import DocumentStore

_INDEX_VERSION = 1


@dataclass
class IndexEntry:
    """Cached facts about one document."""

    path: str
    title: str
    kind: str
    links: List[str] = field(default_factory=list)
    children_count: Optional[int] = None
    fingerprint: str = ""


class MetadataIndex(Protocol):
    """Queryable view of corpus metadata; ``reindex`` requests a refresh."""

    def get(self, path: str) -> Optional[IndexEntry]:
        """Return the entry for ``path`` if indexed."""

    def entries(self) -> List[IndexEntry]:
        """Every entry, sorted by path."""

    def reindex(self, path: str) -> None:
        """Refresh (or drop) the entry for ``path`` after a write."""

    def remove(self, path: str) -> None:
        """Forget ``path``."""


class JsonMetadataIndex:
    """Index built from a document store and persisted as versioned JSON.

    Entries carry a content fingerprint so :meth:`sync` only re-analyzes
    documents that changed since the index was last persisted. Corrupt or
    outdated index files are ignored.
    """

    def __init__(self, path: Path | None, store: DocumentStore) -> None:
        self._path = path
        self._store = store
        self._entries: Dict[str, IndexEntry] = {}
        self._dirty = False
        self._analyzer = ContentAnalyzer()
        self.logger = get_logger("stores.index")
        if self._path is not None:
            self._load(self._path)

    def get(self, path: str) -> Optional[IndexEntry]:
        return self._entries.get(path)

    def entries(self) -> List[IndexEntry]:
        return [self._entries[key] for key in sorted(self._entries)]

    def reindex(self, path: str) -> None:
        try:
            document = self._store.read_document(path)
        except NotFoundError:
            self.remove(path)
            return
        except ValidationError as exc:
            self.logger.warning("Skipping %s: %s", path, exc)
            self.remove(path)
            return
        text = render_document(document.metadata, document.body)
        fingerprint = hashlib.sha256(text.encode("utf-8")).hexdigest()
        current = self._entries.get(path)
        if current is not None and current.fingerprint == fingerprint:
            return
        profile = self._analyzer.analyze(document.body)
        self._entries[path] = IndexEntry(
            path=path,
            title=document.title,
            kind=document.kind,
            links=[link.target for link in profile.links],
            children_count=document.children_count,
            fingerprint=fingerprint,
        )
        self._dirty = True

    def remove(self, path: str) -> None:
        if self._entries.pop(path, None) is not None:
            self._dirty = True

    def sync(self) -> None:
        """Bring the index in line with the store, pruning vanished documents."""
        present = self._store.list_documents()
        keep = set(present)
        for stale in [key for key in self._entries if key not in keep]:
            self.remove(stale)
        for path in present:
            self.reindex(path)
        self.logger.debug("Index synced: %d document(s)", len(self._entries))

    def rebuild(self) -> None:
        self.clear()
        self.sync()

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _INDEX_VERSION,
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "entries": {key: asdict(entry) for key, entry in self._entries.items()},
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            self.logger.warning("Ignoring unreadable index file %s", path)
            return
        if not isinstance(data, dict) or data.get("version") != _INDEX_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid: Dict[str, IndexEntry] = {}
        for key, raw in entries.items():
            entry = _entry_from_dict(key, raw)
            if entry is not None:
                valid[key] = entry
        self._entries = valid
        self._dirty = False


def _entry_from_dict(key: object, payload: object) -> Optional[IndexEntry]:
    if not isinstance(key, str) or not isinstance(payload, dict):
        return None
    title = payload.get("title")
    kind = payload.get("kind")
    fingerprint = payload.get("fingerprint")
    links = payload.get("links", [])
    children_count = payload.get("children_count")
    if not isinstance(title, str) or not isinstance(kind, str) or not isinstance(fingerprint, str):
        return None
    if not isinstance(links, list):
        links = []
    if not isinstance(children_count, int) or isinstance(children_count, bool):
        children_count = None
    return IndexEntry(
        path=key,
        title=title,
        kind=kind,
        links=[str(link) for link in links if isinstance(link, str)],
        children_count=children_count,
        fingerprint=fingerprint,
    )


__all__ = ["IndexEntry", "JsonMetadataIndex", "MetadataIndex"]
