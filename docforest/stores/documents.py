"""Document store interface and the filesystem-backed implementation."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import List, Optional, Protocol

from ..errors import NotFoundError, ValidationError
from ..logging import get_logger
from ..markdown.frontmatter import DocumentMetadata, parse_document, render_document
from ..markdown.naming import is_markdown, stem
from ..markdown.scanner import scan_text
from ..markdown.wikilinks import strip_wiki_links
from ..models import Document


class DocumentStore(Protocol):
    """Reads and writes markdown documents addressed by corpus-relative path."""

    def read_document(self, path: str) -> Document:
        """Return the document or raise ``NotFoundError``."""

    def write_document(self, path: str, metadata: DocumentMetadata, body: str) -> None:
        """Create or replace the document at ``path``."""

    def delete_document(self, path: str) -> None:
        """Remove the document or raise ``NotFoundError``."""

    def list_documents(self, dir_prefix: str = "") -> List[str]:
        """Sorted markdown paths under ``dir_prefix`` (recursive)."""

    def exists(self, path: str) -> bool:
        """Whether a document exists at ``path``."""


class FileSystemDocumentStore:
    """Stores documents as markdown files with YAML frontmatter under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()
        self.logger = get_logger("stores.documents")

    def read_document(self, path: str) -> Document:
        file_path = self._resolve(path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(path) from exc
        metadata, body = parse_document(text)
        return build_document(normalise_path(path), metadata, body)

    def write_document(self, path: str, metadata: DocumentMetadata, body: str) -> None:
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(render_document(metadata, body), encoding="utf-8")
        self.logger.debug("Wrote %s", path)

    def delete_document(self, path: str) -> None:
        file_path = self._resolve(path)
        try:
            file_path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(path) from exc
        self.logger.debug("Deleted %s", path)

    def list_documents(self, dir_prefix: str = "") -> List[str]:
        prefix = normalise_path(dir_prefix) if dir_prefix.strip("/.") else ""
        base = self._resolve(prefix) if prefix else self.root
        if not base.is_dir():
            return []
        paths: List[str] = []
        for candidate in base.rglob("*"):
            relative = candidate.relative_to(self.root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if candidate.is_file() and is_markdown(candidate.name):
                paths.append(relative.as_posix())
        return sorted(paths)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    # ------------------------------------------------------------------
    # Internal helpers

    def _resolve(self, path: str) -> Path:
        relative = normalise_path(path)
        resolved = (self.root / relative).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise ValidationError(f"Path escapes the corpus root: {path}")
        return resolved


def normalise_path(path: str) -> str:
    """Corpus-relative POSIX form of ``path``; absolute paths are rejected."""
    cleaned = path.replace("\\", "/").strip()
    if cleaned.startswith("/"):
        raise ValidationError(f"Document paths must be corpus-relative: {path}")
    parts = [part for part in PurePosixPath(cleaned).parts if part not in ("", ".")]
    if not parts:
        raise ValidationError("Document path must not be empty")
    if ".." in parts:
        raise ValidationError(f"Path escapes the corpus root: {path}")
    return "/".join(parts)


def document_title(metadata: DocumentMetadata, body: str, path: str) -> str:
    """Metadata title, else the first H1 outside fences, else the filename stem."""
    if metadata.title:
        return metadata.title
    heading = first_heading(body)
    return heading or stem(path)


def first_heading(body: str) -> Optional[str]:
    for line in scan_text(body):
        if line.heading_level == 1:
            return strip_wiki_links(line.heading_text or "").strip() or None
    return None


def build_document(path: str, metadata: DocumentMetadata, body: str) -> Document:
    return Document(
        path=path,
        title=document_title(metadata, body, path),
        kind=metadata.document_kind(),
        children_count=metadata.children_count,
        body=body,
        metadata=metadata,
    )


__all__ = [
    "DocumentStore",
    "FileSystemDocumentStore",
    "build_document",
    "document_title",
    "first_heading",
    "normalise_path",
]
