"""Tests for the filesystem document store."""

from __future__ import annotations

import pytest

from docforest.errors import NotFoundError, ValidationError
from docforest.markdown.frontmatter import DocumentMetadata
from docforest.stores.documents import FileSystemDocumentStore, normalise_path
from tests._fixtures.corpus_builder import CorpusBuilder


def test_read_document_builds_title_and_kind(corpus: CorpusBuilder) -> None:
    corpus.write(
        {
            "tech/Docker.md": "---\nkind: research_hub\nchildren_count: 2\n---\n# [[Docker]] Hub\n",
            "tech/plain.md": "No heading here.\n",
        }
    )
    store = FileSystemDocumentStore(corpus.path())

    hub = store.read_document("tech/Docker.md")
    plain = store.read_document("tech/plain.md")

    assert hub.kind == "hub"
    assert hub.title == "Docker Hub"
    assert hub.children_count == 2
    assert plain.kind == "standalone"
    assert plain.title == "plain"


def test_write_then_read(corpus: CorpusBuilder) -> None:
    store = FileSystemDocumentStore(corpus.path())

    store.write_document("a/b/Note.md", DocumentMetadata(title="Note"), "# Note\n\nText.")

    assert store.exists("a/b/Note.md")
    document = store.read_document("a/b/Note.md")
    assert document.metadata.title == "Note"
    assert document.body == "# Note\n\nText.\n"


def test_list_documents_skips_hidden_and_non_markdown(corpus: CorpusBuilder) -> None:
    corpus.write(
        {
            "b.md": "b",
            "a/c.md": "c",
            "a/deep/d.md": "d",
            ".docforest/cache.md": "hidden",
            "a/image.png": "binary",
        }
    )
    store = FileSystemDocumentStore(corpus.path())

    assert store.list_documents() == ["a/c.md", "a/deep/d.md", "b.md"]
    assert store.list_documents("a") == ["a/c.md", "a/deep/d.md"]
    assert store.list_documents("missing") == []


def test_missing_documents_raise_not_found(corpus: CorpusBuilder) -> None:
    store = FileSystemDocumentStore(corpus.path())

    with pytest.raises(NotFoundError):
        store.read_document("nope.md")
    with pytest.raises(NotFoundError):
        store.delete_document("nope.md")


@pytest.mark.parametrize("path", ["../outside.md", "/abs/path.md", "", "./"])
def test_paths_must_stay_inside_the_corpus(corpus: CorpusBuilder, path: str) -> None:
    store = FileSystemDocumentStore(corpus.path())

    with pytest.raises(ValidationError):
        store.read_document(path)


def test_normalise_path() -> None:
    assert normalise_path("a\\b//c.md") == "a/b/c.md"
    assert normalise_path("./notes/x.md") == "notes/x.md"
