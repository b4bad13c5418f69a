"""End-to-end tests for the document engine facade."""

from __future__ import annotations

from typing import Callable

import pytest

from docforest.atomic.knowledge_map import knowledge_map_targets
from docforest.engine import DocumentEngine
from docforest.errors import ValidationError
from docforest.markdown.frontmatter import DocumentMetadata, parse_document
from docforest.models import CORRUPTED_HEADINGS, ORPHANED_FRAGMENTS
from tests._fixtures.corpus_builder import CorpusBuilder


def _long_document(title: str = "Docker", sections: int = 7) -> str:
    lines = [f"# {title}", "", "Intro paragraph."]
    for index in range(sections):
        lines.extend(["", f"## Part {index}", f"Body of part {index}."])
    return "\n".join(lines)


def _engine(corpus: CorpusBuilder, clock: Callable[[], str], **kwargs) -> DocumentEngine:
    return DocumentEngine(corpus.context(**kwargs), clock=clock)


def test_store_small_document_writes_it_unchanged(
    corpus: CorpusBuilder, clock: Callable[[], str]
) -> None:
    engine = _engine(corpus, clock)

    outcome = engine.store_document("notes/Note", "# Note\n\nShort and sweet.")

    assert outcome.path == "notes/Note.md"
    assert not outcome.was_split
    assert outcome.written == ["notes/Note.md"]
    metadata, body = parse_document(corpus.read("notes/Note.md"))
    assert metadata.title == "Note"
    assert metadata.created == "2024-05-01T12:00:00Z"
    assert body == "# Note\n\nShort and sweet.\n"
    assert corpus.exists(".docforest/index.json")


def test_store_oversized_document_splits_into_hub_and_children(
    corpus: CorpusBuilder, clock: Callable[[], str]
) -> None:
    engine = _engine(corpus, clock)

    outcome = engine.store_document("tech/Docker.md", _long_document())

    assert outcome.was_split
    assert outcome.path == "tech/Docker.md"
    assert outcome.reconciled == 0
    assert len(outcome.written) == 8
    metadata, body = parse_document(corpus.read("tech/Docker.md"))
    assert metadata.kind == "hub"
    assert metadata.children_count == 7
    assert "Intro paragraph." in body
    assert knowledge_map_targets(body) == [f"Docker - Part {index}" for index in range(7)]
    child_metadata, child_body = parse_document(corpus.read("tech/Docker - Part 3.md"))
    assert child_metadata.kind == "child"
    assert child_body == "# Docker - Part 3\n\n## Part 3\nBody of part 3.\n"
    assert engine.inspect().issues == []


def test_store_split_relocates_draft_to_hub_path(
    corpus: CorpusBuilder, clock: Callable[[], str]
) -> None:
    corpus.write({"tech/draft.md": "# Draft\n"})
    engine = _engine(corpus, clock)

    outcome = engine.store_document("tech/draft.md", _long_document(), title="Docker")

    assert outcome.path == "tech/Docker.md"
    assert corpus.exists("tech/Docker.md")
    assert not corpus.exists("tech/draft.md")


def test_store_hub_reconciles_siblings(corpus: CorpusBuilder, clock: Callable[[], str]) -> None:
    corpus.write({"tech/Docker - Usage.md": "# Docker - Usage\n\nRun it daily.\n"})
    engine = _engine(corpus, clock)

    outcome = engine.store_document(
        "tech/Docker.md", "# Docker\n\n## Knowledge Map\n", metadata=DocumentMetadata(kind="hub")
    )

    assert not outcome.was_split
    assert outcome.reconciled == 1
    metadata, body = parse_document(corpus.read("tech/Docker.md"))
    assert metadata.children_count == 1
    assert knowledge_map_targets(body) == ["Docker - Usage"]


def test_store_keeps_kind_of_existing_hub(corpus: CorpusBuilder, clock: Callable[[], str]) -> None:
    corpus.write({"Docker.md": "---\nkind: research_hub\ntitle: Docker\n---\n# Docker\n"})
    engine = _engine(corpus, clock)

    engine.store_document("Docker.md", "# Docker\n\nEdited.", metadata=DocumentMetadata())

    metadata, _ = parse_document(corpus.read("Docker.md"))
    assert metadata.kind == "research_hub"


def test_dry_run_split_writes_nothing(corpus: CorpusBuilder, clock: Callable[[], str]) -> None:
    engine = _engine(corpus, clock, dry_run=True)

    outcome = engine.store_document("tech/Docker.md", _long_document())

    assert outcome.dry_run
    assert outcome.was_split
    assert outcome.written == []
    assert len(outcome.split.children) == 7
    assert corpus.path().joinpath("tech").exists() is False


def test_split_document_in_place(corpus: CorpusBuilder, clock: Callable[[], str]) -> None:
    corpus.write({"Big.md": _long_document(title="Big")})
    engine = _engine(corpus, clock)

    outcome = engine.split_document("Big.md")

    assert outcome.was_split
    assert outcome.path == "Big.md"
    metadata, _ = parse_document(corpus.read("Big.md"))
    assert metadata.kind == "hub"
    assert metadata.title == "Big"
    assert corpus.exists("Big - Part 0.md")


def test_split_document_respects_limits_unless_forced(
    corpus: CorpusBuilder, clock: Callable[[], str]
) -> None:
    corpus.write({"Small.md": _long_document(title="Small", sections=2)})
    engine = _engine(corpus, clock)

    skipped = engine.split_document("Small.md")
    forced = engine.split_document("Small.md", force=True)

    assert not skipped.was_split
    assert not skipped.decision.should_split
    assert forced.was_split
    assert [child.title for child in forced.split.children] == ["Small - Part 0", "Small - Part 1"]


def test_split_document_refuses_hubs(corpus: CorpusBuilder, clock: Callable[[], str]) -> None:
    corpus.write({"Hub.md": "---\nkind: hub\n---\n# Hub\n"})

    with pytest.raises(ValidationError):
        _engine(corpus, clock).split_document("Hub.md")


def test_repair_then_reconcile_heals_the_corpus(
    drifted: CorpusBuilder, clock: Callable[[], str]
) -> None:
    engine = _engine(drifted, clock)

    result = engine.repair()

    assert result.fixed == 4
    assert [issue.category for issue in engine.inspect().issues] == [ORPHANED_FRAGMENTS]
    assert engine.reconcile("tech/Docker") == 1
    assert engine.inspect().issues == []


def test_repair_filters_supplied_issues_by_category(
    drifted: CorpusBuilder, clock: Callable[[], str]
) -> None:
    engine = _engine(drifted, clock)
    issues = engine.inspect().issues

    result = engine.repair(issues, categories=[CORRUPTED_HEADINGS])

    assert result.processed == 1
    assert result.fixed == 1
    assert drifted.exists("tech/Networking.md")


def test_bracketed_section_titles_stay_linkable(
    corpus: CorpusBuilder, clock: Callable[[], str]
) -> None:
    corpus.write(
        {
            "Arrays.md": "# Arrays\n\nIntro.\n\n## Indexing [1]\nZero-based.\n\n## Slicing\nHalf-open ranges.\n",
        }
    )
    engine = _engine(corpus, clock)

    outcome = engine.split_document("Arrays", force=True)

    assert outcome.written == ["Arrays - Indexing -1.md", "Arrays - Slicing.md", "Arrays.md"]
    _, body = parse_document(corpus.read("Arrays.md"))
    assert knowledge_map_targets(body) == ["Arrays - Indexing -1", "Arrays - Slicing"]
    assert engine.reconcile("Arrays") == 0
    assert engine.reconcile("Arrays") == 0
    assert engine.inspect(categories=[ORPHANED_FRAGMENTS]).issues == []


def test_long_document_without_sections_is_stored_unchanged(
    corpus: CorpusBuilder, clock: Callable[[], str]
) -> None:
    body = "# Log\n\n" + "\n".join(f"Entry {index}." for index in range(250))
    engine = _engine(corpus, clock)

    outcome = engine.store_document("Log.md", body)

    assert outcome.decision.should_split
    assert not outcome.was_split
    assert outcome.written == ["Log.md"]
    metadata, stored = parse_document(corpus.read("Log.md"))
    assert metadata.kind is None
    assert metadata.children_count is None
    assert stored == body + "\n"

    again = engine.split_document("Log.md")

    assert not again.was_split
    assert again.written == []
    assert parse_document(corpus.read("Log.md"))[1] == stored


def test_malformed_document_does_not_block_the_corpus(
    corpus: CorpusBuilder, clock: Callable[[], str]
) -> None:
    corpus.write(
        {
            "ok.md": "# Ok\n\nFine.\n",
            "bad.md": "---\nchildren_count: -3\n---\n# Bad\n",
            "broken.md": "---\ntitle: [unclosed\n---\n# Broken\n",
        }
    )
    engine = _engine(corpus, clock)

    assert [entry.path for entry in engine.context.index.entries()] == ["ok.md"]
    assert engine.inspect().documents_scanned == 1
    assert not engine.store_document("Other.md", "# Other\n").was_split
