"""Tests for the consistency inspector."""

from __future__ import annotations

import pytest

from docforest.consistency.inspector import ConsistencyInspector
from docforest.errors import ValidationError
from docforest.models import (
    BROKEN_WIKI_LINKS,
    CODE_BLOCK_LINKS,
    CORRUPTED_HEADINGS,
    ISSUE_CATEGORIES,
    NAMING_INCONSISTENCIES,
    ORPHANED_FRAGMENTS,
    UNPREFIXED_CHILDREN,
)
from tests._fixtures.corpus_builder import CorpusBuilder


def _inspect(corpus: CorpusBuilder, **kwargs):
    return ConsistencyInspector(corpus.context()).inspect(**kwargs)


def test_inspect_reports_every_category_in_fixed_order(drifted: CorpusBuilder) -> None:
    result = _inspect(drifted)

    assert result.documents_scanned == 4
    assert not result.truncated
    assert [(issue.category, issue.path) for issue in result.issues] == [
        (UNPREFIXED_CHILDREN, "tech/Networking.md"),
        (CORRUPTED_HEADINGS, "tech/Docker - Setup.md"),
        (NAMING_INCONSISTENCIES, "notes/networking.md"),
        (NAMING_INCONSISTENCIES, "tech/Networking.md"),
        (BROKEN_WIKI_LINKS, "tech/Docker - Setup.md"),
        (CODE_BLOCK_LINKS, "tech/Docker - Setup.md"),
        (ORPHANED_FRAGMENTS, "tech/Networking.md"),
    ]
    assert result.summary == {
        UNPREFIXED_CHILDREN: 1,
        CORRUPTED_HEADINGS: 1,
        NAMING_INCONSISTENCIES: 2,
        BROKEN_WIKI_LINKS: 1,
        CODE_BLOCK_LINKS: 1,
        ORPHANED_FRAGMENTS: 1,
    }


def test_unprefixed_child_details(drifted: CorpusBuilder) -> None:
    (issue,) = _inspect(drifted, categories=[UNPREFIXED_CHILDREN]).issues

    assert issue.fixable
    assert issue.details == {
        "hub_path": "tech/Docker.md",
        "hub_title": "Docker",
        "current_filename": "Networking.md",
        "suggested_filename": "Docker - Networking.md",
    }


def test_corrupted_heading_suggestion(drifted: CorpusBuilder) -> None:
    (issue,) = _inspect(drifted, categories=[CORRUPTED_HEADINGS]).issues

    assert issue.suggestion == "# Docker Setup"
    assert issue.details["line_number"] == 1
    assert issue.details["current_heading"] == "# [[Docker]] Setup"


def test_broken_link_suggestion(drifted: CorpusBuilder) -> None:
    (issue,) = _inspect(drifted, categories=[BROKEN_WIKI_LINKS]).issues

    assert issue.suggestion == "See [[Kubernetes]] uses a declarative model."
    assert issue.details["line_number"] == 3
    assert issue.details["broken_link"] == "[[Kubernetes]]es]]"
    assert issue.details["fixed_link"] == "[[Kubernetes]]"
    assert issue.details["trailing_text"] == "es"


def test_code_block_link_suggestion(drifted: CorpusBuilder) -> None:
    (issue,) = _inspect(drifted, categories=[CODE_BLOCK_LINKS]).issues

    assert issue.suggestion == "docker run image"
    assert issue.details["raw_link"] == "[[Image|image]]"
    assert issue.details["display_text"] == "image"
    assert issue.details["line_number"] == 6


def test_naming_and_orphans_are_report_only(drifted: CorpusBuilder) -> None:
    result = _inspect(drifted, categories=[NAMING_INCONSISTENCIES, ORPHANED_FRAGMENTS])

    assert all(not issue.fixable for issue in result.issues)
    orphan = result.issues[-1]
    assert orphan.details["hub_path"] is None
    assert orphan.details["candidate_hubs"] == ["tech/Docker.md"]


def test_inspection_is_idempotent(drifted: CorpusBuilder) -> None:
    inspector = ConsistencyInspector(drifted.context())

    assert inspector.inspect() == inspector.inspect()


def test_limit_truncates_and_summary_counts_returned_issues(drifted: CorpusBuilder) -> None:
    result = _inspect(drifted, limit=3)

    assert result.truncated
    assert len(result.issues) == 3
    assert result.summary[NAMING_INCONSISTENCIES] == 1
    assert result.summary[ORPHANED_FRAGMENTS] == 0
    assert list(result.summary) == list(ISSUE_CATEGORIES)


def test_configured_limit_applies_by_default(drifted: CorpusBuilder) -> None:
    drifted.write({".docforest.yml": "inspect:\n  limit: 2\n"})

    result = _inspect(drifted)

    assert result.truncated
    assert len(result.issues) == 2


@pytest.mark.parametrize(
    "kwargs",
    [{"categories": ["not_a_category"]}, {"limit": 0}],
)
def test_invalid_arguments_raise(drifted: CorpusBuilder, kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        _inspect(drifted, **kwargs)


def test_clean_corpus_has_no_issues(corpus: CorpusBuilder) -> None:
    corpus.write(
        {
            "Docker.md": "---\nkind: hub\ntitle: Docker\n---\n# Docker\n\n## Knowledge Map\n\n- [[Docker - Setup]]\n",
            "Docker - Setup.md": "# Docker - Setup\n\nSee [[Kubernetes]].\n",
        }
    )

    result = _inspect(corpus)

    assert result.issues == []
    assert set(result.summary.values()) == {0}


MULTI_HUB = {
    "API.md": "---\nkind: hub\ntitle: API\n---\n# API\n\n## Knowledge Map\n\n- [[API - Auth]]\n",
    "API - Gateway.md": "---\nkind: hub\ntitle: API - Gateway\n---\n# API - Gateway\n\n## Knowledge Map\n",
    "API - Auth.md": "# API - Auth\n\nTokens.\n",
    "API - Gateway - Routing.md": "# API - Gateway - Routing\n\nRoutes.\n",
}


def test_orphan_in_multi_hub_directory_is_flagged_once(corpus: CorpusBuilder) -> None:
    corpus.write(MULTI_HUB)

    result = _inspect(corpus)

    assert [(issue.category, issue.path) for issue in result.issues] == [
        (ORPHANED_FRAGMENTS, "API - Gateway - Routing.md"),
    ]
    assert result.issues[0].details["hub_path"] == "API - Gateway.md"
    assert result.issues[0].details["hub_title"] == "API - Gateway"


def test_unprefixed_child_in_multi_hub_directory_uses_title(corpus: CorpusBuilder) -> None:
    corpus.write(
        {
            **MULTI_HUB,
            "Routing.md": "---\ntitle: API - Gateway - Retries\n---\n# Retries\n",
        }
    )

    (issue,) = _inspect(corpus, categories=[UNPREFIXED_CHILDREN]).issues

    assert issue.path == "Routing.md"
    assert issue.details["hub_path"] == "API - Gateway.md"
    assert issue.details["suggested_filename"] == "API - Gateway - Retries.md"


def test_inspect_skips_documents_that_became_unreadable(corpus: CorpusBuilder) -> None:
    corpus.write({"ok.md": "# Ok\n", "later.md": "# Later\n"})
    context = corpus.context()
    corpus.write({"later.md": "---\nchildren_count: -3\n---\n# Later\n"})

    result = ConsistencyInspector(context).inspect()

    assert result.documents_scanned == 1
    assert result.issues == []
