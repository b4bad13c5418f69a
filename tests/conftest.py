from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.corpus_builder import CorpusBuilder

FIXED_NOW = "2024-05-01T12:00:00Z"

DRIFTED_CORPUS = {
    "notes/networking.md": "# Networking Notes\n\nScratch.\n",
    "tech/Docker.md": """
        ---
        kind: hub
        title: Docker
        children_count: 1
        ---

        # Docker

        ## Knowledge Map

        - [[Docker - Setup]]
        """,
    "tech/Docker - Setup.md": """
        # [[Docker]] Setup

        See [[Kubernetes]]es]] uses a declarative model.

        ```bash
        docker run [[Image|image]]
        ```
        """,
    "tech/Networking.md": "# Networking\n\nBridges connect containers.\n",
}


@pytest.fixture
def corpus(tmp_path: Path) -> CorpusBuilder:
    """Provide a reusable corpus builder rooted at the pytest tmp_path."""
    return CorpusBuilder(tmp_path)


@pytest.fixture
def drifted(corpus: CorpusBuilder) -> CorpusBuilder:
    """A corpus with one issue of every category."""
    corpus.write(DRIFTED_CORPUS)
    return corpus


@pytest.fixture
def clock():
    """Deterministic timestamp source for components that stamp metadata."""
    return lambda: FIXED_NOW
