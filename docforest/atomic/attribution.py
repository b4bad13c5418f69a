"""Attribute sibling documents to hubs by naming prefix."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..markdown.naming import hub_prefix

POLICY_LONGEST = "longest"
POLICY_UNATTRIBUTED = "unattributed"


@dataclass(frozen=True)
class HubCandidate:
    """A hub that siblings may be attributed to."""

    path: str
    title: str

    @property
    def prefix(self) -> str:
        return hub_prefix(self.title)


def matching_hubs(names: Iterable[str], hubs: Sequence[HubCandidate]) -> List[HubCandidate]:
    """Hubs whose ``"{title} - "`` prefix starts any of ``names`` (case-insensitive)."""
    lowered = [name.lower() for name in names if name]
    matches: List[HubCandidate] = []
    for hub in hubs:
        prefix = hub.prefix.lower()
        if any(name.startswith(prefix) and len(name) > len(prefix) for name in lowered):
            matches.append(hub)
    return matches


def attribute(
    names: Iterable[str],
    hubs: Sequence[HubCandidate],
    policy: str = POLICY_LONGEST,
) -> Optional[HubCandidate]:
    """Pick the hub a document belongs to, or ``None`` when unattributed.

    ``longest`` picks the strictly longest matching prefix; a tie between
    equally long prefixes is left unattributed. ``unattributed`` refuses
    every case with more than one candidate.
    """
    candidates = matching_hubs(names, hubs)
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]
    if policy == POLICY_UNATTRIBUTED:
        return None
    ranked = sorted(candidates, key=lambda hub: len(hub.prefix), reverse=True)
    if len(ranked[0].prefix) == len(ranked[1].prefix):
        return None
    return ranked[0]


__all__ = [
    "HubCandidate",
    "POLICY_LONGEST",
    "POLICY_UNATTRIBUTED",
    "attribute",
    "matching_hubs",
]
