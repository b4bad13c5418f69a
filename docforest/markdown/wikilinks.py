"""Wiki-link parsing, rewriting and malformed-link repair."""

from __future__ import annotations

import re
from typing import List, Mapping, Optional

from ..models import WikiLink

WIKILINK_PATTERN = re.compile(r"\[\[([^\[\]|]+)(?:\|([^\[\]]*))?\]\]")
# A closed link followed by stray text and a second ``]]`` with no ``[``/``]`` between.
BROKEN_LINK_PATTERN = re.compile(r"\[\[([^\[\]|]+)(\|[^\[\]]*)?\]\]([^\[\]]*?)\]\]")


def extract_wiki_links(text: str) -> List[WikiLink]:
    """Return every ``[[target]]`` / ``[[target|display]]`` occurrence in order."""
    links: List[WikiLink] = []
    for match in WIKILINK_PATTERN.finditer(text):
        target = match.group(1).strip()
        if not target:
            continue
        display = match.group(2)
        display = display.strip() if display is not None and display.strip() else None
        links.append(WikiLink(target=target, display=display, raw=match.group(0)))
    return links


def has_wiki_link(text: str) -> bool:
    return WIKILINK_PATTERN.search(text) is not None


def create_wiki_link(target: str, display: Optional[str] = None) -> str:
    if display and display != target:
        return f"[[{target}|{display}]]"
    return f"[[{target}]]"


def strip_wiki_links(text: str) -> str:
    """Replace each link with its display text (or target when it has none)."""

    def _display(match: re.Match[str]) -> str:
        display = match.group(2)
        if display is not None and display.strip():
            return display.strip()
        return match.group(1).strip()

    return WIKILINK_PATTERN.sub(_display, text)


def repair_broken_links(text: str) -> str:
    """Rewrite ``[[X]]tail]]`` into ``[[X]]``, keeping any display text."""

    def _repair(match: re.Match[str]) -> str:
        return f"[[{match.group(1)}{match.group(2) or ''}]]"

    return BROKEN_LINK_PATTERN.sub(_repair, text)


def update_links_in_content(text: str, renames: Mapping[str, str]) -> str:
    """Point links at renamed targets; matching is case-insensitive, display kept."""
    lookup = {old.strip().lower(): new for old, new in renames.items() if old.strip()}
    if not lookup:
        return text

    def _rename(match: re.Match[str]) -> str:
        new_target = lookup.get(match.group(1).strip().lower())
        if new_target is None:
            return match.group(0)
        display = match.group(2)
        if display is None:
            return f"[[{new_target}]]"
        return f"[[{new_target}|{display}]]"

    return WIKILINK_PATTERN.sub(_rename, text)


__all__ = [
    "BROKEN_LINK_PATTERN",
    "WIKILINK_PATTERN",
    "create_wiki_link",
    "extract_wiki_links",
    "has_wiki_link",
    "repair_broken_links",
    "strip_wiki_links",
    "update_links_in_content",
]
