"""Pure transforms over a hub's generated Knowledge Map section.

Every function here takes a body (and metadata where relevant) and returns a
new value; callers own the single write that persists the result.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from ..markdown.frontmatter import DocumentMetadata
from ..markdown.scanner import ScannedLine, scan_text
from ..markdown.wikilinks import extract_wiki_links, strip_wiki_links

KNOWLEDGE_MAP_TITLE = "Knowledge Map"
KNOWLEDGE_MAP_HEADING = f"## {KNOWLEDGE_MAP_TITLE}"
SUMMARY_LIMIT = 120

_LIST_MARKER = re.compile(r"^(?:[-*+]|\d+[.)])\s+")
_SENTENCE = re.compile(r"^(.+?[.!?])(?:\s|$)")
_COMMENT = re.compile(r"^<!--.*-->$")


def knowledge_map_entry(target: str, summary: Optional[str] = None) -> str:
    if summary:
        return f"- [[{target}]] - {summary}"
    return f"- [[{target}]]"


def find_knowledge_map(body: str) -> Optional[Tuple[int, int]]:
    """Line span ``(heading, last)`` of the Knowledge Map section, if present."""
    scanned = scan_text(body)
    start: Optional[int] = None
    for line in scanned:
        if line.heading_level is None:
            continue
        if start is None:
            if line.heading_level == 2 and _is_map_heading(line):
                start = line.index
            continue
        if line.heading_level <= 2:
            return start, line.index - 1
    if start is None:
        return None
    return start, len(scanned) - 1


def knowledge_map_targets(body: str) -> List[str]:
    """Link targets listed in the Knowledge Map, in order, first occurrence wins."""
    span = find_knowledge_map(body)
    if span is None:
        return []
    scanned = scan_text(body)
    targets: List[str] = []
    seen: set[str] = set()
    for line in scanned[span[0] + 1 : span[1] + 1]:
        if line.in_code_block:
            continue
        for link in extract_wiki_links(line.text):
            key = link.target.lower()
            if key in seen:
                continue
            seen.add(key)
            targets.append(link.target)
    return targets


def has_entry(body: str, target: str) -> bool:
    """Whether the map links to the same document, ignoring folders, suffix and case."""
    wanted = target_key(target)
    return any(target_key(existing) == wanted for existing in knowledge_map_targets(body))


def append_entries(body: str, entries: Sequence[str]) -> str:
    """Append entry lines at the end of the map, creating the section if missing."""
    if not entries:
        return body
    lines = body.split("\n") if body else []
    span = find_knowledge_map(body)
    if span is None:
        while lines and not lines[-1].strip():
            lines.pop()
        if lines:
            lines.append("")
        lines.extend([KNOWLEDGE_MAP_HEADING, "", *entries])
        return "\n".join(lines)

    start, end = span
    insert_at = start + 1
    for index in range(end, start, -1):
        if lines[index].strip():
            insert_at = index + 1
            break
    else:
        # Empty map: keep one blank line under the heading.
        lines.insert(insert_at, "")
        insert_at += 1
        end += 1
    new_lines = lines[:insert_at] + list(entries) + lines[insert_at:]
    # Keep a blank line before whatever section follows the map.
    following = insert_at + len(entries)
    if following < len(new_lines) and new_lines[following].strip():
        new_lines.insert(following, "")
    return "\n".join(new_lines)


def remove_entry(body: str, target: str) -> str:
    """Drop Knowledge Map lines that link to ``target``."""
    span = find_knowledge_map(body)
    if span is None:
        return body
    wanted = target_key(target)
    lines = body.split("\n")
    kept: List[str] = []
    for index, line in enumerate(lines):
        if span[0] < index <= span[1]:
            targets = [target_key(link.target) for link in extract_wiki_links(line)]
            if wanted in targets:
                continue
        kept.append(line)
    return "\n".join(kept)


def target_key(target: str) -> str:
    """Case-folded filename stem a map target refers to."""
    name = target.strip().rsplit("/", 1)[-1]
    if name.lower().endswith(".md"):
        name = name[:-3]
    return name.lower()


def strip_knowledge_map(body: str) -> str:
    """Remove the generated Knowledge Map section (heading and entries)."""
    span = find_knowledge_map(body)
    if span is None:
        return body
    lines = body.split("\n")
    remaining = lines[: span[0]] + lines[span[1] + 1 :]
    while remaining and not remaining[-1].strip():
        remaining.pop()
    return "\n".join(remaining)


def add_child_entry(
    metadata: DocumentMetadata,
    body: str,
    target: str,
    summary: Optional[str] = None,
) -> Tuple[DocumentMetadata, str, bool]:
    """Return the hub with one more Knowledge Map entry and its count incremented.

    The third element is ``False`` (and the hub unchanged) when ``target`` is
    already listed.
    """
    if has_entry(body, target):
        return metadata, body, False
    new_body = append_entries(body, [knowledge_map_entry(target, summary)])
    count = (metadata.children_count or 0) + 1
    return metadata.updated(children_count=count), new_body, True


def remove_child_entry(
    metadata: DocumentMetadata, body: str, target: str
) -> Tuple[DocumentMetadata, str, bool]:
    if not has_entry(body, target):
        return metadata, body, False
    new_body = remove_entry(body, target)
    count = len(knowledge_map_targets(new_body))
    return metadata.updated(children_count=count), new_body, True


def summarize(text: str, limit: int = SUMMARY_LIMIT) -> Optional[str]:
    """First sentence of the prose in ``text``, links stripped, at most ``limit`` chars."""
    for line in scan_text(text):
        candidate = _prose(line)
        if not candidate:
            continue
        match = _SENTENCE.match(candidate)
        sentence = match.group(1) if match else candidate
        if len(sentence) > limit:
            sentence = sentence[: limit - 3].rstrip() + "..."
        return sentence
    return None


def _prose(line: ScannedLine) -> Optional[str]:
    if line.in_code_block or line.heading_level is not None or line.is_blank:
        return None
    text = line.text.strip()
    if _COMMENT.match(text) or text.startswith("|"):
        return None
    text = text.lstrip(">").strip()
    text = _LIST_MARKER.sub("", text)
    text = strip_wiki_links(text).strip()
    return text or None


def _is_map_heading(line: ScannedLine) -> bool:
    heading = strip_wiki_links(line.heading_text or "").strip().lower()
    return heading == KNOWLEDGE_MAP_TITLE.lower()


__all__ = [
    "KNOWLEDGE_MAP_HEADING",
    "KNOWLEDGE_MAP_TITLE",
    "SUMMARY_LIMIT",
    "add_child_entry",
    "append_entries",
    "find_knowledge_map",
    "has_entry",
    "knowledge_map_entry",
    "knowledge_map_targets",
    "remove_child_entry",
    "remove_entry",
    "strip_knowledge_map",
    "summarize",
    "target_key",
]
