"""Single-pass, fence-aware line scanner for markdown bodies."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, List, Optional

_FENCE_OPEN = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
_FENCE_CLOSE = re.compile(r"^ {0,3}(`{3,}|~{3,})\s*$")
_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*$")
_ANNOTATION = re.compile(r"^<!--\s*docforest:(keep|split)\s*-->$", re.IGNORECASE)


@dataclass(frozen=True)
class ScannedLine:
    """Structural facts about one body line."""

    index: int
    text: str
    in_code_block: bool = False
    is_fence: bool = False
    fence_language: Optional[str] = None
    heading_level: Optional[int] = None
    heading_text: Optional[str] = None
    annotation: Optional[str] = None

    @property
    def is_heading(self) -> bool:
        return self.heading_level is not None

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


def parse_annotation(text: str) -> Optional[str]:
    """Return ``keep`` or ``split`` when the line is an annotation marker."""
    match = _ANNOTATION.match(text.strip())
    return match.group(1).lower() if match else None


def parse_heading(text: str) -> Optional[tuple[int, str]]:
    """Return ``(level, text)`` for an ATX heading line, ignoring fence state."""
    match = _HEADING.match(text)
    if not match:
        return None
    return len(match.group(1)), match.group(2)


def scan_lines(lines: Iterable[str]) -> List[ScannedLine]:
    """Classify every line in one pass.

    Fence delimiters and fence content are ``in_code_block``. A fence closes
    only on a line holding at least as many of the same fence character and
    nothing else; an unterminated fence runs to the end of the input.
    Headings are recognised outside fences only. An annotation is attached to
    the first non-blank line after a heading when that line is a marker.
    """
    scanned: List[ScannedLine] = []
    inside_fence = False
    fence_char = ""
    fence_len = 0
    fence_language: Optional[str] = None
    pending_annotation = False

    for index, text in enumerate(lines):
        if inside_fence:
            close = _FENCE_CLOSE.match(text)
            if close and close.group(1)[0] == fence_char and len(close.group(1)) >= fence_len:
                inside_fence = False
                scanned.append(
                    ScannedLine(
                        index=index,
                        text=text,
                        in_code_block=True,
                        is_fence=True,
                        fence_language=fence_language,
                    )
                )
                fence_language = None
                continue
            scanned.append(
                ScannedLine(
                    index=index,
                    text=text,
                    in_code_block=True,
                    fence_language=fence_language,
                )
            )
            continue

        opening = _FENCE_OPEN.match(text)
        if opening:
            marker = opening.group(1)
            info = opening.group(2).strip()
            # Backtick fences cannot carry backticks in their info string.
            if not (marker[0] == "`" and "`" in info):
                inside_fence = True
                fence_char = marker[0]
                fence_len = len(marker)
                fence_language = info.split()[0] if info else ""
                pending_annotation = False
                scanned.append(
                    ScannedLine(
                        index=index,
                        text=text,
                        in_code_block=True,
                        is_fence=True,
                        fence_language=fence_language,
                    )
                )
                continue

        heading = parse_heading(text)
        if heading is not None:
            level, heading_text = heading
            pending_annotation = True
            scanned.append(
                ScannedLine(
                    index=index,
                    text=text,
                    heading_level=level,
                    heading_text=heading_text,
                )
            )
            continue

        annotation: Optional[str] = None
        if pending_annotation and text.strip():
            annotation = parse_annotation(text)
            pending_annotation = False
        scanned.append(ScannedLine(index=index, text=text, annotation=annotation))

    return scanned


def scan_text(text: str) -> List[ScannedLine]:
    """Scan a body string split on newlines."""
    if not text:
        return []
    return scan_lines(text.split("\n"))


__all__ = ["ScannedLine", "parse_annotation", "parse_heading", "scan_lines", "scan_text"]
