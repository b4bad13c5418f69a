"""Filename sanitization and hub/child naming conventions."""

from __future__ import annotations

from pathlib import PurePosixPath
import re

MARKDOWN_SUFFIX = ".md"
CHILD_SEPARATOR = " - "

_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|\[\]#^]')
_WHITESPACE = re.compile(r"\s+")
_HYPHEN_RUNS = re.compile(r"-{2,}")


def sanitize_filename(title: str) -> str:
    """Make ``title`` safe as a filename stem while keeping case and spaces."""
    cleaned = _UNSAFE_CHARS.sub("-", title.strip())
    cleaned = _WHITESPACE.sub(" ", cleaned)
    cleaned = _HYPHEN_RUNS.sub("-", cleaned)
    return cleaned.strip("-").strip()


def child_title(hub_title: str, section_title: str) -> str:
    """Sanitized ``{hub} - {section}``: filename stem, metadata title and link target."""
    return sanitize_filename(f"{hub_title}{CHILD_SEPARATOR}{section_title}")


def hub_prefix(hub_title: str) -> str:
    return f"{sanitize_filename(hub_title)}{CHILD_SEPARATOR}"


def filename_for(title: str) -> str:
    return f"{sanitize_filename(title)}{MARKDOWN_SUFFIX}"


def join_path(directory: str, filename: str) -> str:
    """Join corpus-relative POSIX segments; an empty directory means the root."""
    directory = directory.strip("/")
    if not directory or directory == ".":
        return filename
    return f"{directory}/{filename}"


def parent_dir(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return "" if parent == "." else parent


def stem(path: str) -> str:
    name = PurePosixPath(path).name
    if name.lower().endswith(MARKDOWN_SUFFIX):
        return name[: -len(MARKDOWN_SUFFIX)]
    return name


def is_markdown(path: str) -> bool:
    return path.lower().endswith(MARKDOWN_SUFFIX)


__all__ = [
    "CHILD_SEPARATOR",
    "MARKDOWN_SUFFIX",
    "child_title",
    "filename_for",
    "hub_prefix",
    "is_markdown",
    "join_path",
    "parent_dir",
    "sanitize_filename",
    "stem",
]
