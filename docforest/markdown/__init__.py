"""Markdown primitives: line scanning, frontmatter, wiki-links and naming."""

from .frontmatter import (
    DocumentMetadata,
    base_kind,
    document_kind,
    hub_kind,
    is_hub_kind,
    parse_document,
    render_document,
    split_frontmatter,
)
from .naming import child_title, filename_for, hub_prefix, sanitize_filename
from .scanner import ScannedLine, scan_lines, scan_text
from .wikilinks import (
    extract_wiki_links,
    repair_broken_links,
    strip_wiki_links,
    update_links_in_content,
)

__all__ = [
    "DocumentMetadata",
    "ScannedLine",
    "base_kind",
    "child_title",
    "document_kind",
    "extract_wiki_links",
    "filename_for",
    "hub_kind",
    "hub_prefix",
    "is_hub_kind",
    "parse_document",
    "render_document",
    "repair_broken_links",
    "sanitize_filename",
    "scan_lines",
    "scan_text",
    "split_frontmatter",
    "strip_wiki_links",
    "update_links_in_content",
]
