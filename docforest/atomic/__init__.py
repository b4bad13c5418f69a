"""Atomic-document enforcement: analysis, split decisions, splitting and hubs."""

from .analyzer import ContentAnalyzer, analyze_content, is_code_heavy, is_template_content
from .attribution import HubCandidate, attribute, matching_hubs
from .decision import analyze_for_split, decide, effective_max_lines, needs_split
from .hub_manager import ChildrenCountReport, HubChild, HubInfo, HubManager
from .knowledge_map import add_child_entry, remove_child_entry, strip_knowledge_map, summarize
from .splitter import ContentSplitter, SplitOptions, section_text_from_child, validate_split_result
from .templates import ScaffoldRenderer

__all__ = [
    "ChildrenCountReport",
    "ContentAnalyzer",
    "ContentSplitter",
    "HubCandidate",
    "HubChild",
    "HubInfo",
    "HubManager",
    "ScaffoldRenderer",
    "SplitOptions",
    "add_child_entry",
    "analyze_content",
    "analyze_for_split",
    "attribute",
    "decide",
    "effective_max_lines",
    "is_code_heavy",
    "is_template_content",
    "matching_hubs",
    "needs_split",
    "remove_child_entry",
    "section_text_from_child",
    "strip_knowledge_map",
    "summarize",
    "validate_split_result",
]
