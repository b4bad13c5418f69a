"""Applies mechanical repairs for fixable drift issues."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

from ..errors import ConflictError, DocForestError, ValidationError
from ..logging import get_logger
from ..markdown.naming import join_path, parent_dir, stem
from ..markdown.scanner import ScannedLine, scan_text
from ..markdown.wikilinks import has_wiki_link, strip_wiki_links, update_links_in_content
from ..models import (
    BROKEN_WIKI_LINKS,
    CODE_BLOCK_LINKS,
    CORRUPTED_HEADINGS,
    FIXABLE_CATEGORIES,
    UNPREFIXED_CHILDREN,
    Document,
    Issue,
    RepairResult,
)

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docforest.context import EngineContext

REPORT_ONLY_REASON = "Report-only issue; requires manual review"
NOT_APPLICABLE_REASON = "Already resolved; nothing to change"


class _NothingToFix(Exception):
    """Signals that an issue no longer matches the document."""


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class ConsistencyExecutor:
    """Applies each issue independently; one failure never aborts the batch.

    There is no batch transaction: callers that need all-or-nothing semantics
    check ``RepairResult.errors`` (or call ``raise_for_errors``) and roll back
    through their own version history.
    """

    def __init__(self, context: "EngineContext", *, clock: Callable[[], str] | None = None) -> None:
        self.context = context
        self._clock = clock or _utc_now
        self.logger = get_logger("consistency.executor")
        self._handlers: Dict[str, Callable[[Issue, Optional[str]], Dict[str, object]]] = {
            UNPREFIXED_CHILDREN: self._rename_child,
            CORRUPTED_HEADINGS: self._fix_heading,
            BROKEN_WIKI_LINKS: self._fix_broken_link,
            CODE_BLOCK_LINKS: self._fix_code_block_link,
        }

    def apply(self, issues: Sequence[Issue]) -> RepairResult:
        operation_id = self.context.start_operation("repair")
        result = RepairResult(operation_id=operation_id, dry_run=self.context.dry_run)
        for issue in issues:
            result.processed += 1
            if not issue.fixable or issue.category not in FIXABLE_CATEGORIES:
                self._skip(result, issue, REPORT_ONLY_REASON)
                continue
            try:
                fix = self._handlers[issue.category](issue, operation_id)
            except _NothingToFix:
                self._skip(result, issue, NOT_APPLICABLE_REASON)
                continue
            except (DocForestError, OSError) as exc:
                self.logger.error("Failed to repair %s (%s): %s", issue.path, issue.category, exc)
                result.errors.append(
                    {"path": issue.path, "category": issue.category, "error": str(exc)}
                )
                continue
            result.fixed += 1
            result.fixes.append(fix)
        self.logger.info(
            "Repair finished: %d fixed, %d skipped, %d error(s)%s",
            result.fixed,
            result.skipped,
            len(result.errors),
            " [dry-run]" if result.dry_run else "",
        )
        return result

    # ------------------------------------------------------------------
    # Fixes

    def _rename_child(self, issue: Issue, operation_id: Optional[str]) -> Dict[str, object]:
        suggested = issue.details.get("suggested_filename")
        if not isinstance(suggested, str) or not suggested.strip():
            raise ValidationError(f"Issue for {issue.path} has no suggested filename")
        if "/" in suggested or "\\" in suggested:
            raise ValidationError(f"Suggested filename must not contain separators: {suggested}")
        old_path = issue.path
        new_path = join_path(parent_dir(old_path), suggested)
        if new_path == old_path:
            raise _NothingToFix()
        store = self.context.store
        if store.exists(new_path):
            raise ConflictError(new_path)

        document = store.read_document(old_path)
        now = self._clock()
        old_name = stem(old_path)
        new_name = stem(new_path)
        metadata = document.metadata.updated(title=new_name, modified=now)
        self.context.write_document(operation_id, new_path, metadata, document.body)
        self.context.delete_document(operation_id, old_path)

        hub_path = issue.details.get("hub_path")
        hub_updated = False
        if isinstance(hub_path, str) and hub_path:
            hub_updated = self._update_hub_reference(
                hub_path, {old_name: new_name}, operation_id, now
            )
        self.logger.info("Renamed %s -> %s", old_path, new_path)
        return {
            "path": old_path,
            "category": issue.category,
            "action": f"Renamed to {new_path}",
            "new_path": new_path,
            "hub_updated": hub_updated,
        }

    def _fix_heading(self, issue: Issue, operation_id: Optional[str]) -> Dict[str, object]:
        document = self.context.store.read_document(issue.path)
        lines = document.body.split("\n")
        for line in scan_text(document.body):
            if line.heading_level != 1:
                continue
            if not has_wiki_link(line.text):
                raise _NothingToFix()
            clean = f"{'#' * line.heading_level} {strip_wiki_links(line.heading_text or '').strip()}"
            lines[line.index] = clean
            self._write_body(operation_id, document, "\n".join(lines))
            return {
                "path": issue.path,
                "category": issue.category,
                "action": f'Rewrote title heading to "{clean}"',
            }
        raise _NothingToFix()

    def _fix_broken_link(self, issue: Issue, operation_id: Optional[str]) -> Dict[str, object]:
        broken = issue.details.get("broken_link")
        fixed = issue.details.get("fixed_link")
        if not isinstance(broken, str) or not isinstance(fixed, str):
            raise ValidationError(f"Issue for {issue.path} lacks broken link details")
        return self._replace_on_line(
            issue,
            operation_id,
            needle=broken,
            replacement=fixed,
            in_code=False,
            action=f'Replaced "{broken}" with "{fixed}"',
        )

    def _fix_code_block_link(self, issue: Issue, operation_id: Optional[str]) -> Dict[str, object]:
        raw = issue.details.get("raw_link")
        display = issue.details.get("display_text")
        if not isinstance(raw, str) or not isinstance(display, str):
            raise ValidationError(f"Issue for {issue.path} lacks code-block link details")
        return self._replace_on_line(
            issue,
            operation_id,
            needle=raw,
            replacement=display,
            in_code=True,
            action=f'Replaced "{raw}" with plain text "{display}"',
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _replace_on_line(
        self,
        issue: Issue,
        operation_id: Optional[str],
        *,
        needle: str,
        replacement: str,
        in_code: bool,
        action: str,
    ) -> Dict[str, object]:
        document = self.context.store.read_document(issue.path)
        scanned = scan_text(document.body)
        target = _locate(scanned, needle, in_code, issue.details.get("line_number"))
        if target is None:
            raise _NothingToFix()
        lines = document.body.split("\n")
        lines[target.index] = target.text.replace(needle, replacement, 1)
        self._write_body(operation_id, document, "\n".join(lines))
        return {
            "path": issue.path,
            "category": issue.category,
            "action": action,
            "line_number": target.index + 1,
        }

    def _write_body(self, operation_id: Optional[str], document: Document, body: str) -> None:
        metadata = document.metadata.updated(modified=self._clock())
        self.context.write_document(operation_id, document.path, metadata, body)

    def _update_hub_reference(
        self,
        hub_path: str,
        renames: Dict[str, str],
        operation_id: Optional[str],
        now: str,
    ) -> bool:
        hub = self.context.store.read_document(hub_path)
        body = update_links_in_content(hub.body, renames)
        if body == hub.body:
            return False
        self.context.write_document(
            operation_id, hub_path, hub.metadata.updated(modified=now), body
        )
        return True

    def _skip(self, result: RepairResult, issue: Issue, reason: str) -> None:
        result.skipped += 1
        result.skipped_items.append(
            {"path": issue.path, "category": issue.category, "reason": reason}
        )
        self.logger.warning("Skipped %s (%s): %s", issue.path, issue.category, reason)


def _locate(
    scanned: List[ScannedLine],
    needle: str,
    in_code: bool,
    line_number: object,
) -> Optional[ScannedLine]:
    """The hinted line when it still holds ``needle``, else the first line that does."""

    def _matches(line: ScannedLine) -> bool:
        if in_code and (not line.in_code_block or line.is_fence):
            return False
        if not in_code and line.in_code_block:
            return False
        return needle in line.text

    if isinstance(line_number, int) and 0 < line_number <= len(scanned):
        hinted = scanned[line_number - 1]
        if _matches(hinted):
            return hinted
    for line in scanned:
        if _matches(line):
            return line
    return None


__all__ = ["ConsistencyExecutor", "NOT_APPLICABLE_REASON", "REPORT_ONLY_REASON"]
