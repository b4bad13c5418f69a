"""YAML frontmatter parsing and the typed document metadata record."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
import yaml

from ..errors import ValidationError
from ..models import KIND_CHILD, KIND_HUB, KIND_STANDALONE, KIND_STUB

FRONTMATTER_DELIMITER = "---"
_HUB_SUFFIX = "_hub"
_DEFAULT_BASE_KIND = "research"


class DocumentMetadata(BaseModel):
    """Known frontmatter fields plus a side-map for everything else."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    kind: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    children_count: Optional[int] = Field(default=None, ge=0)
    created: Optional[str] = None
    modified: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("created", "modified", mode="before")
    @classmethod
    def _normalise_timestamp(cls, value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    @field_validator("kind", "title", "status", mode="before")
    @classmethod
    def _normalise_text(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "DocumentMetadata":
        """Validate a raw frontmatter mapping, raising ``ValidationError`` on bad values."""
        if data is None:
            return cls()
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            name = str(key)
            if name in _KNOWN_FIELDS:
                known[name] = value
            else:
                extra[name] = _plain(value)
        # Older corpora tag documents with ``type`` instead of ``kind``.
        if known.get("kind") is None and "type" in extra:
            known["kind"] = extra.pop("type")
        try:
            return cls(**known, extra=extra)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid document metadata: {exc}") from exc

    def to_mapping(self) -> Dict[str, Any]:
        """Known fields first, then extras, with ``None`` values omitted."""
        payload: Dict[str, Any] = {}
        for name in _KNOWN_FIELDS:
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        for key, value in self.extra.items():
            if value is not None and key not in payload:
                payload[key] = value
        return payload

    def document_kind(self) -> str:
        return document_kind(self.kind, self.status)

    def updated(self, **changes: Any) -> "DocumentMetadata":
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        try:
            return DocumentMetadata(**data)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid document metadata: {exc}") from exc


_KNOWN_FIELDS = ("kind", "title", "status", "children_count", "created", "modified")


def is_hub_kind(tag: Optional[str]) -> bool:
    """A tag marks a hub when it is ``hub`` or ends with ``_hub``."""
    if not tag:
        return False
    normalised = tag.strip().lower()
    return normalised == KIND_HUB or normalised.endswith(_HUB_SUFFIX)


def base_kind(tag: Optional[str]) -> str:
    """Strip every hub suffix: ``research_hub`` -> ``research``."""
    normalised = (tag or "").strip().lower()
    if not normalised or normalised == KIND_HUB:
        return _DEFAULT_BASE_KIND
    while normalised.endswith(_HUB_SUFFIX):
        normalised = normalised[: -len(_HUB_SUFFIX)]
    if not normalised or normalised == KIND_HUB:
        return _DEFAULT_BASE_KIND
    return normalised


def hub_kind(tag: Optional[str]) -> str:
    """Derive the hub tag for ``tag`` without double-suffixing."""
    normalised = (tag or "").strip().lower()
    if not normalised or normalised == KIND_HUB:
        return KIND_HUB
    while normalised.endswith(_HUB_SUFFIX):
        normalised = normalised[: -len(_HUB_SUFFIX)]
    if not normalised or normalised in (KIND_HUB, KIND_CHILD, KIND_STUB, KIND_STANDALONE):
        return KIND_HUB
    return f"{normalised}{_HUB_SUFFIX}"


def document_kind(tag: Optional[str], status: Optional[str] = None) -> str:
    """Map a metadata kind tag (and status) onto hub/child/stub/standalone."""
    if is_hub_kind(tag):
        return KIND_HUB
    normalised = (tag or "").strip().lower()
    if normalised == KIND_STUB or (status or "").strip().lower() == KIND_STUB:
        return KIND_STUB
    if normalised == KIND_CHILD:
        return KIND_CHILD
    return KIND_STANDALONE


def split_frontmatter(text: str) -> Tuple[Optional[str], str, int]:
    """Return ``(yaml_text, body, frontmatter_line_count)``.

    The frontmatter is a leading ``---`` line through the next ``---`` line.
    Without a closing delimiter the whole text is body.
    """
    normalised = text.replace("\r\n", "\n")
    lines = normalised.split("\n")
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return None, normalised, 0
    for index in range(1, len(lines)):
        if lines[index].strip() == FRONTMATTER_DELIMITER:
            yaml_text = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1 :])
            return yaml_text, body, index + 1
    return None, normalised, 0


def parse_document(text: str) -> Tuple[DocumentMetadata, str]:
    """Parse ``text`` into validated metadata and the body after the frontmatter.

    Leading newlines are dropped from the body so line numbers survive a
    read/render round trip.
    """
    yaml_text, body, _ = split_frontmatter(text)
    body = body.lstrip("\n")
    if yaml_text is None or not yaml_text.strip():
        return DocumentMetadata(), body
    try:
        loaded = yaml.safe_load(yaml_text)
    except yaml.YAMLError as exc:
        raise ValidationError(f"Invalid frontmatter: {exc}") from exc
    if loaded is None:
        return DocumentMetadata(), body
    if not isinstance(loaded, dict):
        raise ValidationError("Frontmatter must be a mapping")
    return DocumentMetadata.from_mapping(loaded), body


def render_document(metadata: DocumentMetadata, body: str) -> str:
    """Serialise metadata and body back into a markdown document."""
    mapping = metadata.to_mapping()
    content = body.strip("\n")
    if not mapping:
        return f"{content}\n" if content else ""
    header = yaml.safe_dump(
        mapping, sort_keys=False, allow_unicode=True, default_flow_style=False
    )
    return f"{FRONTMATTER_DELIMITER}\n{header}{FRONTMATTER_DELIMITER}\n\n{content}\n"


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


__all__ = [
    "DocumentMetadata",
    "FRONTMATTER_DELIMITER",
    "base_kind",
    "document_kind",
    "hub_kind",
    "is_hub_kind",
    "parse_document",
    "render_document",
    "split_frontmatter",
]
