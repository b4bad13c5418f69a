"""Configuration loading for docforest (.docforest.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ValidationError

CONFIG_FILENAME = ".docforest.yml"
ATTRIBUTION_POLICIES = ("longest", "unattributed")


class ConfigError(ValidationError):
    """Raised when the configuration file cannot be parsed or holds bad values."""


@dataclass
class AtomicConfig:
    """Size thresholds that drive the split decision."""

    max_lines: int = 200
    max_sections: int = 6
    section_max_lines: int = 50
    code_heavy_multiplier: float = 1.5
    code_heavy_ratio: float = 0.5
    min_subconcepts: int = 2
    hub_sections: List[str] = field(default_factory=list)
    hub_filename: Optional[str] = None

    def validate(self) -> "AtomicConfig":
        """Raise ``ValidationError`` when a threshold is missing or non-positive."""
        for name in ("max_lines", "max_sections", "section_max_lines", "min_subconcepts"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValidationError(f"atomic.{name} must be a positive integer (got {value!r})")
        for name in ("code_heavy_multiplier", "code_heavy_ratio"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ValidationError(f"atomic.{name} must be a positive number (got {value!r})")
        if self.code_heavy_ratio > 1:
            raise ValidationError("atomic.code_heavy_ratio must not exceed 1.0")
        return self


@dataclass
class AttributionConfig:
    """How siblings are attributed when several hub prefixes match."""

    ambiguous: str = "longest"


@dataclass
class InspectConfig:
    """Bounds applied to consistency scans."""

    limit: Optional[int] = None


@dataclass
class DocForestConfig:
    """Represents the corpus-level settings defined in .docforest.yml."""

    root: Path
    atomic: AtomicConfig = field(default_factory=AtomicConfig)
    attribution: AttributionConfig = field(default_factory=AttributionConfig)
    inspect: InspectConfig = field(default_factory=InspectConfig)
    index_path: Optional[Path] = None
    templates_dir: Optional[Path] = None


def load_config(config_path: Path) -> DocForestConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return DocForestConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    atomic = AtomicConfig()
    atomic_data = _as_dict(data.get("atomic"))
    if atomic_data:
        atomic = AtomicConfig(
            max_lines=_as_int(atomic_data.get("max_lines"), atomic.max_lines),
            max_sections=_as_int(atomic_data.get("max_sections"), atomic.max_sections),
            section_max_lines=_as_int(
                atomic_data.get("section_max_lines"), atomic.section_max_lines
            ),
            code_heavy_multiplier=_as_float(
                atomic_data.get("code_heavy_multiplier"), atomic.code_heavy_multiplier
            ),
            code_heavy_ratio=_as_float(
                atomic_data.get("code_heavy_ratio"), atomic.code_heavy_ratio
            ),
            min_subconcepts=_as_int(atomic_data.get("min_subconcepts"), atomic.min_subconcepts),
            hub_sections=_as_str_list(atomic_data.get("hub_sections")),
            hub_filename=_as_str(atomic_data.get("hub_filename")),
        )
    try:
        atomic.validate()
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    attribution = AttributionConfig()
    attribution_data = _as_dict(data.get("attribution"))
    if attribution_data:
        policy = (_as_str(attribution_data.get("ambiguous")) or "longest").strip().lower()
        if policy not in ATTRIBUTION_POLICIES:
            raise ConfigError(
                f"attribution.ambiguous must be one of {', '.join(ATTRIBUTION_POLICIES)}"
            )
        attribution.ambiguous = policy

    inspect = InspectConfig()
    inspect_data = _as_dict(data.get("inspect"))
    if inspect_data:
        limit = _as_int(inspect_data.get("limit"), None)
        if limit is not None and limit <= 0:
            raise ConfigError("inspect.limit must be a positive integer")
        inspect.limit = limit

    index_str = _as_str(data.get("index_path"))
    index_path = root / index_str if index_str else None
    templates_str = _as_str(data.get("templates_dir"))
    templates_dir = root / templates_str if templates_str else None

    return DocForestConfig(
        root=root,
        atomic=atomic,
        attribution=attribution,
        inspect=inspect,
        index_path=index_path,
        templates_dir=templates_dir,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any, default: Optional[float]) -> Any:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def _as_int(value: Any, default: Optional[int]) -> Any:
    # Unusable values are passed through so validate() reports them.
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value
    return value


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "ATTRIBUTION_POLICIES",
    "AtomicConfig",
    "AttributionConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "DocForestConfig",
    "InspectConfig",
    "load_config",
]
