"""Jinja rendering of hub and stub scaffolds."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader

_DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class ScaffoldRenderer:
    """Renders new hub and stub bodies, preferring templates from ``templates_dir``."""

    HUB_TEMPLATE = "hub.md.j2"
    STUB_TEMPLATE = "stub.md.j2"

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def render_hub(self, title: str, entries: Sequence[str], overview: Optional[str] = None) -> str:
        template = self._env.get_template(self.HUB_TEMPLATE)
        overview_text = overview.strip() if overview else ""
        return template.render(title=title, entries=list(entries), overview=overview_text).rstrip()

    def render_stub(self, title: str, mentioned_in: str) -> str:
        template = self._env.get_template(self.STUB_TEMPLATE)
        return template.render(title=title, mentioned_in=mentioned_in).rstrip()

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(_DEFAULT_TEMPLATES_DIR))
        # Custom directory first so its templates shadow the packaged ones.
        ordered = list(dict.fromkeys(directories))
        loader = FileSystemLoader(ordered)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["ScaffoldRenderer"]
