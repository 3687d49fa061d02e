"""Template rendering for generated TypeScript files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from ..config import GeneratorOptions
from ..errors import RenderError
from ..models import PreservedZone
from ..zones import CUSTOM_BODY_TAG, CUSTOM_HEAD_TAG, ZoneParser

_TEMPLATES = {
    "class": "class.ts.j2",
    "interface": "interface.ts.j2",
    "enum": "enum.ts.j2",
    "index": "index.ts.j2",
    "service": "service.ts.j2",
    "service-spec": "service.spec.ts.j2",
}

# Shapes whose templates expose a head/body slot for preserved zones.
_ZONE_SLOTS = {"class", "interface", "service"}


class TemplateRenderer:
    """Fills the shape templates with computed fragments and preserved zones."""

    def __init__(
        self,
        options: GeneratorOptions | None = None,
        *,
        templates_dir: Path | None = None,
        zone_parser: ZoneParser | None = None,
    ) -> None:
        self.options = options or GeneratorOptions()
        self.zone_parser = zone_parser or ZoneParser()
        self._env = self._create_env(templates_dir)

    def render(
        self,
        shape: str,
        fields: Mapping[str, Any],
        zones: Optional[Mapping[str, PreservedZone]] = None,
    ) -> str:
        """Return the file text for `shape`.

        Preserved zones are re-wrapped with their markers: the head zone at
        column zero above the declaration, the body zone one indent level in.
        """
        try:
            template = self._env.get_template(_TEMPLATES[shape])
        except (KeyError, TemplateNotFound):
            raise RenderError(fields.get("name", shape), f"unknown template shape '{shape}'") from None

        context: Dict[str, Any] = {
            "indent": self.options.indent,
            "quote": self.options.quote,
        }
        context.update(fields)
        if shape in _ZONE_SLOTS:
            zones = zones or {}
            context["custom_head"] = self.zone_parser.wrap(zones.get(CUSTOM_HEAD_TAG), "", tag=CUSTOM_HEAD_TAG)
            context["custom_body"] = self.zone_parser.wrap(
                zones.get(CUSTOM_BODY_TAG), self.options.indent, tag=CUSTOM_BODY_TAG
            )
        text = template.render(**context)
        return text.rstrip("\n") + "\n" if text.strip() else ""

    def _create_env(self, templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["TemplateRenderer"]
