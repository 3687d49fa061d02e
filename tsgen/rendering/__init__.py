"""TypeScript content generation and template rendering."""

from .content import ContentGenerator, OutputPaths
from .renderer import TemplateRenderer

__all__ = ["ContentGenerator", "OutputPaths", "TemplateRenderer"]
