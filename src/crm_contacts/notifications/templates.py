"""
HTML template rendering with variable substitution.
"""

import html
import re
from pathlib import Path
from typing import Any

from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """
    Renders HTML templates stored as files next to this module.

    Supports {{variable}} syntax for substitution. Unknown variables render
    as empty strings.
    """

    VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

    def __init__(self, template_dir: Path | None = None, escape_html: bool = True):
        """
        Initialize renderer.

        Args:
            template_dir: Directory holding the ``*.html`` templates.
            escape_html: Whether to HTML-escape variable values.
        """
        self._template_dir = template_dir or TEMPLATE_DIR
        self._escape_html = escape_html
        self._cache: dict[str, str] = {}

    def load(self, name: str) -> str:
        """Return the raw template text, reading it once."""
        if name not in self._cache:
            path = self._template_dir / name
            self._cache[name] = path.read_text(encoding="utf-8")
            logger.debug("Template loaded", extra={"template": name})
        return self._cache[name]

    def render(self, name: str, variables: dict[str, Any]) -> str:
        template = self.load(name)
        missing = self.extract_variables(template) - variables.keys()
        if missing:
            logger.warning(
                "Template variables not supplied",
                extra={"template": name, "missing": sorted(missing)},
            )
        return self.render_string(template, variables)

    def render_string(self, template: str, variables: dict[str, Any]) -> str:
        str_vars = {k: str(v) if v is not None else "" for k, v in variables.items()}
        return self._substitute(template, str_vars, escape=self._escape_html)

    def _substitute(self, template: str, variables: dict[str, str], escape: bool) -> str:
        def replacer(match: re.Match) -> str:
            value = variables.get(match.group(1), "")
            if escape:
                value = html.escape(value)
            return value

        return self.VARIABLE_PATTERN.sub(replacer, template)

    def extract_variables(self, template: str) -> set[str]:
        """
        Extract variable names from a template.

        Args:
            template: Template string.

        Returns:
            Set of variable names found in template.
        """
        return set(self.VARIABLE_PATTERN.findall(template))


_renderer: TemplateRenderer | None = None


def get_template_renderer() -> TemplateRenderer:
    global _renderer
    if _renderer is None:
        _renderer = TemplateRenderer()
    return _renderer
