"""Jinja2 HTML renderer strategy.

Renders the bodies of text templates with the merged variables and wraps
them in a single HTML document ready for PDF conversion.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from jinja2 import BaseLoader, TemplateError, meta, select_autoescape
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import Markup

from docassembly.assembly.models import Template
from docassembly.core.exceptions import RenderError
from docassembly.interfaces.renderer import BaseHtmlRenderer

logger = logging.getLogger(__name__)

DOCUMENT_SHELL = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
{% if stylesheet %}<link rel="stylesheet" href="{{ stylesheet }}">{% endif %}
</head>
<body>
{% for section in sections %}<section class="template" data-template-id="{{ section.template_id }}">
{{ section.html }}
</section>
{% endfor %}</body>
</html>
"""


def display_value(value: Any) -> str:
    """Format a variable value for display in a document."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(display_value(item) for item in value if item is not None)
    return str(value)


class JinjaHtmlRenderer(BaseHtmlRenderer):
    """Renders text template bodies with a sandboxed Jinja2 environment.

    Variable values are HTML-escaped; template bodies are trusted markup.
    Besides plain ``{{ name }}`` lookups, bodies can call ``var("Client name")``
    for names that are not identifiers. Both lookups ignore case.
    """

    def __init__(self, stylesheet_path: Path | None = None) -> None:
        self._environment = SandboxedEnvironment(
            loader=BaseLoader(),
            autoescape=select_autoescape(default_for_string=True, default=True),
        )
        self._environment.filters["display"] = display_value
        self._environment.finalize = display_value
        self._shell = self._environment.from_string(DOCUMENT_SHELL)
        self._stylesheet = stylesheet_path.resolve().as_uri() if stylesheet_path else None

    def _context(self, lookup: Mapping[str, Any], names: Iterable[str]) -> dict[str, Any]:
        """Bind every name a body references to its value, ignoring case."""

        def var(name: str, default: Any = "") -> Any:
            return lookup.get(name.lower(), default)

        context: dict[str, Any] = dict(lookup)
        for name in names:
            if name.lower() in lookup:
                context[name] = lookup[name.lower()]
        context["var"] = var
        return context

    def _render_body(self, template: Template, lookup: Mapping[str, Any]) -> str:
        try:
            source = self._environment.parse(template.body)
            context = self._context(lookup, meta.find_undeclared_variables(source))
            return self._environment.from_string(source).render(context)
        except TemplateError as e:
            logger.error(f"Template {template.template_id} failed to render: {e}")
            raise RenderError(f"Template {template.template_id} failed to render: {e}") from e

    async def render_to_html(
        self,
        templates: Sequence[Template],
        variables: Mapping[str, Any],
    ) -> str:
        lookup = {key.lower(): value for key, value in variables.items()}
        sections = [
            {
                "template_id": template.template_id,
                "html": Markup(self._render_body(template, lookup)),
            }
            for template in templates
        ]
        title = templates[0].title if templates else ""

        logger.debug(f"Rendered {len(sections)} text templates to HTML")
        return self._shell.render(title=title, stylesheet=self._stylesheet, sections=sections)
