"""HTML rendering strategies."""

from docassembly.strategies.html.jinja_renderer import JinjaHtmlRenderer

__all__ = [
    "JinjaHtmlRenderer",
]
