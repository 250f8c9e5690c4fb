"""Helpers turning an incoming request into assembly inputs."""

import json
import re
from typing import Any
from urllib.parse import urlencode

from docassembly.assembly.models import PdfOptions
from docassembly.core.config import Settings
from docassembly.core.exceptions import ClientInputError

_RESERVED_CHARACTERS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]+')
_WHITESPACE = re.compile(r"\s+")
MAX_FILENAME_LENGTH = 100


def parse_answers(raw: str | dict[str, Any] | None) -> dict[str, Any]:
    """Decode the answers of a request.

    Raises:
        ClientInputError: If the answers are not a JSON object.
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if not raw.strip():
        return {}

    try:
        answers = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ClientInputError(f"answers is not valid JSON: {e}") from e

    if not isinstance(answers, dict):
        raise ClientInputError("answers must be a JSON object")
    return answers


def header_footer_url(base_url: str, content: str, hide_on_first_page: bool) -> str:
    """URL of the header-footer endpoint serving ``content``."""
    query = urlencode(
        {
            "content": content,
            "hideOnFirstPage": "true" if hide_on_first_page else "false",
        }
    )
    return f"{base_url.rstrip('/')}/header-footer?{query}"


def build_pdf_options(
    settings: Settings,
    base_url: str,
    header: str | None = None,
    footer: str | None = None,
    hide_header_on_first_page: bool = False,
    hide_footer_on_first_page: bool = False,
) -> PdfOptions:
    """Build converter options from configuration and request fields."""
    options = PdfOptions(
        header_spacing=settings.header_spacing,
        footer_spacing=settings.footer_spacing,
        margin_top=settings.margin_top,
    )
    if header:
        options.header_html = header_footer_url(base_url, header, hide_header_on_first_page)
    if footer:
        options.footer_html = header_footer_url(base_url, footer, hide_footer_on_first_page)
    return options


def sanitize_filename(name: str | None, fallback: str = "document") -> str:
    """Make a safe ``.pdf`` download filename out of a title."""
    cleaned = _RESERVED_CHARACTERS.sub("-", name or "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip(" .-")
    cleaned = cleaned[:MAX_FILENAME_LENGTH].rstrip(" .-") or fallback
    if not cleaned.lower().endswith(".pdf"):
        cleaned = f"{cleaned}.pdf"
    return cleaned
