"""Rendering interfaces.

HTML rendering, HTML to PDF conversion and PDF overlay strategies.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from docassembly.assembly.models import Overlay, PdfOptions, Template


class BaseHtmlRenderer(ABC):
    """Abstract base class for rendering text templates to HTML."""

    @abstractmethod
    async def render_to_html(
        self,
        templates: Sequence[Template],
        variables: Mapping[str, Any],
    ) -> str:
        """Render templates into one continuous HTML document.

        Args:
            templates: Text templates in document order.
            variables: Merged variable values keyed by lowercase name.

        Returns:
            The complete HTML document.

        Raises:
            RenderError: If any template fails to render.
        """


class BasePdfConverter(ABC):
    """Abstract base class for HTML to PDF conversion."""

    @abstractmethod
    async def convert_to_pdf(self, html: str, options: PdfOptions) -> Path:
        """Convert an HTML document to a new PDF file.

        Args:
            html: The HTML document.
            options: Page layout, header and footer options.

        Returns:
            Path of a fresh temporary PDF owned by the caller.

        Raises:
            ConversionError: If conversion fails.
        """


class BaseOverlayer(ABC):
    """Abstract base class for stamping answer text onto PDF templates."""

    @abstractmethod
    def compute_overlay(
        self,
        template: Template,
        variables: Mapping[str, Any],
        answers: Mapping[str, Any],
    ) -> Overlay:
        """Compute the text fragments to place on a PDF template."""

    @abstractmethod
    async def apply_overlay(self, path: Path, overlay: Overlay) -> None:
        """Stamp an overlay onto the PDF at ``path``, modifying it in place.

        Raises:
            OverlayError: If the PDF cannot be read or written.
        """
