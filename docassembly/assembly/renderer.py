"""Segment rendering.

Turns one segment of templates into one PDF file: text segments go through
HTML rendering and conversion, PDF segments through overlaying answer text
onto private copies of the stored template files.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from docassembly.assembly.combiner import combine_pdf_files
from docassembly.assembly.models import PdfOptions, Template
from docassembly.assembly.tempfiles import discard_files
from docassembly.core.exceptions import (
    AssemblyError,
    CombineError,
    OverlayError,
    RenderError,
)
from docassembly.interfaces import (
    BaseHtmlRenderer,
    BaseOverlayer,
    BasePdfConverter,
    BasePdfStorage,
)

logger = logging.getLogger(__name__)


class SegmentRenderer:
    """Produces the PDF file for a single segment.

    Every file returned is a temporary file owned by the caller. When a
    render fails, the temporary files it created are deleted before the
    error propagates.
    """

    def __init__(
        self,
        html_renderer: BaseHtmlRenderer,
        converter: BasePdfConverter,
        pdf_storage: BasePdfStorage,
        overlayer: BaseOverlayer,
        max_concurrent_conversions: int = 4,
    ) -> None:
        self._html_renderer = html_renderer
        self._converter = converter
        self._pdf_storage = pdf_storage
        self._overlayer = overlayer
        self._conversion_slots = asyncio.Semaphore(max_concurrent_conversions)

    async def render_text_segment(
        self,
        templates: Sequence[Template],
        variables: Mapping[str, Any],
        pdf_options: PdfOptions,
    ) -> Path:
        """Render text templates as one continuous document and convert it to PDF.

        Args:
            templates: Text templates in document order.
            variables: Merged variable values keyed by lowercase name.
            pdf_options: Converter options (spacing, margins, header and footer).

        Returns:
            Path of the new PDF file.

        Raises:
            RenderError: If HTML rendering fails.
            ConversionError: If PDF conversion fails.
        """
        try:
            html = await self._html_renderer.render_to_html(templates, variables)
        except AssemblyError:
            raise
        except Exception as e:
            raise RenderError(f"HTML rendering failed: {e}") from e

        async with self._conversion_slots:
            return await self._converter.convert_to_pdf(html, pdf_options)

    async def _overlay_template(
        self,
        username: str,
        template: Template,
        variables: Mapping[str, Any],
        answers: Mapping[str, Any],
    ) -> Path:
        path = await self._pdf_storage.duplicate_template_pdf(
            username, template.template_id, template.guide_id
        )
        try:
            overlay = self._overlayer.compute_overlay(template, variables, answers)
            await self._overlayer.apply_overlay(path, overlay)
        except BaseException:
            await discard_files([path])
            raise
        return path

    async def render_pdf_segment(
        self,
        username: str,
        templates: Sequence[Template],
        variables: Mapping[str, Any],
        answers: Mapping[str, Any],
    ) -> Path:
        """Overlay answer text onto copies of PDF templates and combine them.

        All templates of the segment are processed concurrently. A single
        failing template fails the segment; copies already produced for the
        other templates are deleted.

        Returns:
            Path of the combined segment PDF.

        Raises:
            OverlayError: If any template cannot be copied or overlaid.
            CombineError: If the overlaid copies cannot be combined.
        """
        results = await asyncio.gather(
            *(
                self._overlay_template(username, template, variables, answers)
                for template in templates
            ),
            return_exceptions=True,
        )

        paths = [result for result in results if isinstance(result, Path)]
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            await discard_files(paths)
            failure = failures[0]
            logger.error(f"PDF template overlay failed: {failure}")
            if isinstance(failure, OverlayError) or not isinstance(failure, Exception):
                raise failure
            raise OverlayError(f"PDF template overlay failed: {failure}") from failure

        try:
            return await combine_pdf_files(paths)
        except CombineError:
            await discard_files(paths)
            raise
