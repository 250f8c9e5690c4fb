"""PDF overlay strategy.

Computes where answer text goes on a PDF template and stamps it onto the
template's pages. Text is drawn with reportlab onto a transparent page of
the same size and merged over the original page with pypdf.
"""

import asyncio
import io
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pypdf import PdfReader, PdfWriter
from reportlab.pdfgen import canvas

from docassembly.assembly.models import Overlay, Template, TextFragment
from docassembly.core.exceptions import OverlayError
from docassembly.interfaces.renderer import BaseOverlayer

logger = logging.getLogger(__name__)

CHECKED_MARK = "X"


def overlay_text(value: Any) -> str | None:
    """Return the text drawn for a value, or None when nothing is drawn.

    True draws a check mark; False, None and blank values draw nothing.
    """
    if value is None or value is False:
        return None
    if value is True:
        return CHECKED_MARK
    if isinstance(value, (list, tuple)):
        parts = [overlay_text(item) for item in value]
        text = ", ".join(part for part in parts if part)
    else:
        text = str(value)
    return text if text.strip() else None


class ReportLabOverlayer(BaseOverlayer):
    """Stamps variable values into the boxes declared by a PDF template."""

    def __init__(self, font_name: str = "Helvetica") -> None:
        self._font_name = font_name

    def compute_overlay(
        self,
        template: Template,
        variables: Mapping[str, Any],
        answers: Mapping[str, Any],
    ) -> Overlay:
        """Resolve each box's variable and place its text in the box.

        Answers win over merged variables. Text sits at the top-left of the
        box, one line below the top edge.
        """
        answer_values = {key.lower(): value for key, value in answers.items()}
        fragments: list[TextFragment] = []

        for box in template.boxes:
            key = box.variable.lower()
            value = answer_values[key] if key in answer_values else variables.get(key)
            text = overlay_text(value)
            if text is None:
                continue
            fragments.append(
                TextFragment(
                    page=box.page,
                    left=box.left,
                    top=box.top + box.font_size,
                    text=text,
                    font_size=box.font_size,
                )
            )

        logger.debug(
            f"Overlay for template {template.template_id}: "
            f"{len(fragments)} of {len(template.boxes)} boxes filled"
        )
        return Overlay(fragments=tuple(fragments))

    def _stamp(self, width: float, height: float, fragments: list[TextFragment]):
        buffer = io.BytesIO()
        stamp = canvas.Canvas(buffer, pagesize=(width, height))
        for fragment in fragments:
            stamp.setFont(self._font_name, fragment.font_size)
            # PDF space starts at the bottom-left corner
            stamp.drawString(fragment.left, height - fragment.top, fragment.text)
        stamp.showPage()
        stamp.save()
        buffer.seek(0)
        return PdfReader(buffer).pages[0]

    def _apply(self, path: Path, overlay: Overlay) -> None:
        writer = PdfWriter(clone_from=path)
        page_count = len(writer.pages)

        for index, fragments in sorted(overlay.by_page().items()):
            if index >= page_count:
                raise OverlayError(
                    f"Overlay targets page {index + 1} but {path.name} has {page_count} pages"
                )
            page = writer.pages[index]
            width = float(page.mediabox.width)
            height = float(page.mediabox.height)
            page.merge_page(self._stamp(width, height, fragments))

        staging = path.with_name(f"{path.name}.overlay")
        try:
            with open(staging, "wb") as fh:
                writer.write(fh)
            os.replace(staging, path)
        finally:
            staging.unlink(missing_ok=True)

    async def apply_overlay(self, path: Path, overlay: Overlay) -> None:
        if not overlay:
            return

        try:
            await asyncio.to_thread(self._apply, Path(path), overlay)
        except OverlayError:
            raise
        except Exception as e:
            logger.error(f"Overlay failed for {path}: {e}", exc_info=True)
            raise OverlayError(f"Overlay failed for {Path(path).name}: {e}") from e
