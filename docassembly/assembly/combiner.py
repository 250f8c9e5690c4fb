"""PDF combination.

Appends the pages of several PDF files onto the first one. The first file
is rewritten in place and returned; the others are deleted once the merge
has been written.
"""

import asyncio
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from pypdf import PdfWriter

from docassembly.assembly.tempfiles import discard_files
from docassembly.core.exceptions import CombineError

logger = logging.getLogger(__name__)


def _append_pages(base: Path, others: Sequence[Path]) -> None:
    writer = PdfWriter(clone_from=base)
    for other in others:
        writer.append(other)

    # Staged beside the base so a failed write never truncates it.
    staging = base.with_name(f"{base.name}.merging")
    try:
        with open(staging, "wb") as fh:
            writer.write(fh)
        os.replace(staging, base)
    finally:
        staging.unlink(missing_ok=True)


async def combine_pdf_files(paths: Sequence[Path]) -> Path:
    """Combine PDF files into the first one.

    Args:
        paths: PDF files in output order. Must not be empty.

    Returns:
        ``paths[0]``, now holding every page of every file in order.

    Raises:
        CombineError: If ``paths`` is empty or the merge fails. Nothing is
            deleted when the merge fails.
    """
    if not paths:
        raise CombineError("No PDF files to combine")

    base, *others = [Path(p) for p in paths]
    if not others:
        return base

    logger.debug(f"Combining {len(others) + 1} PDF files into {base}")

    try:
        await asyncio.to_thread(_append_pages, base, others)
    except Exception as e:
        logger.error(f"PDF combination failed for {base}: {e}", exc_info=True)
        raise CombineError(f"PDF combination failed: {e}") from e

    await discard_files(others)
    return base
