"""Temporary PDF file naming and deletion."""

import asyncio
import logging
import uuid
from collections.abc import Iterable
from pathlib import Path

from docassembly.core.exceptions import CleanupError

logger = logging.getLogger(__name__)


def temporary_pdf_path(temp_dir: Path, suffix: str = ".pdf") -> Path:
    """Return a unique, not yet existing file path inside ``temp_dir``."""
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir / f"{uuid.uuid4().hex}{suffix}"


async def delete_file(path: Path) -> None:
    """Delete a file; a file that is already gone is not an error.

    Raises:
        CleanupError: If the file exists but cannot be removed.
    """
    try:
        await asyncio.to_thread(Path(path).unlink, missing_ok=True)
    except OSError as e:
        raise CleanupError(f"Could not delete {path}: {e}") from e


async def discard_files(paths: Iterable[Path]) -> None:
    """Delete every path, logging failures instead of raising them."""
    results = await asyncio.gather(
        *(delete_file(path) for path in paths), return_exceptions=True
    )
    for result in results:
        if isinstance(result, CleanupError):
            logger.error(f"Temporary file cleanup failed: {result}")
        elif isinstance(result, BaseException):
            raise result
