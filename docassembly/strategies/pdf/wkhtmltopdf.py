"""wkhtmltopdf converter strategy.

Runs the wkhtmltopdf executable as an asyncio subprocess. The executable
path comes from configuration.
"""

import asyncio
import logging
from pathlib import Path

from docassembly.assembly.models import PdfOptions
from docassembly.assembly.tempfiles import delete_file, temporary_pdf_path
from docassembly.core.exceptions import CleanupError, ConversionError
from docassembly.interfaces.renderer import BasePdfConverter

logger = logging.getLogger(__name__)


def build_arguments(options: PdfOptions) -> list[str]:
    """Translate converter options into wkhtmltopdf command line flags.

    ``{"margin-top": "20", "print-media-type": None}`` becomes
    ``["--margin-top", "20", "--print-media-type"]``.
    """
    arguments: list[str] = ["--quiet", "--enable-local-file-access"]
    for name, value in options.to_flags().items():
        arguments.append(f"--{name.lstrip('-')}")
        if value is not None:
            arguments.append(value)
    return arguments


class WkhtmltopdfConverter(BasePdfConverter):
    """Converts HTML documents to PDF files with wkhtmltopdf."""

    def __init__(
        self,
        binary_path: str,
        temp_dir: Path,
        timeout_seconds: float = 120.0,
    ) -> None:
        """Initialize the converter.

        Args:
            binary_path: Path to the wkhtmltopdf executable.
            temp_dir: Directory for the HTML input and PDF output files.
            timeout_seconds: Maximum run time of one conversion.
        """
        self._binary_path = binary_path
        self._temp_dir = temp_dir
        self._timeout_seconds = timeout_seconds

    async def convert_to_pdf(self, html: str, options: PdfOptions) -> Path:
        html_path = temporary_pdf_path(self._temp_dir, suffix=".html")
        pdf_path = temporary_pdf_path(self._temp_dir)

        try:
            await self._write_input(html_path, html)
            await self._run([*build_arguments(options), str(html_path), str(pdf_path)])
        except BaseException:
            await self._discard(pdf_path)
            raise
        finally:
            await self._discard(html_path)

        if not pdf_path.exists():
            raise ConversionError("wkhtmltopdf finished without producing a PDF")

        logger.debug(f"Converted HTML to {pdf_path}")
        return pdf_path

    async def _write_input(self, path: Path, html: str) -> None:
        try:
            await asyncio.to_thread(path.write_text, html, encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not write converter input {path}: {e}")
            raise ConversionError(f"Could not write converter input: {e}") from e

    async def _run(self, arguments: list[str]) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                self._binary_path,
                *arguments,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Could not start wkhtmltopdf at {self._binary_path}: {e}")
            raise ConversionError(f"Could not start wkhtmltopdf: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ConversionError(
                f"wkhtmltopdf timed out after {self._timeout_seconds} seconds"
            ) from e

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            logger.error(f"wkhtmltopdf exited with {process.returncode}: {message}")
            raise ConversionError(
                f"wkhtmltopdf exited with status {process.returncode}: {message}"
            )

    async def _discard(self, path: Path) -> None:
        try:
            await delete_file(path)
        except CleanupError as e:
            logger.error(str(e))
