"""PDF conversion and overlay strategies."""

from docassembly.strategies.pdf.overlayer import ReportLabOverlayer
from docassembly.strategies.pdf.wkhtmltopdf import WkhtmltopdfConverter

__all__ = [
    "ReportLabOverlayer",
    "WkhtmltopdfConverter",
]
