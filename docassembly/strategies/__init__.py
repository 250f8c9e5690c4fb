"""Concrete collaborator implementations."""

from docassembly.strategies.html import JinjaHtmlRenderer
from docassembly.strategies.pdf import ReportLabOverlayer, WkhtmltopdfConverter
from docassembly.strategies.storage import FilePdfStorage, FileTemplateStore, UserFileLayout
from docassembly.strategies.users import HttpUserResolver

__all__ = [
    "JinjaHtmlRenderer",
    "ReportLabOverlayer",
    "WkhtmltopdfConverter",
    "FilePdfStorage",
    "FileTemplateStore",
    "UserFileLayout",
    "HttpUserResolver",
]
