"""Template and PDF storage strategies."""

from docassembly.strategies.storage.filesystem import (
    FilePdfStorage,
    FileTemplateStore,
    UserFileLayout,
)

__all__ = [
    "FilePdfStorage",
    "FileTemplateStore",
    "UserFileLayout",
]
