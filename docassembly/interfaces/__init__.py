"""Abstract base classes for assembly collaborators."""

from docassembly.interfaces.renderer import BaseHtmlRenderer, BaseOverlayer, BasePdfConverter
from docassembly.interfaces.store import BasePdfStorage, BaseTemplateStore
from docassembly.interfaces.user import BaseUserResolver

__all__ = [
    "BaseHtmlRenderer",
    "BaseOverlayer",
    "BasePdfConverter",
    "BasePdfStorage",
    "BaseTemplateStore",
    "BaseUserResolver",
]
