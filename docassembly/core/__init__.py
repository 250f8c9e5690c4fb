"""Core configuration, logging and errors."""

from docassembly.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
