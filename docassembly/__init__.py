"""Guide document assembly service."""

__version__ = "0.1.0"
