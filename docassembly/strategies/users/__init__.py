"""User resolution strategies."""

from docassembly.strategies.users.http import HttpUserResolver

__all__ = [
    "HttpUserResolver",
]
