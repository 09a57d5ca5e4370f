"""CLI command modules."""

from . import agreement, match, normalize

__all__ = [
    "agreement",
    "match",
    "normalize",
]
