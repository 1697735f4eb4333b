"""Station identifier parsing for NWIS queries."""

from .identifiers import IdentifierNormalizer

__all__ = [
    'IdentifierNormalizer',
]
