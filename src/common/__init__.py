"""Shared configuration and error types for NWIS QW extraction."""

from .config import ExtractionConfig, load_default_config
from .values import clean_text, is_missing
from .errors import (
    NWISError,
    InvalidInputError,
    BackendConnectionError,
    QueryError,
    JointEmptyError,
    EmptyResultWarning,
)

__all__ = [
    'ExtractionConfig',
    'load_default_config',
    'clean_text',
    'is_missing',
    'NWISError',
    'InvalidInputError',
    'BackendConnectionError',
    'QueryError',
    'JointEmptyError',
    'EmptyResultWarning',
]
