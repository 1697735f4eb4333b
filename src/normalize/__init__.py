"""Data schemas and sample time normalization."""

from .schemas import (
    ExtractionResult,
    ParameterInfo,
    ResultValueMode,
    StationIdentifier,
    StreamKind,
)
from .time_normalizer import TimeNormalizer

__all__ = [
    'ExtractionResult',
    'ParameterInfo',
    'ResultValueMode',
    'StationIdentifier',
    'StreamKind',
    'TimeNormalizer',
]
