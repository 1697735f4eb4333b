"""NWIS discrete-sample extraction entry point."""

from .pipeline import SampleExtractor, extract_qw_data, suffix_record_numbers

__all__ = [
    'SampleExtractor',
    'extract_qw_data',
    'suffix_record_numbers',
]
