"""
Output Table Construction

Filtering, pivoting and composition of the PlotTable (long) and
DataTable (wide) outputs.
"""

from .filters import RecordFilter, parse_date
from .pivot import build_column_names, make_unique, pivot, sanitize_column_name
from .composer import Stream, TableComposer, concat_rows

__all__ = [
    'RecordFilter',
    'parse_date',
    'build_column_names',
    'make_unique',
    'pivot',
    'sanitize_column_name',
    'Stream',
    'TableComposer',
    'concat_rows',
]
