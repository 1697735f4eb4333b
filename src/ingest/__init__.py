"""
NWIS Table Ingestion

Connector, batched IN-clause querying, result assembly and parameter
catalog resolution for NWIS discrete-sample tables.
"""

from .connector import NWISConnector
from .batch import BatchQueryExecutor, chunk_keys, qualified_table
from .assembler import assemble, coerce_result_values, fetch_result_tables, value_with_qualifier
from .catalog import ParameterCatalogResolver, attach

__all__ = [
    'NWISConnector',
    'BatchQueryExecutor',
    'chunk_keys',
    'qualified_table',
    'assemble',
    'coerce_result_values',
    'fetch_result_tables',
    'value_with_qualifier',
    'ParameterCatalogResolver',
    'attach',
]
