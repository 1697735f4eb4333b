"""
Batched IN-Clause Queries

The NWIS backend caps an IN (...) list at 1000 expressions. Key lists of
any length are split into batches, queried one batch at a time, and the
rows concatenated in batch order.

Design Principles:
- Batching is a pure function of (keys, limit)
- Key values are always bound parameters, never interpolated
- Table and column identifiers are validated before they reach SQL
- Batches run strictly in sequence, each fully read before the next
"""

import logging
import re
from typing import List, Optional, Sequence

import pandas as pd
from sqlalchemy import bindparam, text

from common.errors import InvalidInputError, QueryError

logger = logging.getLogger(__name__)


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_$#]+$")

DEFAULT_BATCH_SIZE = 1000


def chunk_keys(keys: Sequence, limit: int = DEFAULT_BATCH_SIZE) -> List[list]:
    """
    Split keys into consecutive batches of at most `limit`.

    Args:
        keys: Ordered key values
        limit: Maximum batch length

    Returns:
        List of batches, input order preserved

    Examples:
        >>> chunk_keys(['a', 'b', 'c'], limit=2)
        [['a', 'b'], ['c']]
        >>> chunk_keys([], limit=2)
        []
    """
    if limit < 1:
        raise ValueError(f"Batch limit must be >= 1, got {limit}")

    keys = list(keys)
    return [keys[i:i + limit] for i in range(0, len(keys), limit)]


def validate_identifier(value: str, what: str) -> str:
    """Reject anything that is not a plain SQL identifier"""
    if value is None or not IDENTIFIER_PATTERN.match(str(value)):
        raise InvalidInputError(f"Invalid {what}: {value!r}")
    return str(value)


def qualified_table(source: Optional[str], table: str, partition: Optional[str] = None) -> str:
    """
    Build a qualified NWIS table name, e.g. NWISCO.QW_SAMPLE_01.

    Args:
        source: Data source (schema) identifier, or None for unqualified
        table: Base table name
        partition: Database partition number appended as a suffix

    Returns:
        Qualified table name
    """
    name = validate_identifier(table, "table name")
    if partition is not None:
        name = f"{name}_{validate_identifier(partition, 'partition identifier')}"
    if source:
        name = f"{validate_identifier(source, 'data source identifier')}.{name}"
    return name


class BatchQueryExecutor:
    """
    Runs "SELECT * FROM table WHERE key IN (...)" over arbitrarily long key
    lists against one open connection.
    """

    def __init__(
        self,
        connector,
        connection,
        source: Optional[str] = None,
        batch_size: int = DEFAULT_BATCH_SIZE
    ):
        """
        Initialize executor.

        Args:
            connector: Object with query(connection, statement, params)
            connection: Open connection owned by the caller
            source: Data source identifier used to qualify table names
            batch_size: Maximum keys per query
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.connector = connector
        self.connection = connection
        self.source = source
        self.batch_size = batch_size
        self.queries_issued = 0

    def build_statement(self, table_name: str, key_column: str):
        """SELECT statement with an expanding bound parameter for the keys"""
        column = validate_identifier(key_column, "key column")
        return text(
            f"SELECT * FROM {table_name} WHERE {column} IN :keys"
        ).bindparams(bindparam("keys", expanding=True))

    def fetch(
        self,
        table: str,
        key_column: str,
        keys: Sequence,
        partition: Optional[str] = None
    ) -> pd.DataFrame:
        """
        Fetch all rows of `table` whose key is in `keys`.

        Args:
            table: Base table name (e.g. 'QW_SAMPLE')
            key_column: Column matched against the keys
            keys: Ordered key values
            partition: Partition number suffix (e.g. '01'), None for shared tables

        Returns:
            Concatenated rows in batch order; empty DataFrame for no keys

        Raises:
            QueryError: If any batch fails (identifies the partition)
        """
        table_name = qualified_table(self.source, table, partition)
        batches = chunk_keys(keys, self.batch_size)

        if not batches:
            logger.debug(f"No keys for {table_name}, skipping query")
            return pd.DataFrame()

        statement = self.build_statement(table_name, key_column)
        frames = []
        for i, batch in enumerate(batches, start=1):
            logger.debug(f"Querying {table_name} batch {i}/{len(batches)} ({len(batch)} keys)")
            try:
                frames.append(self.connector.query(self.connection, statement, {"keys": list(batch)}))
            except QueryError as e:
                if e.missing_table:
                    message = (
                        f"Table {table_name} does not exist. "
                        f"Incorrect database number entered for partition '{partition}'"
                    )
                else:
                    message = f"Query against {table_name} failed: {e}"
                raise QueryError(
                    message,
                    partition=partition,
                    table=table_name,
                    missing_table=e.missing_table
                ) from e
            self.queries_issued += 1

        # Column dtypes come from the batches that returned rows
        non_empty = [f for f in frames if not f.empty]
        if not non_empty:
            rows = frames[0]
        elif len(non_empty) == 1:
            rows = non_empty[0].reset_index(drop=True)
        else:
            rows = pd.concat(non_empty, ignore_index=True)
        logger.info(f"Fetched {len(rows)} rows from {table_name} in {len(batches)} batch(es)")
        return rows
