"""
NWIS Database Connector

Thin SQLAlchemy wrapper exposing the two capabilities the extraction needs:
open a connection, and run a SELECT returning a DataFrame.

SQLAlchemy errors are translated into the extraction error taxonomy:
- connection failures -> BackendConnectionError
- query failures -> QueryError (missing_table=True for unknown tables/views)

Usage:
    connector = NWISConnector.from_env()
    with connector.connect("NWISCO") as conn:
        df = connector.query(conn, statement, {"keys": [...]})
"""

import logging
import os
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Union

import pandas as pd
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from common.errors import BackendConnectionError, QueryError

logger = logging.getLogger(__name__)


# Oracle, SQLite and PostgreSQL wordings for an unknown table or view
MISSING_TABLE_PATTERN = re.compile(
    r"table or view does not exist|ORA-00942|no such table|relation .* does not exist|"
    r"Invalid object name|doesn't exist",
    re.IGNORECASE
)


def is_missing_table_error(error: Exception) -> bool:
    """True when a backend error reports an unknown table or view"""
    return bool(MISSING_TABLE_PATTERN.search(str(error)))


class NWISConnector:
    """
    Database connector backed by a SQLAlchemy engine.

    One connector may serve many extraction calls; each call opens and
    closes its own connection.
    """

    def __init__(self, database: Union[str, Engine]):
        """
        Initialize connector.

        Args:
            database: SQLAlchemy database URL or an existing Engine
        """
        if isinstance(database, Engine):
            self.engine = database
        else:
            if not database:
                raise ValueError("A database URL must be provided")
            self.engine = create_engine(database)

        logger.info(f"NWIS connector initialized ({self.engine.dialect.name})")

    @classmethod
    def from_env(cls) -> 'NWISConnector':
        """
        Build a connector from NWIS_DATABASE_URL (or DATABASE_URL).

        Values are read from the environment after loading a .env file.
        """
        load_dotenv()

        database_url = os.getenv("NWIS_DATABASE_URL") or os.getenv("DATABASE_URL")
        if not database_url:
            raise ValueError("NWIS_DATABASE_URL must be provided or set in environment")

        return cls(database_url)

    @contextmanager
    def connect(self, source: Optional[str] = None) -> Iterator[Connection]:
        """
        Open a connection for one extraction call.

        The connection is closed on every exit path.

        Args:
            source: Data source identifier, only used in messages

        Raises:
            BackendConnectionError: If the connection cannot be established
        """
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            raise BackendConnectionError(
                f"Connection to data source '{source}' failed. "
                f"Check the database URL and network settings: {e}"
            ) from e

        logger.debug(f"Opened connection to data source '{source}'")
        try:
            yield conn
        finally:
            conn.close()
            logger.debug(f"Closed connection to data source '{source}'")

    def query(
        self,
        connection: Connection,
        statement,
        params: Optional[Dict[str, Any]] = None
    ) -> pd.DataFrame:
        """
        Execute a SELECT and return all rows.

        Column names are upper cased so every backend yields NWIS names.

        Args:
            connection: Open connection from connect()
            statement: SQLAlchemy executable (usually a text() clause)
            params: Bound parameters

        Returns:
            DataFrame of result rows (may be empty, columns still set)

        Raises:
            QueryError: If the backend rejects the query
        """
        try:
            result = connection.execute(statement, params or {})
            rows = result.fetchall()
            columns = [str(c).upper() for c in result.keys()]
        except DBAPIError as e:
            raise QueryError(str(e.orig), missing_table=is_missing_table_error(e)) from e
        except SQLAlchemyError as e:
            raise QueryError(str(e)) from e

        return pd.DataFrame([tuple(row) for row in rows], columns=columns)
