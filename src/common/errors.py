"""
Extraction Error Taxonomy

Every failure the extraction pipeline surfaces to a caller is one of these.

- InvalidInputError: malformed station or parameter input, never retried
- BackendConnectionError: the database could not be reached at all
- QueryError: a specific table/partition query failed
- JointEmptyError: environmental and QA streams both empty at a checkpoint

EmptyResultWarning is a warning category, not an exception. It is emitted
when a filtering stage empties one stream while the other survives.
"""

from typing import Optional


class NWISError(Exception):
    """Base class for extraction errors"""
    pass


class InvalidInputError(NWISError, ValueError):
    """Raised when station identifiers, parameters or dates are malformed"""
    pass


class BackendConnectionError(NWISError):
    """Raised when a database connection cannot be established"""
    pass


class QueryError(NWISError):
    """
    Raised when a query against a table fails.

    missing_table is True when the backend reported that the table or view
    does not exist, which almost always means a wrong partition number.
    """

    def __init__(
        self,
        message: str,
        partition: Optional[str] = None,
        table: Optional[str] = None,
        missing_table: bool = False
    ):
        super().__init__(message)
        self.partition = partition
        self.table = table
        self.missing_table = missing_table


class JointEmptyError(NWISError):
    """Raised when both streams are empty at a fatal checkpoint"""

    def __init__(self, message: str, stage: str):
        super().__init__(message)
        self.stage = stage


class EmptyResultWarning(UserWarning):
    """A filtering stage emptied one stream; the other is still usable"""
    pass
