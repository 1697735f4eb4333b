"""
Unit Tests for Batched IN-Clause Queries

Tests verify:
1. chunk_keys is a pure, order preserving partition
2. ceil(N / limit) queries for N keys, rows concatenated in key order
3. No query for an empty key list
4. Identifier validation for table, partition and source names
5. Missing table errors name the partition
"""

import math

import pytest
import pandas as pd
from pathlib import Path
import sys

# Add src to path
src_path = Path(__file__).parent.parent.parent / 'src'
sys.path.insert(0, str(src_path))

from common.errors import InvalidInputError, QueryError
from ingest.batch import BatchQueryExecutor, chunk_keys, qualified_table


class RecordingConnector:
    """Connector stand-in returning one row per key and recording every query"""

    def __init__(self, error=None):
        self.calls = []
        self.statements = []
        self.error = error

    def query(self, connection, statement, params):
        if self.error is not None:
            raise self.error
        self.calls.append(list(params["keys"]))
        self.statements.append(str(statement))
        return pd.DataFrame({"RECORD_NO": params["keys"]})


# Test Cases: chunk_keys

def test_chunk_keys_preserves_order():
    keys = list(range(7))

    assert chunk_keys(keys, 3) == [[0, 1, 2], [3, 4, 5], [6]]


def test_chunk_keys_empty():
    assert chunk_keys([], 1000) == []


def test_chunk_keys_exact_multiple():
    assert [len(b) for b in chunk_keys(range(2000), 1000)] == [1000, 1000]


def test_chunk_keys_rejects_bad_limit():
    with pytest.raises(ValueError):
        chunk_keys([1, 2], 0)


# Test Cases: Batch Execution

@pytest.mark.parametrize("n_keys", [0, 1, 1000, 1001, 2500])
def test_query_count_and_order(n_keys):
    """ceil(N/1000) queries; concatenated rows keep input key order"""
    keys = [f"{i:08d}" for i in range(n_keys)]
    connector = RecordingConnector()
    executor = BatchQueryExecutor(connector, connection=None, source="NWISCO", batch_size=1000)

    rows = executor.fetch("QW_RESULT", "RECORD_NO", keys, partition="01")

    assert len(connector.calls) == math.ceil(n_keys / 1000)
    assert executor.queries_issued == len(connector.calls)
    assert all(len(batch) <= 1000 for batch in connector.calls)
    if n_keys == 0:
        assert rows.empty
    else:
        assert rows["RECORD_NO"].tolist() == keys


class SparseConnector:
    """Returns typed rows for known keys and an untyped empty frame otherwise"""

    def __init__(self, known):
        self.known = set(known)

    def query(self, connection, statement, params):
        keys = [k for k in params["keys"] if k in self.known]
        if not keys:
            return pd.DataFrame([], columns=["RECORD_NO", "STATION_NM"])
        return pd.DataFrame({
            "RECORD_NO": pd.array(keys, dtype="string"),
            "STATION_NM": pd.array([f"station {k}" for k in keys], dtype="string"),
        })


@pytest.mark.parametrize("batch_size", [1, 2, 1000])
def test_empty_batches_do_not_change_dtypes(batch_size):
    """Batch size never changes the columns or dtypes of the fetched rows"""
    keys = ["a", "missing-1", "b", "missing-2", "c"]
    executor = BatchQueryExecutor(SparseConnector(["a", "b", "c"]), connection=None, batch_size=batch_size)

    rows = executor.fetch("QW_SAMPLE", "RECORD_NO", keys, partition="01")

    assert rows["RECORD_NO"].tolist() == ["a", "b", "c"]
    assert rows["RECORD_NO"].dtype == "string"
    assert rows["STATION_NM"].dtype == "string"
    assert list(rows.index) == [0, 1, 2]


def test_all_empty_batches_keep_columns():
    executor = BatchQueryExecutor(SparseConnector([]), connection=None, batch_size=1)

    rows = executor.fetch("QW_SAMPLE", "RECORD_NO", ["x", "y"], partition="01")

    assert rows.empty
    assert list(rows.columns) == ["RECORD_NO", "STATION_NM"]


def test_statement_targets_partition_table():
    connector = RecordingConnector()
    executor = BatchQueryExecutor(connector, connection=None, source="NWISCO")

    executor.fetch("QW_SAMPLE", "SITE_NO", ["06733000       "], partition="02")

    assert "NWISCO.QW_SAMPLE_02" in connector.statements[0]
    assert "SITE_NO IN" in connector.statements[0]
    # Key values are bound, never rendered into the SQL text
    assert "06733000" not in connector.statements[0]


def test_shared_table_has_no_partition_suffix():
    connector = RecordingConnector()
    executor = BatchQueryExecutor(connector, connection=None, source="NWISCO")

    executor.fetch("PARM", "PARM_CD", ["00300"])

    assert "NWISCO.PARM " in connector.statements[0]


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        BatchQueryExecutor(RecordingConnector(), connection=None, batch_size=0)


# Test Cases: Identifier Validation

def test_qualified_table_names():
    assert qualified_table("NWISCO", "QW_RESULT", "01") == "NWISCO.QW_RESULT_01"
    assert qualified_table(None, "PARM") == "PARM"


@pytest.mark.parametrize("source,partition", [
    ("NWISCO; DROP TABLE x", "01"),
    ("NWISCO", "01 OR 1=1"),
    ("NWISCO", ""),
])
def test_unsafe_identifiers_rejected(source, partition):
    with pytest.raises(InvalidInputError):
        qualified_table(source, "QW_SAMPLE", partition)


def test_unsafe_key_column_rejected():
    executor = BatchQueryExecutor(RecordingConnector(), connection=None)

    with pytest.raises(InvalidInputError):
        executor.fetch("QW_SAMPLE", "SITE_NO)--", ["1"], partition="01")


# Test Cases: Errors

def test_missing_table_names_partition():
    """A missing partition table is a configuration error tied to the partition"""
    connector = RecordingConnector(error=QueryError("ORA-00942: table or view does not exist", missing_table=True))
    executor = BatchQueryExecutor(connector, connection=None, source="NWISCO")

    with pytest.raises(QueryError) as exc_info:
        executor.fetch("SITEFILE", "SITE_NO", ["1"], partition="99")

    assert exc_info.value.partition == "99"
    assert exc_info.value.missing_table
    assert "NWISCO.SITEFILE_99" in str(exc_info.value)


def test_other_query_errors_propagate_as_query_error():
    connector = RecordingConnector(error=QueryError("syntax error"))
    executor = BatchQueryExecutor(connector, connection=None, source="NWISCO")

    with pytest.raises(QueryError) as exc_info:
        executor.fetch("QW_RESULT", "RECORD_NO", ["1"], partition="01")

    assert not exc_info.value.missing_table
    assert exc_info.value.table == "NWISCO.QW_RESULT_01"
