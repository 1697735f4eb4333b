"""
Unit Tests for Result Record Assembly

Tests verify:
1. VAL_QUAL composite of value and remark
2. Comment and qualifier joins never multiply result rows
3. Result value coercion in numeric and text mode
"""

import pytest
import numpy as np
import pandas as pd
from pathlib import Path
import sys

# Add src to path
src_path = Path(__file__).parent.parent.parent / 'src'
sys.path.insert(0, str(src_path))

from ingest.assembler import assemble, coerce_result_values, fetch_result_tables, value_with_qualifier
from normalize.schemas import ResultValueMode


@pytest.fixture
def results():
    return pd.DataFrame({
        "RECORD_NO": ["01000001", "01000001", "01000002"],
        "PARM_CD": ["00300", "00631", "00300"],
        "RESULT_VA": ["7.9", "0.05", "8.4"],
        "REMARK_CD": [None, "<", " "],
    })


# Test Cases: VAL_QUAL

@pytest.mark.parametrize("value,remark,expected", [
    ("0.05", "<", "0.05 <"),
    ("7.9", None, "7.9"),
    ("7.9", np.nan, "7.9"),
    ("7.9", "  ", "7.9"),
    ("12", "NA", "12"),
    (None, "E", "E"),
    (None, None, ""),
    (3.5, "E", "3.5 E"),
])
def test_value_with_qualifier(value, remark, expected):
    assert value_with_qualifier(value, remark) == expected


def test_assemble_builds_val_qual(results):
    assembled = assemble(results)

    assert assembled["VAL_QUAL"].tolist() == ["7.9", "0.05 <", "8.4"]


# Test Cases: Joins

def test_assemble_preserves_row_count_with_duplicate_comments(results):
    """Duplicate comment/qualifier rows are reduced to one per key"""
    sample_comments = pd.DataFrame({
        "RECORD_NO": ["01000001", "01000001"],
        "SAMPLE_CM_TX": ["first", "second"],
    })
    result_comments = pd.DataFrame({
        "RECORD_NO": ["01000001", "01000001"],
        "PARM_CD": ["00631", "00631"],
        "RESULT_CM_TX": ["lab note", "duplicate note"],
    })
    qualifiers = pd.DataFrame({
        "RECORD_NO": ["01000002"],
        "PARM_CD": ["00300"],
        "VAL_QUAL_CD": ["e"],
    })

    assembled = assemble(results, sample_comments, result_comments, qualifiers)

    assert len(assembled) == len(results)
    assert assembled["SAMPLE_CM_TX"].tolist()[:2] == ["first", "first"]
    assert pd.isna(assembled["SAMPLE_CM_TX"].iloc[2])
    assert assembled["RESULT_CM_TX"].iloc[1] == "lab note"
    assert pd.isna(assembled["RESULT_CM_TX"].iloc[0])
    assert assembled["VAL_QUAL_CD"].iloc[2] == "e"


def test_assemble_join_keys_are_trimmed(results):
    """Keys padded by the backend still join"""
    result_comments = pd.DataFrame({
        "RECORD_NO": ["01000001  "],
        "PARM_CD": [" 00300"],
        "RESULT_CM_TX": ["trimmed"],
    })

    assembled = assemble(results, result_comments=result_comments)

    assert assembled["RESULT_CM_TX"].iloc[0] == "trimmed"


def test_assemble_left_columns_win(results):
    """Right-hand tables never overwrite result columns"""
    sample_comments = pd.DataFrame({
        "RECORD_NO": ["01000001"],
        "RESULT_VA": ["999"],
        "SAMPLE_CM_TX": ["note"],
    })

    assembled = assemble(results, sample_comments=sample_comments)

    assert assembled["RESULT_VA"].tolist() == ["7.9", "0.05", "8.4"]


def test_assemble_empty_results():
    assert assemble(pd.DataFrame()).empty


def test_fetch_result_tables_queries_all_four_tables():
    class StubExecutor:
        def __init__(self):
            self.calls = []

        def fetch(self, table, key_column, keys, partition=None):
            self.calls.append((table, key_column, list(keys), partition))
            return pd.DataFrame()

    executor = StubExecutor()
    tables = fetch_result_tables(executor, ["01000001", "01000001", "01000002"], "01")

    assert set(tables) == {"results", "result_comments", "sample_comments", "qualifiers"}
    assert [c[0] for c in executor.calls] == ["QW_RESULT", "QW_RESULT_CM", "QW_SAMPLE_CM", "QW_VAL_QUAL"]
    assert all(c[2] == ["01000001", "01000002"] and c[3] == "01" for c in executor.calls)


# Test Cases: Value Coercion

def test_numeric_mode_coerces_to_float():
    df = pd.DataFrame({"RESULT_VA": ["7.9 ", "0.05", "n/a", None]})

    coerced = coerce_result_values(df, ResultValueMode.NUMERIC)

    assert coerced["RESULT_VA"].dtype == float
    assert coerced["RESULT_VA"].iloc[0] == pytest.approx(7.9)
    assert np.isnan(coerced["RESULT_VA"].iloc[2])
    assert np.isnan(coerced["RESULT_VA"].iloc[3])


def test_text_mode_keeps_trimmed_strings():
    df = pd.DataFrame({"RESULT_VA": [" 7.90", "", None, 12]})

    coerced = coerce_result_values(df, ResultValueMode.TEXT)

    assert coerced["RESULT_VA"].tolist() == ["7.90", None, None, "12"]


def test_coercion_does_not_mutate_input():
    df = pd.DataFrame({"RESULT_VA": ["7.9"]})

    coerce_result_values(df, "numeric")

    assert df["RESULT_VA"].iloc[0] == "7.9"
