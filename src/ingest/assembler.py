"""
Result Record Assembly

Reconciles the per-partition result tables into one row per result:

    QW_RESULT
      LEFT JOIN QW_SAMPLE_CM  ON RECORD_NO
      LEFT JOIN QW_RESULT_CM  ON RECORD_NO, PARM_CD
      LEFT JOIN QW_VAL_QUAL   ON RECORD_NO, PARM_CD

Each right-hand table is reduced to one row per join key before joining,
so comments and qualifiers can never multiply result rows.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from common.values import clean_text, is_missing
from normalize.schemas import ResultValueMode

logger = logging.getLogger(__name__)


RESULT_TABLE = "QW_RESULT"
SAMPLE_COMMENT_TABLE = "QW_SAMPLE_CM"
RESULT_COMMENT_TABLE = "QW_RESULT_CM"
QUALIFIER_TABLE = "QW_VAL_QUAL"

# Missing-value token written by legacy exports
MISSING_TOKEN = "NA"


def fetch_result_tables(
    executor,
    record_numbers: Sequence[str],
    partition: str
) -> Dict[str, pd.DataFrame]:
    """
    Query the result, comment and qualifier tables for a set of samples.

    Args:
        executor: BatchQueryExecutor bound to an open connection
        record_numbers: RECORD_NO values of the samples
        partition: Partition number (e.g. '01')

    Returns:
        Dict with keys 'results', 'sample_comments', 'result_comments', 'qualifiers'
    """
    record_numbers = list(dict.fromkeys(record_numbers))
    logger.info(f"Fetching results for {len(record_numbers)} samples from partition {partition}")

    return {
        'results': executor.fetch(RESULT_TABLE, "RECORD_NO", record_numbers, partition),
        'result_comments': executor.fetch(RESULT_COMMENT_TABLE, "RECORD_NO", record_numbers, partition),
        'sample_comments': executor.fetch(SAMPLE_COMMENT_TABLE, "RECORD_NO", record_numbers, partition),
        'qualifiers': executor.fetch(QUALIFIER_TABLE, "RECORD_NO", record_numbers, partition),
    }


def value_with_qualifier(value, remark) -> str:
    """
    Composite "value remark" string used as the DataTable cell.

    Missing parts (None, NaN, blank or the literal "NA") contribute nothing.

    Examples:
        >>> value_with_qualifier("0.05", "<")
        '0.05 <'
        >>> value_with_qualifier("7.9", None)
        '7.9'
        >>> value_with_qualifier("12", "NA")
        '12'
    """
    parts = [str(p).strip() for p in (value, remark) if not is_missing(p, tokens=(MISSING_TOKEN,))]
    return " ".join(parts)


def _one_per_key(df: pd.DataFrame, keys: List[str], name: str) -> pd.DataFrame:
    """Keep the first row per join key, logging anything dropped"""
    duplicated = df.duplicated(subset=keys, keep='first')
    n_dup = int(duplicated.sum())
    if n_dup:
        logger.warning(
            f"{name}: dropped {n_dup} rows with duplicate {'/'.join(keys)}; first row kept"
        )
    return df[~duplicated]


def _left_join(
    left: pd.DataFrame,
    right: Optional[pd.DataFrame],
    keys: List[str],
    name: str
) -> pd.DataFrame:
    if right is None or right.empty or not all(k in right.columns for k in keys):
        return left

    right = _one_per_key(right, keys, name)
    # Columns already present on the left win
    extra = [c for c in right.columns if c not in left.columns]
    return left.merge(right[keys + extra], on=keys, how='left', validate='many_to_one')


def _normalize_keys(df: Optional[pd.DataFrame]) -> Optional[pd.DataFrame]:
    """Join keys compare as trimmed strings regardless of backend types"""
    if df is None or df.empty:
        return df
    df = df.copy()
    for key in ("RECORD_NO", "PARM_CD"):
        if key in df.columns:
            df[key] = df[key].astype(str).str.strip()
    return df


def assemble(
    results: pd.DataFrame,
    sample_comments: Optional[pd.DataFrame] = None,
    result_comments: Optional[pd.DataFrame] = None,
    qualifiers: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """
    Join comments and qualifiers onto result rows and build VAL_QUAL.

    Args:
        results: QW_RESULT rows
        sample_comments: QW_SAMPLE_CM rows (one per RECORD_NO)
        result_comments: QW_RESULT_CM rows (one per RECORD_NO/PARM_CD)
        qualifiers: QW_VAL_QUAL rows (one per RECORD_NO/PARM_CD)

    Returns:
        One row per input result row, input order preserved
    """
    if results is None or results.empty:
        return pd.DataFrame()

    assembled = _normalize_keys(results).reset_index(drop=True)
    assembled = _left_join(assembled, _normalize_keys(sample_comments), ["RECORD_NO"], SAMPLE_COMMENT_TABLE)
    assembled = _left_join(assembled, _normalize_keys(result_comments), ["RECORD_NO", "PARM_CD"], RESULT_COMMENT_TABLE)
    assembled = _left_join(assembled, _normalize_keys(qualifiers), ["RECORD_NO", "PARM_CD"], QUALIFIER_TABLE)

    remarks = assembled["REMARK_CD"] if "REMARK_CD" in assembled.columns else pd.Series(None, index=assembled.index)
    values = assembled["RESULT_VA"] if "RESULT_VA" in assembled.columns else pd.Series(None, index=assembled.index)
    assembled["VAL_QUAL"] = [value_with_qualifier(v, r) for v, r in zip(values, remarks)]

    logger.info(f"Assembled {len(assembled)} result rows")
    return assembled


def coerce_result_values(df: pd.DataFrame, mode: ResultValueMode) -> pd.DataFrame:
    """
    Fix the representation of RESULT_VA once, at ingestion.

    NUMERIC: float column, unparseable values become NaN.
    TEXT: trimmed strings, missing values stay missing.
    """
    if df.empty or "RESULT_VA" not in df.columns:
        return df

    df = df.copy()
    mode = ResultValueMode(mode)
    if mode == ResultValueMode.NUMERIC:
        values = df["RESULT_VA"].astype(str).str.strip()
        df["RESULT_VA"] = pd.to_numeric(values, errors='coerce').astype(np.float64)
    else:
        df["RESULT_VA"] = pd.Series(
            [clean_text(v) for v in df["RESULT_VA"]],
            index=df.index,
            dtype=object
        )
    return df
