"""
Long to Wide Pivot

Turns reconciled result rows (one per record/parameter) into the DataTable:
one row per RECORD_NO, one column per parameter code, cells holding the
"value remark" string, with sample metadata joined back on.

Column names are "<code> <parameter name>" made into identifiers, e.g.
"00300 Dissolved oxygen" -> "X00300_Dissolved_oxygen". Collisions get a
numeric suffix in first-seen order.
"""

import logging
import re
from typing import Dict, Iterable, List

import pandas as pd

from normalize.schemas import LEADING_META_COUNT, SAMPLE_META_COLUMNS, ParameterInfo
from output.filters import RecordFilter

logger = logging.getLogger(__name__)


def sanitize_column_name(label: str) -> str:
    """
    Turn a label into a syntax-safe identifier.

    Examples:
        >>> sanitize_column_name("00300 Dissolved oxygen, water, mg/L")
        'X00300_Dissolved_oxygen_water_mg_L'
        >>> sanitize_column_name("pH")
        'pH'
    """
    name = re.sub(r"[^0-9A-Za-z_]+", "_", str(label).strip()).rstrip("_")
    if not name:
        return "X"
    if name[0].isdigit() or name[0] == "_":
        name = f"X{name}"
    return name


def make_unique(names: Iterable[str]) -> List[str]:
    """
    De-duplicate names, first occurrence kept, later ones suffixed _1, _2...

    Suffixed names never collide with any other input name.

    Examples:
        >>> make_unique(["a", "a", "b", "a"])
        ['a', 'a_1', 'b', 'a_2']
    """
    names = list(names)
    reserved = set(names)
    used = set()
    counters = {}
    unique = []

    for name in names:
        if name not in used:
            candidate = name
        else:
            n = counters.get(name, 0)
            while True:
                n += 1
                candidate = f"{name}_{n}"
                if candidate not in used and candidate not in reserved:
                    break
            counters[name] = n
        used.add(candidate)
        unique.append(candidate)

    return unique


def build_column_names(results: pd.DataFrame) -> Dict[str, str]:
    """
    Column name for each parameter code present in results.

    Codes are taken in sorted order so the schema does not depend on row
    order; the label uses the first non-empty PARM_NM of each code.

    Returns:
        Ordered mapping of PARM_CD -> column name
    """
    if results.empty:
        return {}

    codes = sorted(results["PARM_CD"].astype(str).str.strip().unique())

    labels = {}
    if "PARM_NM" in results.columns:
        named = results.dropna(subset=["PARM_NM"])
        for code, name in zip(named["PARM_CD"].astype(str).str.strip(), named["PARM_NM"].astype(str).str.strip()):
            if name and code not in labels:
                labels[code] = ParameterInfo(parm_cd=code, name=name).label

    names = make_unique(sanitize_column_name(labels.get(code, code)) for code in codes)
    return dict(zip(codes, names))


def pivot(
    results: pd.DataFrame,
    sample_meta: pd.DataFrame,
    column_names: Dict[str, str] = None
) -> pd.DataFrame:
    """
    Pivot result rows into one row per record number.

    Args:
        results: Result rows (already stripped of rejected DQI codes)
        sample_meta: Sample metadata, one row per RECORD_NO
        column_names: PARM_CD -> column name; built from results when omitted

    Returns:
        Wide DataFrame: RECORD_NO, leading metadata, parameter columns,
        remaining metadata
    """
    if results.empty:
        return pd.DataFrame()

    if column_names is None:
        column_names = build_column_names(results)

    deduped = RecordFilter.deduplicate_results(results)
    record_order = list(dict.fromkeys(deduped["RECORD_NO"]))
    codes = [c for c in column_names if c in set(deduped["PARM_CD"])]

    wide = deduped.pivot(index="RECORD_NO", columns="PARM_CD", values="VAL_QUAL")
    wide = wide.reindex(index=record_order, columns=codes)
    wide.columns = [column_names[c] for c in codes]
    wide.columns.name = None
    wide = wide.reset_index()

    meta = sample_meta.reindex(columns=SAMPLE_META_COLUMNS)
    meta = meta.drop_duplicates(subset=["RECORD_NO"], keep='first')
    meta = meta.assign(RECORD_NO=meta["RECORD_NO"].astype(object))
    wide = wide.merge(meta, on="RECORD_NO", how='left', validate='one_to_one')

    leading = SAMPLE_META_COLUMNS[:LEADING_META_COUNT + 1]
    trailing = SAMPLE_META_COLUMNS[LEADING_META_COUNT + 1:]
    parameter_columns = [column_names[c] for c in codes]
    wide = wide[leading + parameter_columns + trailing]

    logger.info(f"Pivoted {len(deduped)} results into {len(wide)} rows x {len(codes)} parameters")
    return wide
