"""
Parameter Catalog Resolution

Looks up the PARM catalog entries for the parameter codes present in a
result set, using the same batched IN queries as the result tables.
Codes missing from the catalog are not an error; their rows simply carry
no descriptive metadata and pivot under the raw code.
"""

import logging
from typing import Dict, Iterable

import pandas as pd

from common.values import clean_text
from normalize.schemas import ParameterInfo, PARAMETER_CATALOG_COLUMNS

logger = logging.getLogger(__name__)


PARAMETER_TABLE = "PARM"


def _to_sequence(value):
    value = clean_text(value)
    if value is None:
        return None
    try:
        return float(value.replace(" ", ""))
    except ValueError:
        return None


class ParameterCatalogResolver:
    """Resolves parameter codes to catalog metadata"""

    def __init__(self, executor):
        """
        Args:
            executor: BatchQueryExecutor bound to an open connection
        """
        self.executor = executor

    def fetch(self, codes: Iterable[str]) -> pd.DataFrame:
        """Raw PARM rows for the distinct codes, first-seen order of the codes"""
        distinct = list(dict.fromkeys(str(c).strip() for c in codes if clean_text(c) is not None))
        return self.executor.fetch(PARAMETER_TABLE, "PARM_CD", distinct)

    def resolve(self, codes: Iterable[str]) -> Dict[str, ParameterInfo]:
        """
        Resolve parameter codes to ParameterInfo.

        Args:
            codes: Parameter codes, duplicates allowed

        Returns:
            Mapping of code -> ParameterInfo; unresolved codes are absent
        """
        codes = [str(c).strip() for c in codes if clean_text(c) is not None]
        rows = self.fetch(codes)

        catalog = {}
        if not rows.empty:
            for row in rows.to_dict('records'):
                code = clean_text(row.get("PARM_CD"))
                if code is None or code in catalog:
                    continue
                catalog[code] = ParameterInfo(
                    parm_cd=code,
                    group_cd=clean_text(row.get("PARM_SEQ_GRP_CD")),
                    description=clean_text(row.get("PARM_DS")),
                    name=clean_text(row.get("PARM_NM")),
                    sequence=_to_sequence(row.get("PARM_SEQ_NU")),
                )

        unresolved = set(codes) - set(catalog)
        if unresolved:
            logger.debug(f"{len(unresolved)} parameter codes not in catalog: {sorted(unresolved)}")

        logger.info(f"Resolved {len(catalog)} parameter codes")
        return catalog


def attach(results: pd.DataFrame, catalog: Dict[str, ParameterInfo]) -> pd.DataFrame:
    """
    Left join catalog metadata onto result rows by PARM_CD.

    Existing catalog columns on the results are replaced.
    """
    if results.empty:
        return results

    meta = pd.DataFrame(
        [
            {
                "PARM_CD": info.parm_cd,
                "PARM_SEQ_GRP_CD": info.group_cd,
                "PARM_DS": info.description,
                "PARM_NM": info.name,
                "PARM_SEQ_NU": info.sequence,
            }
            for info in catalog.values()
        ],
        columns=PARAMETER_CATALOG_COLUMNS
    )
    meta["PARM_CD"] = meta["PARM_CD"].astype(object)

    base = results.drop(columns=[c for c in PARAMETER_CATALOG_COLUMNS[1:] if c in results.columns])
    base = base.assign(PARM_CD=base["PARM_CD"].astype(str).str.strip())
    return base.merge(meta, on="PARM_CD", how='left', validate='many_to_one')
