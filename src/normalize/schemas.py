"""
Canonical Data Schemas for NWIS QW Extraction

Defines the value models and the fixed column layouts shared by the
ingest, normalize and output packages.

Design Principles:
- Backend column names are kept verbatim (upper case NWIS names)
- Output column order is fixed here and nowhere else
- Result values are tagged numeric or text once, at ingestion
- Station identifiers are trimmed whenever they are exposed
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, Field, validator


class ResultValueMode(str, Enum):
    """
    Representation of RESULT_VA in the output tables.

    NUMERIC coerces values to float, TEXT keeps the literal backend string
    (trailing zeros and all).
    """
    NUMERIC = "numeric"
    TEXT = "text"


class StreamKind(str, Enum):
    """The two NWIS partitions holding the same table set"""
    ENVIRONMENTAL = "environmental"
    QA = "qa"


class StationIdentifier(BaseModel):
    """
    One station, identified by agency code and site number.

    site_no is always trimmed; padded_site_no matches the fixed storage
    width used by the SITEFILE and QW_SAMPLE tables.
    """
    agency_cd: str = Field("USGS", description="Agency code, e.g. USGS")
    site_no: str = Field(..., description="Site number, trimmed")
    site_width: int = Field(15, description="Backend storage width of SITE_NO")

    @validator('agency_cd', 'site_no')
    def strip_whitespace(cls, v):
        """Identifiers are exposed without padding"""
        return v.strip()

    @property
    def padded_site_no(self) -> str:
        """Site number right padded with spaces to the storage width"""
        return self.site_no.ljust(self.site_width)

    @property
    def key(self) -> str:
        """Trimmed agency/site composite key"""
        return f"{self.agency_cd}{self.site_no}"

    def __str__(self) -> str:
        return f"{self.agency_cd}-{self.site_no}"


class ParameterInfo(BaseModel):
    """Catalog entry for one parameter code (PARM table)"""
    parm_cd: str
    group_cd: Optional[str] = None
    description: Optional[str] = None
    name: Optional[str] = None
    sequence: Optional[float] = None

    @property
    def label(self) -> str:
        """Code plus display name, or the bare code when the name is unknown"""
        if self.name:
            return f"{self.parm_cd} {self.name}"
        return self.parm_cd


@dataclass
class ExtractionResult:
    """
    Output of one extraction call.

    parameter_columns maps each parameter code in the DataTable to its
    column name. warnings holds a message for every stage that emptied one
    of the two streams.
    """
    plot_table: pd.DataFrame
    data_table: pd.DataFrame
    parameter_columns: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


# Site attributes joined onto samples
SITE_META_COLUMNS = ["SITE_NO", "STATION_NM", "DEC_LAT_VA", "DEC_LONG_VA", "HUC_CD"]

# Parameter catalog attributes joined onto results
PARAMETER_CATALOG_COLUMNS = ["PARM_CD", "PARM_SEQ_GRP_CD", "PARM_DS", "PARM_NM", "PARM_SEQ_NU"]

# Sample metadata in DataTable order. The first 8 (RECORD_NO plus 7) lead the
# wide table, the rest follow the parameter columns.
SAMPLE_META_COLUMNS = [
    "RECORD_NO", "SITE_NO", "STATION_NM", "SAMPLE_START_DT", "SAMPLE_END_DT", "MEDIUM_CD",
    "SAMP_TYPE_CD", "AGENCY_CD", "PROJECT_CD", "AQFR_CD", "LAB_NO", "HYD_EVENT_CD",
    "SAMPLE_CR", "SAMPLE_CN", "SAMPLE_MD", "SAMPLE_MN",
    "DEC_LAT_VA", "DEC_LONG_VA", "HUC_CD",
    "SAMPLE_START_SG", "SAMPLE_START_TZ_CD", "SAMPLE_START_LOCAL_TM_FG",
    "SAMPLE_END_SG", "SAMPLE_END_TZ_CD", "SAMPLE_END_LOCAL_TM_FG", "SAMPLE_ID",
    "TM_DATUM_RLBLTY_CD", "ANL_STAT_CD", "HYD_COND_CD",
    "TU_ID", "BODY_PART_ID", "COLL_ENT_CD", "SIDNO_PARTY_CD",
]

LEADING_META_COUNT = 7

PLOT_TABLE_COLUMNS = [
    "RECORD_NO", "SITE_NO", "STATION_NM", "SAMPLE_START_DT", "SAMPLE_END_DT", "MEDIUM_CD", "PROJECT_CD",
    "PARM_CD", "PARM_NM", "METH_CD", "RESULT_VA", "REMARK_CD", "VAL_QUAL_CD", "RPT_LEV_VA", "DQI_CD",
    "DEC_LAT_VA", "DEC_LONG_VA",
    "SAMPLE_CM_TX", "SAMPLE_CM_CR", "SAMPLE_CM_CN", "SAMPLE_CM_MD", "SAMPLE_CM_MN",
    "RESULT_CM_TX", "RESULT_CM_CR", "RESULT_CM_CN", "RESULT_CM_MD", "RESULT_CM_MN",
    "SAMPLE_CR", "SAMPLE_CN", "SAMPLE_MD", "SAMPLE_MN",
    "RESULT_CR", "RESULT_CN", "RESULT_MD", "RESULT_MN",
    "PREP_DT", "ANL_DT", "LAB_NO", "PREP_SET_NO", "ANL_SET_NO", "ANL_ENT_CD", "LAB_STD_DEV_VA", "LAB_STD_DEV_SG",
    "RESULT_SG", "RESULT_RD", "RPT_LEV_SG", "RPT_LEV_CD", "NULL_VAL_QUAL_CD",
    "SAMPLE_CM_TP",
    "RESULT_CM_TP",
    "VAL_QUAL_NU", "VAL_QUAL", "PARM_SEQ_GRP_CD", "PARM_DS",
    "PARM_SEQ_NU", "AGENCY_CD",
    "SAMPLE_START_SG", "SAMPLE_START_TZ_CD",
    "SAMPLE_START_LOCAL_TM_FG", "SAMPLE_END_SG", "SAMPLE_END_TZ_CD",
    "SAMPLE_END_LOCAL_TM_FG", "SAMPLE_ID", "TM_DATUM_RLBLTY_CD", "ANL_STAT_CD",
    "HYD_COND_CD", "SAMP_TYPE_CD", "HYD_EVENT_CD",
    "AQFR_CD", "TU_ID", "BODY_PART_ID",
    "COLL_ENT_CD", "SIDNO_PARTY_CD",
    "HUC_CD", "SAMPLE_MONTH", "DOY",
]

# Water-year month order for seasonal grouping
WATER_YEAR_MONTHS = ["Oct", "Nov", "Dec", "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep"]
