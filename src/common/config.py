"""
Extraction Configuration

Holds the constants that drive extraction: query batch size, station padding,
review-status codes, medium allow-list, remark codes, timezone code mapping
and NWIS parameter groups.

Defaults live on the model so an installed package works without any file.
config/extraction.yaml overlays them, and NWIS_BATCH_SIZE in the environment
(or a .env file) overrides the batch size.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / 'config' / 'extraction.yaml'


# NWIS parameter groups, friendly name -> PARM_SEQ_GRP_CD
DEFAULT_PARAMETER_GROUPS = {
    "physical": "PHY",
    "cations": "INM",
    "anions": "INN",
    "nutrients": "NUT",
    "microbiological": "MBI",
    "biological": "BIO",
    "metals": "IMM",
    "nonmetals": "IMN",
    "pesticides": "TOX",
    "pcbs": "OPE",
    "other organics": "OPC",
    "radio chemicals": "RAD",
    "stable isotopes": "XXX",
    "sediment": "SED",
    "population/community": "POP",
}

# NWIS timezone codes -> tz database zones
DEFAULT_TIMEZONE_CODES = {
    "EST": "EST5EDT",
    "EDT": "EST5EDT",
    "CST": "CST6CDT",
    "CDT": "CST6CDT",
    "MST": "MST7MDT",
    "MDT": "MST7MDT",
    "PST": "PST8PDT",
    "PDT": "PST8PDT",
    "AKST": "America/Anchorage",
    "AKDT": "America/Anchorage",
    "HST": "Pacific/Honolulu",
    "AST": "America/Puerto_Rico",
    "ADT": "America/Halifax",
    "UTC": "UTC",
    "GMT": "UTC",
    "ZUTC": "UTC",
}


class ExtractionConfig(BaseModel):
    """
    Configuration for one extraction call.

    Attributes:
        batch_size: Maximum literal-list size of one IN query
        site_width: Storage width of SITE_NO (sites are space padded to it)
        default_agency: Agency code used when none is given
        all_sentinel: Parameter selector that disables parameter filtering
        rejected_dqi_codes: DQI codes excluded from both output tables
        medium_codes: Medium codes kept in the PlotTable
        remark_codes: Remark codes kept as-is, all others become "Sample"
        timezone_codes: NWIS timezone code -> tz database zone
        parameter_groups: Group name -> NWIS parameter group code
    """
    batch_size: int = 1000
    site_width: int = 15
    default_agency: str = "USGS"
    all_sentinel: str = "All"
    rejected_dqi_codes: List[str] = Field(default_factory=lambda: ["Q", "X"])
    medium_codes: List[str] = Field(
        default_factory=lambda: ["WS", "WG", "OA", "WSQ", "WGQ", "OAQ"]
    )
    remark_codes: List[str] = Field(
        default_factory=lambda: ["<", ">", "A", "E", "M", "N", "R", "S", "U", "V"]
    )
    timezone_codes: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_TIMEZONE_CODES)
    )
    parameter_groups: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PARAMETER_GROUPS)
    )

    @validator('batch_size', 'site_width')
    def must_be_positive(cls, v):
        """Batch size and site width must be at least 1"""
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @classmethod
    def from_yaml(cls, config_path: Path) -> 'ExtractionConfig':
        """
        Load configuration from a YAML file.

        Keys missing from the file keep their defaults.

        Args:
            config_path: Path to extraction.yaml

        Returns:
            ExtractionConfig instance
        """
        with open(config_path, 'r') as f:
            params = yaml.safe_load(f) or {}

        return cls(**params)


def load_default_config(config_path: Optional[Path] = None) -> ExtractionConfig:
    """
    Load the default extraction configuration.

    Reads config/extraction.yaml when it exists, then applies NWIS_BATCH_SIZE
    from the environment.

    Args:
        config_path: Optional override of the YAML location

    Returns:
        ExtractionConfig instance
    """
    load_dotenv()

    path = config_path or DEFAULT_CONFIG_PATH
    if path.exists():
        config = ExtractionConfig.from_yaml(path)
    else:
        logger.debug(f"No config file at {path}, using defaults")
        config = ExtractionConfig()

    batch_size = os.getenv("NWIS_BATCH_SIZE")
    if batch_size:
        config = ExtractionConfig(**{**config.model_dump(), "batch_size": int(batch_size)})

    return config
