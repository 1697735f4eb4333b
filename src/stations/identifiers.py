"""
Station Identifier Normalization

Parses user supplied station identifiers ("06733000" or "USGS-06733000")
into agency/site pairs and produces the padded site keys used to query the
SITEFILE and QW_SAMPLE tables.

SITE_NO is stored space padded to a fixed width, so queries must send the
padded form. Everything handed back to callers is trimmed.
"""

import logging
from typing import Iterable, List, Optional

import pandas as pd

from common.errors import InvalidInputError
from normalize.schemas import StationIdentifier

logger = logging.getLogger(__name__)


class IdentifierNormalizer:
    """
    Normalizes a collection of station identifiers.

    Example:
        >>> normalizer = IdentifierNormalizer(["06733000", "CODWR-PLACHECO"])
        >>> [str(s) for s in normalizer.stations]
        ['USGS-06733000', 'CODWR-PLACHECO']
    """

    def __init__(
        self,
        station_ids: Iterable[str],
        default_agency: str = "USGS",
        site_width: int = 15
    ):
        self.default_agency = default_agency
        self.site_width = site_width
        self.stations = self._parse_all(station_ids)

        logger.info(f"Normalized {len(self.stations)} station identifiers")

    def _parse_all(self, station_ids: Optional[Iterable[str]]) -> List[StationIdentifier]:
        if station_ids is None:
            raise InvalidInputError("You must enter at least one site number")
        if isinstance(station_ids, str):
            station_ids = [station_ids]

        stations = []
        seen = set()
        for raw in station_ids:
            if raw is None or not str(raw).strip():
                continue
            station = self.parse(str(raw))
            if station.key in seen:
                continue
            seen.add(station.key)
            stations.append(station)

        if not stations:
            raise InvalidInputError("You must enter at least one site number")

        return stations

    def parse(self, raw: str) -> StationIdentifier:
        """
        Parse one identifier.

        The token before the first dash is the agency code. A missing,
        empty or purely numeric prefix means the default agency and the
        whole token is the site number.

        Args:
            raw: Identifier as typed by the user

        Returns:
            StationIdentifier

        Raises:
            InvalidInputError: If the site number is empty or too wide
        """
        token = raw.strip()
        agency, sep, site = token.partition("-")

        if not sep or not agency.strip() or agency.strip().isdigit():
            agency, site = self.default_agency, token
            if token.startswith("-"):
                site = token[1:]

        agency = agency.strip().upper()
        site = site.strip()

        if not site:
            raise InvalidInputError(f"Station identifier '{raw}' has no site number")
        if len(site) > self.site_width:
            raise InvalidInputError(
                f"Site number '{site}' is longer than {self.site_width} characters"
            )

        return StationIdentifier(agency_cd=agency, site_no=site, site_width=self.site_width)

    def site_keys(self) -> List[str]:
        """Distinct padded site numbers in first-seen order, ready for an IN query"""
        return list(dict.fromkeys(s.padded_site_no for s in self.stations))

    def literal_list(self) -> str:
        """Quoted, comma separated padded site list (for logs and diagnostics)"""
        return ",".join(f"'{site}'" for site in self.site_keys())

    def station_keys(self) -> List[str]:
        """Trimmed agency/site composite keys"""
        return [s.key for s in self.stations]

    def filter_to_stations(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Keep rows whose AGENCY_CD + SITE_NO matches a requested station.

        The IN query only matches on SITE_NO, so the same site number under
        a different agency has to be dropped here.
        """
        if df.empty:
            return df

        keys = (
            df["AGENCY_CD"].fillna("").astype(str).str.strip()
            + df["SITE_NO"].fillna("").astype(str).str.strip()
        )
        return df[keys.isin(self.station_keys())].reset_index(drop=True)
