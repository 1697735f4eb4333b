"""
Time Normalization Service

Converts stored UTC sample times into the local time of the sample.

NWIS stores SAMPLE_START_DT and SAMPLE_END_DT in UTC alongside a timezone
code (SAMPLE_*_TZ_CD) and a flag saying whether local daylight saving time
applies (SAMPLE_*_LOCAL_TM_FG).

Design Principles:
- Only sample start and end times are converted; every other timestamp
  stays UTC to match legacy QWDATA exports
- Daylight saving is applied only when the record's flag says it is observed
- Rows without timezone metadata pass through unconverted
- Converted values are naive local wall-clock times
"""

import logging
from datetime import timedelta
from typing import Dict, Optional

import pandas as pd
import pytz

from common.config import DEFAULT_TIMEZONE_CODES
from common.values import is_missing

logger = logging.getLogger(__name__)


TRUE_FLAGS = {"Y", "YES", "T", "TRUE", "1"}

# (time column, timezone column, daylight flag column)
SAMPLE_TIME_COLUMNS = [
    ("SAMPLE_START_DT", "SAMPLE_START_TZ_CD", "SAMPLE_START_LOCAL_TM_FG"),
    ("SAMPLE_END_DT", "SAMPLE_END_TZ_CD", "SAMPLE_END_LOCAL_TM_FG"),
]


def to_naive_utc(values: pd.Series) -> pd.Series:
    """
    Parse stored sample times as naive UTC.

    Naive values are taken as UTC; timezone-aware values (e.g. timestamptz
    columns) are converted to UTC and the zone dropped.
    """
    return pd.to_datetime(values, errors='coerce', utc=True).dt.tz_localize(None)


class TimeNormalizer:
    """
    Converts UTC timestamps to record-local time.

    Example:
        >>> normalizer = TimeNormalizer()
        >>> normalizer.to_local(pd.Timestamp("2020-06-15 18:00"), "MST7MDT", "Y")
        Timestamp('2020-06-15 12:00:00')
        >>> normalizer.to_local(pd.Timestamp("2020-06-15 18:00"), "MST7MDT", "N")
        Timestamp('2020-06-15 11:00:00')
    """

    def __init__(self, timezone_codes: Optional[Dict[str, str]] = None):
        """
        Args:
            timezone_codes: NWIS timezone code -> tz database name
        """
        self.timezone_codes = {
            k.upper(): v for k, v in (timezone_codes or DEFAULT_TIMEZONE_CODES).items()
        }
        self._zones = {}
        self._unknown = set()

    def resolve_zone(self, tz_code) -> Optional[pytz.BaseTzInfo]:
        """
        Resolve an NWIS timezone code or tz database name.

        Returns:
            pytz timezone, or None when the code is blank or unknown
        """
        if is_missing(tz_code):
            return None

        code = str(tz_code).strip()
        if code in self._zones:
            return self._zones[code]

        name = self.timezone_codes.get(code.upper(), code)
        try:
            zone = pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            if code not in self._unknown:
                logger.warning(f"Unknown timezone code '{code}', times left in UTC")
                self._unknown.add(code)
            zone = None

        self._zones[code] = zone
        return zone

    @staticmethod
    def observes_dst(flag) -> bool:
        """Interpret a local-time (daylight saving) flag"""
        if isinstance(flag, bool):
            return flag
        if is_missing(flag):
            return False
        return str(flag).strip().upper() in TRUE_FLAGS

    def to_local(self, utc, tz_code, daylight_flag):
        """
        Convert one UTC timestamp to local time.

        Args:
            utc: UTC timestamp (naive values are taken as UTC)
            tz_code: NWIS timezone code or tz database name
            daylight_flag: Whether local daylight saving time is observed

        Returns:
            Naive local pd.Timestamp, or `utc` unchanged when it or the
            timezone is missing
        """
        if is_missing(utc):
            return utc

        zone = self.resolve_zone(tz_code)
        if zone is None:
            return utc

        ts = pd.Timestamp(utc)
        ts = ts.tz_localize('UTC') if ts.tzinfo is None else ts.tz_convert('UTC')
        local = ts.tz_convert(zone)

        if self.observes_dst(daylight_flag):
            return local.tz_localize(None)

        standard_offset = local.utcoffset() - (local.dst() or timedelta(0))
        return (ts + standard_offset).tz_localize(None)

    def convert_column(
        self,
        df: pd.DataFrame,
        time_col: str,
        tz_col: str,
        flag_col: str
    ) -> pd.Series:
        """
        Convert one timestamp column using per-row timezone metadata.

        Missing metadata columns leave the times unconverted.
        """
        times = to_naive_utc(df[time_col])
        if tz_col not in df.columns:
            logger.debug(f"No {tz_col} column, {time_col} left in UTC")
            return times

        flags = df[flag_col] if flag_col in df.columns else pd.Series(None, index=df.index)
        converted = [
            self.to_local(t, tz, fg)
            for t, tz, fg in zip(times, df[tz_col], flags)
        ]
        return pd.Series(pd.to_datetime(converted), index=df.index, name=time_col)

    def normalize_sample_times(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Convert SAMPLE_START_DT and SAMPLE_END_DT to local time.

        Each uses its own timezone code and daylight flag.

        Args:
            df: Sample rows with UTC times

        Returns:
            Copy of df with local sample times
        """
        if df.empty:
            return df

        df = df.copy()
        for time_col, tz_col, flag_col in SAMPLE_TIME_COLUMNS:
            if time_col in df.columns:
                df[time_col] = self.convert_column(df, time_col, tz_col, flag_col)

        logger.info(f"Normalized sample times for {len(df)} rows")
        return df
