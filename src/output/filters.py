"""
Record Filtering and Deduplication

Narrowing stages applied to each stream (environmental and QA):

1. Date range on UTC sample start time (both bounds required)
2. Project code membership
3. Parameter selection by code or by parameter group ("All" bypasses)
4. Review status: reviewed-pending and rejected DQI codes, applied last
5. Deduplication of (RECORD_NO, PARM_CD) for the wide table only

A stage that empties one stream is logged and reported as an
EmptyResultWarning. Both streams empty at the site lookup, the result join
or the parameter selection is fatal (JointEmptyError).
"""

import logging
import warnings
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Union

import pandas as pd

from common.config import ExtractionConfig
from common.errors import EmptyResultWarning, InvalidInputError, JointEmptyError
from normalize.time_normalizer import to_naive_utc

logger = logging.getLogger(__name__)


DateLike = Union[str, date, datetime, None]

# Checkpoints where two empty streams end the extraction
FATAL_STAGES = {
    "site lookup": "Site does not exist in environmental or QA database sitefile, check site number input",
    "result join": "No results exist in the environmental or QA database, check input criteria",
    "parameter selection": "No valid parameter codes specified, check input criteria",
}


def parse_date(value: DateLike, name: str) -> Optional[pd.Timestamp]:
    """Parse a YYYY-MM-DD string, date or datetime; None stays None"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return pd.Timestamp(value)
    except (ValueError, TypeError) as e:
        raise InvalidInputError(f"Invalid {name}: {value!r} (expected YYYY-MM-DD)") from e


def _strip(series: pd.Series) -> pd.Series:
    return series.astype(str).str.strip()


class RecordFilter:
    """
    Applies the filtering stages and records empty-stream messages.

    Attributes:
        messages: One entry per stage that emptied a stream
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()
        self.messages: List[str] = []

    def report_empty(self, df: pd.DataFrame, stream: str, stage: str) -> bool:
        """
        Log and warn when a stage left a stream with no rows.

        Returns:
            True if the stream is empty
        """
        if not df.empty:
            return False

        message = f"No {stream} records remain after {stage}, check data criteria"
        logger.warning(message)
        warnings.warn(message, EmptyResultWarning, stacklevel=2)
        self.messages.append(message)
        return True

    @staticmethod
    def check_joint_empty(env: pd.DataFrame, qa: pd.DataFrame, stage: str) -> None:
        """
        Raise JointEmptyError when both streams are empty.

        Args:
            env: Environmental stream rows
            qa: QA stream rows
            stage: 'site lookup', 'result join' or 'parameter selection'
        """
        if env.empty and qa.empty:
            message = FATAL_STAGES.get(stage, f"No environmental or QA records after {stage}")
            logger.error(message)
            raise JointEmptyError(message, stage=stage)

    def filter_date_range(
        self,
        samples: pd.DataFrame,
        begin_date: DateLike,
        end_date: DateLike
    ) -> pd.DataFrame:
        """
        Keep samples whose UTC start time falls within [begin, end].

        Applied only when both bounds are given. The end date covers its
        whole calendar day.
        """
        begin = parse_date(begin_date, "begin date")
        end = parse_date(end_date, "end date")
        if begin is None or end is None or samples.empty:
            return samples

        if begin > end:
            raise InvalidInputError(f"Begin date {begin.date()} is after end date {end.date()}")

        if end == end.normalize():
            end = end + timedelta(days=1) - timedelta(microseconds=1)

        start = to_naive_utc(samples["SAMPLE_START_DT"])
        kept = samples[(start >= begin) & (start <= end)].reset_index(drop=True)

        logger.info(f"Date filter {begin.date()} to {end.date()}: {len(samples)} -> {len(kept)} samples")
        return kept

    def filter_projects(
        self,
        samples: pd.DataFrame,
        project_codes: Optional[Iterable[str]]
    ) -> pd.DataFrame:
        """Keep samples whose PROJECT_CD is in project_codes (no-op for an empty list)"""
        if isinstance(project_codes, str):
            project_codes = [project_codes]
        codes = [str(c).strip() for c in (project_codes or []) if str(c).strip()]
        if not codes or samples.empty:
            return samples

        kept = samples[_strip(samples["PROJECT_CD"]).isin(codes)].reset_index(drop=True)
        logger.info(f"Project filter {codes}: {len(samples)} -> {len(kept)} samples")
        return kept

    def resolve_groups(self, selectors: List[str]) -> List[str]:
        """Map parameter group names (e.g. 'nutrients') to NWIS group codes"""
        groups = {k.lower(): v for k, v in self.config.parameter_groups.items()}
        return [groups.get(s.lower(), s) for s in selectors]

    def filter_parameters(
        self,
        results: pd.DataFrame,
        selectors: Union[str, Iterable[str]],
        by_group: bool = True
    ) -> pd.DataFrame:
        """
        Keep results for the selected parameters.

        Args:
            results: Result rows with catalog metadata attached
            selectors: Parameter codes, or group codes/names when by_group
            by_group: Match PARM_SEQ_GRP_CD instead of PARM_CD

        Raises:
            InvalidInputError: If no selector is given
        """
        if isinstance(selectors, str):
            selectors = [selectors]
        selectors = [str(s).strip() for s in (selectors or []) if str(s).strip()]
        if not selectors:
            raise InvalidInputError(
                f"At least one parameter code or group must be given (use '{self.config.all_sentinel}')"
            )

        if self.config.all_sentinel in selectors or results.empty:
            return results

        if by_group:
            column, wanted = "PARM_SEQ_GRP_CD", self.resolve_groups(selectors)
        else:
            column, wanted = "PARM_CD", selectors

        if column not in results.columns:
            return results.iloc[0:0]

        kept = results[_strip(results[column]).isin(wanted)].reset_index(drop=True)
        logger.info(f"Parameter filter on {column}: {len(results)} -> {len(kept)} results")
        return kept

    def exclude_review_status(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop reviewed-pending and rejected results (DQI_CD)"""
        if df.empty or "DQI_CD" not in df.columns:
            return df

        rejected = _strip(df["DQI_CD"]).isin(self.config.rejected_dqi_codes)
        if rejected.any():
            logger.info(f"Excluded {int(rejected.sum())} reviewed/rejected results")
        return df[~rejected].reset_index(drop=True)

    @staticmethod
    def deduplicate_results(df: pd.DataFrame) -> pd.DataFrame:
        """Keep the first row for each (RECORD_NO, PARM_CD)"""
        if df.empty:
            return df

        duplicated = df.duplicated(subset=["RECORD_NO", "PARM_CD"], keep='first')
        if duplicated.any():
            logger.info(f"Collapsed {int(duplicated.sum())} duplicate record/parameter results")
        return df[~duplicated].reset_index(drop=True)
