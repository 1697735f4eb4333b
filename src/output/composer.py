"""
Output Table Composition

Merges the environmental and QA streams into the two output tables:

- PlotTable: every qualifying result row joined to its sample metadata,
  fixed column order, water-year month and day-of-year columns, limited
  to water and water-quality media
- DataTable: one row per sample, one column per parameter

Streams are unioned row-wise. Record numbers are already globally unique
(partition suffixed) by the time they get here.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pandas as pd

from common.config import ExtractionConfig
from normalize.schemas import (
    LEADING_META_COUNT,
    PLOT_TABLE_COLUMNS,
    SAMPLE_META_COLUMNS,
    WATER_YEAR_MONTHS,
    StreamKind,
)
from output.filters import RecordFilter
from output.pivot import build_column_names, pivot

logger = logging.getLogger(__name__)


@dataclass
class Stream:
    """
    Reconciled tables of one partition.

    Attributes:
        kind: Environmental or QA
        partition: Partition number (e.g. '01')
        results: Assembled result rows with catalog metadata
        sample_meta: Sample rows joined with site attributes, local times
    """
    kind: StreamKind
    partition: str
    results: pd.DataFrame
    sample_meta: pd.DataFrame

    @property
    def empty(self) -> bool:
        return self.results.empty


def concat_rows(frames: List[pd.DataFrame]) -> pd.DataFrame:
    """Row-wise union of the non-empty frames"""
    frames = [f for f in frames if not f.empty]
    if not frames:
        return pd.DataFrame()
    if len(frames) == 1:
        return frames[0].reset_index(drop=True)
    return pd.concat(frames, ignore_index=True, sort=False)


def _strip_text(series: pd.Series) -> pd.Series:
    return series.where(series.isna(), series.astype(str).str.strip())


class TableComposer:
    """Builds PlotTable and DataTable from the surviving streams"""

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        record_filter: Optional[RecordFilter] = None
    ):
        self.config = config or ExtractionConfig()
        self.record_filter = record_filter or RecordFilter(self.config)

    def normalize_remarks(self, remarks: pd.Series) -> pd.Series:
        """Remark codes outside the known list (including missing) become 'Sample'"""
        stripped = remarks.astype(str).str.strip()
        known = stripped.isin(self.config.remark_codes) & remarks.notna()
        return stripped.where(known, "Sample")

    def _stream_plot_rows(self, stream: Stream) -> pd.DataFrame:
        meta = stream.sample_meta.drop_duplicates(subset=["RECORD_NO"], keep='first')
        extra = [c for c in meta.columns if c not in stream.results.columns or c == "RECORD_NO"]
        return stream.results.merge(meta[extra], on="RECORD_NO", how='left', validate='many_to_one')

    def compose_plot_table(self, streams: List[Stream]) -> pd.DataFrame:
        """
        Long table of every qualifying result.

        Returns:
            DataFrame with PLOT_TABLE_COLUMNS, in that order
        """
        plot = concat_rows([self._stream_plot_rows(s) for s in streams if not s.empty])
        if plot.empty:
            return pd.DataFrame(columns=PLOT_TABLE_COLUMNS)

        if "REMARK_CD" in plot.columns:
            plot["REMARK_CD"] = self.normalize_remarks(plot["REMARK_CD"])
        else:
            plot["REMARK_CD"] = "Sample"

        if "PARM_SEQ_NU" in plot.columns:
            plot["PARM_SEQ_NU"] = pd.to_numeric(
                plot["PARM_SEQ_NU"].astype(str).str.replace(" ", "", regex=False), errors='coerce'
            )
        for column in ("RECORD_NO", "RPT_LEV_VA"):
            if column in plot.columns:
                plot[column] = plot[column].where(plot[column].isna(), plot[column].astype(str))
        if "SITE_NO" in plot.columns:
            plot["SITE_NO"] = _strip_text(plot["SITE_NO"])

        medium = plot["MEDIUM_CD"].astype(str).str.strip() if "MEDIUM_CD" in plot.columns else pd.Series("", index=plot.index)
        plot = plot[medium.isin(self.config.medium_codes)].reset_index(drop=True)
        self.record_filter.report_empty(plot, "PlotTable", "medium filter")

        start = pd.to_datetime(plot["SAMPLE_START_DT"], errors='coerce')
        plot["SAMPLE_MONTH"] = pd.Categorical(
            start.dt.strftime("%b"), categories=WATER_YEAR_MONTHS, ordered=True
        )
        plot["DOY"] = start.dt.dayofyear

        plot = plot.reindex(columns=PLOT_TABLE_COLUMNS)
        if not plot.empty:
            plot = self.record_filter.exclude_review_status(plot)
            self.record_filter.report_empty(plot, "PlotTable", "review status exclusion")

        logger.info(f"PlotTable: {len(plot)} rows")
        return plot

    def compose_data_table(self, streams: List[Stream]) -> Tuple[pd.DataFrame, Dict[str, str]]:
        """
        Wide table, one row per sample.

        Parameter column names are computed once over all streams so the
        same code always lands in the same column.

        Returns:
            (DataTable, PARM_CD -> column name)
        """
        accepted = []
        for s in streams:
            if s.empty:
                continue
            results = self.record_filter.exclude_review_status(s.results)
            self.record_filter.report_empty(results, s.kind.value, "review status exclusion")
            accepted.append((s, results))
        column_names = build_column_names(concat_rows([results for _, results in accepted]))

        data = concat_rows([pivot(results, s.sample_meta, column_names) for s, results in accepted])
        if data.empty:
            return pd.DataFrame(columns=SAMPLE_META_COLUMNS), column_names

        data["SITE_NO"] = _strip_text(data["SITE_NO"])

        # Parameters missing from one stream are null in its rows
        ordered = (
            SAMPLE_META_COLUMNS[:LEADING_META_COUNT + 1]
            + [name for name in column_names.values() if name in data.columns]
            + SAMPLE_META_COLUMNS[LEADING_META_COUNT + 1:]
        )
        data = data[ordered]

        logger.info(f"DataTable: {len(data)} rows x {len(column_names)} parameters")
        return data, column_names

    def compose(self, streams: List[Stream]) -> Tuple[pd.DataFrame, pd.DataFrame, Dict[str, str]]:
        """
        Build both output tables.

        Returns:
            (PlotTable, DataTable, PARM_CD -> DataTable column name)
        """
        plot_table = self.compose_plot_table(streams)
        data_table, column_names = self.compose_data_table(streams)
        return plot_table, data_table, column_names
