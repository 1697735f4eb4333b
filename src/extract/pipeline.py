"""
NWIS Discrete-Sample Extraction

Entry point that pulls water-quality samples and results for a set of
stations from the environmental and QA partitions of an NWIS database and
returns the PlotTable (long) and DataTable (wide).

Pipeline:
1. Normalize station identifiers
2. Site lookup (SITEFILE_xx)              - fatal if both streams empty
3. Sample lookup (QW_SAMPLE_xx)
4. Date range and project code filters
5. Results, comments, qualifiers          - fatal if both streams empty
6. Parameter catalog (PARM)
7. Parameter selection                    - fatal if both streams empty
8. Local sample times
9. Pivot and compose output tables

One connection is opened per call and closed on every exit path.

Example:
    >>> from extract import extract_qw_data
    >>> qw = extract_qw_data(
    ...     source="NWISCO",
    ...     station_ids=["06733000", "09067005"],
    ...     env_db="01",
    ...     qa_db="02",
    ...     parameters="All",
    ...     by_group=True,
    ...     begin_date="2005-01-01",
    ...     end_date="2015-10-27",
    ... )
    >>> qw.plot_table.head()
"""

import logging
from typing import Iterable, List, Optional, Union

import pandas as pd

from common.config import ExtractionConfig, load_default_config
from common.errors import InvalidInputError
from ingest.assembler import assemble, coerce_result_values, fetch_result_tables
from ingest.batch import BatchQueryExecutor, qualified_table
from ingest.catalog import ParameterCatalogResolver, attach
from ingest.connector import NWISConnector
from normalize.schemas import (
    ExtractionResult,
    ResultValueMode,
    SAMPLE_META_COLUMNS,
    SITE_META_COLUMNS,
    StreamKind,
)
from normalize.time_normalizer import TimeNormalizer, to_naive_utc
from stations.identifiers import IdentifierNormalizer
from output.composer import Stream, TableComposer, concat_rows
from output.filters import DateLike, RecordFilter, parse_date

logger = logging.getLogger(__name__)


SITE_TABLE = "SITEFILE"
SAMPLE_TABLE = "QW_SAMPLE"


def suffix_record_numbers(df: pd.DataFrame, partition: str) -> pd.DataFrame:
    """Append '_<partition>' to RECORD_NO so records are unique across partitions"""
    if df.empty:
        return df
    df = df.copy()
    df["RECORD_NO"] = df["RECORD_NO"].astype(str).str.strip() + f"_{partition}"
    return df


def _strip_keys(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    if df.empty:
        return df
    df = df.copy()
    for column in columns:
        if column in df.columns:
            df[column] = df[column].where(df[column].isna(), df[column].astype(str).str.strip())
    return df


class SampleExtractor:
    """
    Runs the extraction stages for the environmental and QA partitions.

    All tables are passed explicitly between stages; nothing is kept
    between calls.
    """

    def __init__(
        self,
        executor: BatchQueryExecutor,
        normalizer: IdentifierNormalizer,
        config: ExtractionConfig,
        record_filter: Optional[RecordFilter] = None
    ):
        self.executor = executor
        self.normalizer = normalizer
        self.config = config
        self.record_filter = record_filter or RecordFilter(config)
        self.time_normalizer = TimeNormalizer(config.timezone_codes)
        self.catalog_resolver = ParameterCatalogResolver(executor)

    def fetch_sites(self, partition: str) -> pd.DataFrame:
        """SITEFILE rows of the requested stations"""
        sites = self.executor.fetch(SITE_TABLE, "SITE_NO", self.normalizer.site_keys(), partition)
        sites = self.normalizer.filter_to_stations(sites)
        return _strip_keys(sites, ["SITE_NO", "AGENCY_CD"])

    def fetch_samples(self, partition: str) -> pd.DataFrame:
        """QW_SAMPLE rows of the requested stations, sample times parsed as UTC"""
        samples = self.executor.fetch(SAMPLE_TABLE, "SITE_NO", self.normalizer.site_keys(), partition)
        samples = self.normalizer.filter_to_stations(samples)
        if samples.empty:
            return samples

        samples = _strip_keys(samples, ["RECORD_NO", "SITE_NO", "AGENCY_CD"])
        for column in ("SAMPLE_START_DT", "SAMPLE_END_DT"):
            if column in samples.columns:
                samples[column] = to_naive_utc(samples[column])
        return samples

    def fetch_results(
        self,
        samples: pd.DataFrame,
        partition: str,
        mode: ResultValueMode
    ) -> pd.DataFrame:
        """Assembled result rows for the given samples"""
        if samples.empty:
            return pd.DataFrame()

        tables = fetch_result_tables(self.executor, samples["RECORD_NO"].tolist(), partition)
        results = assemble(**tables)
        return coerce_result_values(results, mode)

    def build_sample_meta(
        self,
        samples: pd.DataFrame,
        sites: pd.DataFrame,
        partition: str
    ) -> pd.DataFrame:
        """
        Sample rows with station attributes, suffixed record numbers and
        local sample times, in SAMPLE_META_COLUMNS order.
        """
        if samples.empty:
            return pd.DataFrame(columns=SAMPLE_META_COLUMNS)

        site_attrs = sites.reindex(columns=SITE_META_COLUMNS).drop_duplicates(subset=["SITE_NO"], keep='first')
        site_attrs = site_attrs.assign(SITE_NO=site_attrs["SITE_NO"].astype(object))
        base = samples.drop(columns=[c for c in SITE_META_COLUMNS[1:] if c in samples.columns])
        meta = base.merge(site_attrs, on="SITE_NO", how='left', validate='many_to_one')

        meta = suffix_record_numbers(meta, partition)
        meta = self.time_normalizer.normalize_sample_times(meta)
        return meta.reindex(columns=SAMPLE_META_COLUMNS)

    def run(
        self,
        env_db: str,
        qa_db: str,
        parameters: Union[str, List[str]],
        by_group: bool,
        begin_date: DateLike,
        end_date: DateLike,
        project_codes: Optional[List[str]],
        mode: ResultValueMode
    ) -> ExtractionResult:
        """Run every stage for both partitions and compose the output tables"""
        rf = self.record_filter
        partitions = {StreamKind.ENVIRONMENTAL: env_db, StreamKind.QA: qa_db}

        # Site lookup
        sites = {kind: self.fetch_sites(db) for kind, db in partitions.items()}
        for kind, df in sites.items():
            rf.report_empty(df, kind.value, "site lookup")
        rf.check_joint_empty(sites[StreamKind.ENVIRONMENTAL], sites[StreamKind.QA], "site lookup")

        # Sample lookup and sample-level filters
        samples = {}
        for kind, db in partitions.items():
            df = self.fetch_samples(db)
            if rf.report_empty(df, kind.value, "sample lookup"):
                samples[kind] = df
                continue
            df = rf.filter_date_range(df, begin_date, end_date)
            if rf.report_empty(df, kind.value, "date range filter"):
                samples[kind] = df
                continue
            df = rf.filter_projects(df, project_codes)
            rf.report_empty(df, kind.value, "project code filter")
            samples[kind] = df

        # Results with comments and qualifiers
        results = {kind: self.fetch_results(samples[kind], db, mode) for kind, db in partitions.items()}
        for kind, df in results.items():
            if not samples[kind].empty:
                rf.report_empty(df, kind.value, "result join")
        rf.check_joint_empty(results[StreamKind.ENVIRONMENTAL], results[StreamKind.QA], "result join")

        # Parameter catalog, one lookup for both partitions
        codes = [
            code
            for df in results.values() if not df.empty and "PARM_CD" in df.columns
            for code in df["PARM_CD"]
        ]
        catalog = self.catalog_resolver.resolve(codes)

        for kind, db in partitions.items():
            if results[kind].empty:
                continue
            df = attach(results[kind], catalog)
            df = suffix_record_numbers(df, db)
            df = rf.filter_parameters(df, parameters, by_group)
            rf.report_empty(df, kind.value, "parameter selection")
            results[kind] = df
        rf.check_joint_empty(results[StreamKind.ENVIRONMENTAL], results[StreamKind.QA], "parameter selection")

        # Station attributes come from the partition's own sitefile first
        all_sites = concat_rows([sites[StreamKind.ENVIRONMENTAL], sites[StreamKind.QA]])
        streams = []
        for kind, db in partitions.items():
            if results[kind].empty:
                continue
            site_attrs = concat_rows([sites[kind], all_sites])
            meta = self.build_sample_meta(samples[kind], site_attrs, db)
            streams.append(Stream(kind=kind, partition=db, results=results[kind], sample_meta=meta))

        composer = TableComposer(self.config, rf)
        plot_table, data_table, parameter_columns = composer.compose(streams)

        return ExtractionResult(
            plot_table=plot_table,
            data_table=data_table,
            parameter_columns=parameter_columns,
            warnings=list(rf.messages),
        )


def _validate_parameters(parameters) -> None:
    if parameters is None:
        raise InvalidInputError("At least one parameter code or group must be given")
    if isinstance(parameters, str):
        parameters = [parameters]
    if not [p for p in parameters if str(p).strip()]:
        raise InvalidInputError("At least one parameter code or group must be given")


def extract_qw_data(
    source: Optional[str],
    station_ids: Union[str, Iterable[str]],
    env_db: str = "01",
    qa_db: str = "02",
    parameters: Union[str, List[str]] = "All",
    by_group: bool = True,
    begin_date: DateLike = None,
    end_date: DateLike = None,
    project_codes: Optional[List[str]] = None,
    result_as_text: bool = False,
    connector: Optional[NWISConnector] = None,
    config: Optional[ExtractionConfig] = None
) -> ExtractionResult:
    """
    Pull discrete water-quality data for a set of stations.

    Args:
        source: Data source (schema) identifier qualifying table names, e.g. 'NWISCO'
        station_ids: Site numbers, optionally agency prefixed ('USGS-06733000')
        env_db: Environmental partition number
        qa_db: QA partition number
        parameters: Parameter codes, or parameter groups when by_group; 'All' for everything
        by_group: Treat `parameters` as NWIS parameter groups (e.g. 'NUT', 'nutrients')
        begin_date: Inclusive begin date (YYYY-MM-DD), used only with end_date
        end_date: Inclusive end date (YYYY-MM-DD), used only with begin_date
        project_codes: Keep only samples with these project codes
        result_as_text: Keep RESULT_VA as literal text instead of numbers
        connector: Database connector; built from NWIS_DATABASE_URL when omitted
        config: Extraction configuration; defaults from config/extraction.yaml

    Returns:
        ExtractionResult with plot_table, data_table, parameter_columns and warnings

    Raises:
        InvalidInputError: Malformed stations, parameters, dates or partition ids
        BackendConnectionError: The database cannot be reached
        QueryError: A table query failed (e.g. wrong partition number)
        JointEmptyError: Both partitions empty at a fatal checkpoint
    """
    config = config or load_default_config()

    # Validate everything before touching the database
    normalizer = IdentifierNormalizer(station_ids, config.default_agency, config.site_width)
    _validate_parameters(parameters)
    begin, end = parse_date(begin_date, "begin date"), parse_date(end_date, "end date")
    if begin is not None and end is not None and begin > end:
        raise InvalidInputError(f"Begin date {begin.date()} is after end date {end.date()}")
    for db in (env_db, qa_db):
        qualified_table(source, SITE_TABLE, db)

    mode = ResultValueMode.TEXT if result_as_text else ResultValueMode.NUMERIC
    connector = connector or NWISConnector.from_env()

    logger.info(
        f"Extracting {len(normalizer.stations)} stations from '{source}' "
        f"(env={env_db}, qa={qa_db}, parameters={parameters}, by_group={by_group})"
    )

    with connector.connect(source) as conn:
        executor = BatchQueryExecutor(connector, conn, source, config.batch_size)
        extractor = SampleExtractor(executor, normalizer, config)
        result = extractor.run(
            env_db=env_db,
            qa_db=qa_db,
            parameters=parameters,
            by_group=by_group,
            begin_date=begin_date,
            end_date=end_date,
            project_codes=project_codes,
            mode=mode,
        )

    logger.info(
        f"Extraction complete: PlotTable {len(result.plot_table)} rows, "
        f"DataTable {len(result.data_table)} rows, {executor.queries_issued} queries"
    )
    return result
