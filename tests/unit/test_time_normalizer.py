"""
Unit Tests for Time Normalization

Tests verify:
1. UTC to local conversion with daylight saving observed and not observed
2. Rows without timezone metadata pass through
3. Start and end times use their own metadata
"""

import pytest
import pandas as pd
from pathlib import Path
import sys

# Add src to path
src_path = Path(__file__).parent.parent.parent / 'src'
sys.path.insert(0, str(src_path))

from normalize.time_normalizer import TimeNormalizer, to_naive_utc


@pytest.fixture
def normalizer():
    return TimeNormalizer()


# Test Cases: Single Values

def test_summer_time_with_dst(normalizer):
    """MST7MDT in June with DST observed is UTC-6"""
    local = normalizer.to_local(pd.Timestamp("2020-06-15 18:00"), "MST7MDT", "Y")

    assert local == pd.Timestamp("2020-06-15 12:00")


def test_summer_time_without_dst(normalizer):
    """Same instant, DST not observed, is UTC-7"""
    local = normalizer.to_local(pd.Timestamp("2020-06-15 18:00"), "MST7MDT", "N")

    assert local == pd.Timestamp("2020-06-15 11:00")


def test_nwis_code_resolves(normalizer):
    """NWIS codes like MST map to the regional zone"""
    local = normalizer.to_local(pd.Timestamp("2020-01-10 17:00"), "MST", "Y")

    assert local == pd.Timestamp("2020-01-10 10:00")


def test_result_is_naive(normalizer):
    local = normalizer.to_local(pd.Timestamp("2020-06-15 18:00"), "EST", "Y")

    assert local.tzinfo is None
    assert local == pd.Timestamp("2020-06-15 14:00")


@pytest.mark.parametrize("tz_code", [None, "", "   "])
def test_missing_timezone_passes_through(normalizer, tz_code):
    utc = pd.Timestamp("2020-06-15 18:00")

    assert normalizer.to_local(utc, tz_code, "Y") == utc


def test_unknown_timezone_passes_through(normalizer):
    utc = pd.Timestamp("2020-06-15 18:00")

    assert normalizer.to_local(utc, "NOT_A_ZONE", "Y") == utc
    assert normalizer.resolve_zone("NOT_A_ZONE") is None


def test_missing_timestamp_passes_through(normalizer):
    assert pd.isna(normalizer.to_local(pd.NaT, "MST", "Y"))


@pytest.mark.parametrize("flag,expected", [
    ("Y", True), ("y", True), (" Y ", True), (True, True),
    ("N", False), (None, False), ("", False), (False, False),
])
def test_observes_dst(flag, expected):
    assert TimeNormalizer.observes_dst(flag) is expected


# Test Cases: Frames

def test_start_and_end_use_own_metadata(normalizer):
    """End time converted with end timezone, not the start timezone"""
    samples = pd.DataFrame({
        "SAMPLE_START_DT": [pd.Timestamp("2020-06-15 18:00")],
        "SAMPLE_START_TZ_CD": ["MST"],
        "SAMPLE_START_LOCAL_TM_FG": ["Y"],
        "SAMPLE_END_DT": [pd.Timestamp("2020-06-15 18:00")],
        "SAMPLE_END_TZ_CD": ["EST"],
        "SAMPLE_END_LOCAL_TM_FG": ["N"],
    })

    converted = normalizer.normalize_sample_times(samples)

    assert converted["SAMPLE_START_DT"].iloc[0] == pd.Timestamp("2020-06-15 12:00")
    assert converted["SAMPLE_END_DT"].iloc[0] == pd.Timestamp("2020-06-15 13:00")


def test_per_row_metadata(normalizer):
    samples = pd.DataFrame({
        "SAMPLE_START_DT": pd.to_datetime(["2020-06-15 18:00", "2020-06-15 18:00", None]),
        "SAMPLE_START_TZ_CD": ["PST", None, "PST"],
        "SAMPLE_START_LOCAL_TM_FG": ["Y", "Y", "Y"],
    })

    converted = normalizer.normalize_sample_times(samples)

    assert converted["SAMPLE_START_DT"].iloc[0] == pd.Timestamp("2020-06-15 11:00")
    assert converted["SAMPLE_START_DT"].iloc[1] == pd.Timestamp("2020-06-15 18:00")
    assert pd.isna(converted["SAMPLE_START_DT"].iloc[2])


def test_timezone_aware_column(normalizer):
    """Aware UTC values convert like naive ones and come back naive"""
    samples = pd.DataFrame({
        "SAMPLE_START_DT": pd.to_datetime(["2020-06-15 18:00", "2020-06-15 18:00"]).tz_localize("UTC"),
        "SAMPLE_START_TZ_CD": ["MST", None],
        "SAMPLE_START_LOCAL_TM_FG": ["Y", "Y"],
    })

    converted = normalizer.normalize_sample_times(samples)

    assert converted["SAMPLE_START_DT"].dt.tz is None
    assert converted["SAMPLE_START_DT"].tolist() == [
        pd.Timestamp("2020-06-15 12:00"),
        pd.Timestamp("2020-06-15 18:00"),
    ]


def test_to_naive_utc():
    values = pd.Series(["2020-06-15 18:00", None])
    aware = pd.Series(pd.to_datetime(["2020-06-15 12:00"]).tz_localize("America/Denver"))

    assert to_naive_utc(values).tolist()[0] == pd.Timestamp("2020-06-15 18:00")
    assert pd.isna(to_naive_utc(values).iloc[1])
    assert to_naive_utc(aware).iloc[0] == pd.Timestamp("2020-06-15 18:00")


def test_missing_timezone_column_leaves_utc(normalizer):
    samples = pd.DataFrame({"SAMPLE_START_DT": ["2020-06-15 18:00"]})

    converted = normalizer.normalize_sample_times(samples)

    assert converted["SAMPLE_START_DT"].iloc[0] == pd.Timestamp("2020-06-15 18:00")


def test_empty_frame(normalizer):
    assert normalizer.normalize_sample_times(pd.DataFrame()).empty
