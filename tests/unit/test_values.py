"""
Unit Tests for Missing Value Checks
"""

import pytest
import numpy as np
import pandas as pd
from pathlib import Path
import sys

# Add src to path
src_path = Path(__file__).parent.parent.parent / 'src'
sys.path.insert(0, str(src_path))

from common.values import clean_text, is_missing


@pytest.mark.parametrize("value", [None, np.nan, float("nan"), pd.NA, pd.NaT, "", "   "])
def test_missing_values(value):
    assert is_missing(value)


@pytest.mark.parametrize("value", ["0", 0, 0.0, "NA", "Y", False, pd.Timestamp("2020-01-01")])
def test_present_values(value):
    assert not is_missing(value)


def test_extra_tokens():
    assert is_missing(" NA ", tokens=("NA",))
    assert not is_missing("NAN", tokens=("NA",))


def test_clean_text():
    assert clean_text("  PHY ") == "PHY"
    assert clean_text(np.nan) is None
    assert clean_text("NA", tokens=("NA",)) is None
    assert clean_text(12) == "12"
