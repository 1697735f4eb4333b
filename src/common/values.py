"""
Missing Value Checks

NWIS columns mix None, NaN, NaT, pd.NA and space padded blanks for "no
value". Every stage asks the same question through is_missing.
"""

from typing import Iterable

import pandas as pd


def is_missing(value, tokens: Iterable[str] = ()) -> bool:
    """
    True for None, NaN, NaT, pd.NA, blank strings and the given tokens.

    Args:
        value: Any scalar
        tokens: Extra strings that count as missing once trimmed (e.g. 'NA')

    Examples:
        >>> is_missing("  ")
        True
        >>> is_missing("NA")
        False
        >>> is_missing("NA", tokens=("NA",))
        True
    """
    if value is None:
        return True
    try:
        if pd.isna(value):
            return True
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text == "" or text in tokens


def clean_text(value, tokens: Iterable[str] = ()):
    """Trimmed string, or None when the value is missing"""
    if is_missing(value, tokens):
        return None
    return str(value).strip()
