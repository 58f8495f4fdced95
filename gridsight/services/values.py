"""Scalar helpers shared by every engine stage: blank checks, coercion, rounding."""

from __future__ import annotations

import math
import re
import warnings
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

# digits separated by '/' or '-', e.g. 2024-01-15, 1/15/2024, 15-01-24
DATE_SHAPE_RE = re.compile(r"\d{1,4}[/-]\d{1,2}[/-]\d{1,4}")


def is_blank(value: Any) -> bool:
    """None, NaN, empty or whitespace-only string."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def to_text(value: Any) -> str:
    """String form of a cell as it would be displayed (None -> '', 10.0 -> '10')."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def parse_number(value: Any) -> Optional[float]:
    """Return the value as a finite float, or None when it is blank or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    text = str(value).strip()
    # float() also reads non-ASCII digits and underscores
    if text == "" or "_" in text or not text.isascii():
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a date-like value into a naive ``pd.Timestamp``.

    Only strings carrying a date shape (three digit groups separated by
    '/' or '-') are attempted; anything else, and anything pandas cannot
    turn into a real calendar date (2024-02-30), returns None.
    """
    if is_blank(value):
        return None
    if isinstance(value, (datetime, date)):
        parsed = pd.Timestamp(value)
    else:
        text = to_text(value).strip()
        if not DATE_SHAPE_RE.search(text):
            return None
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            try:
                parsed = pd.to_datetime(text, errors="coerce")
            except (ValueError, OverflowError, TypeError):
                return None
    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed


def round_half_up(value: float, digits: int = 0):
    """
    Round halves toward positive infinity (2.5 -> 3, -2.5 -> -2), the rounding the
    front end displays. ``digits=0`` returns an int.
    """
    if value is None or not math.isfinite(value):
        return value
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5) / factor
    if digits == 0:
        return int(rounded)
    return rounded
