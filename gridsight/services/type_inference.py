"""
Type inference — basic column types and semantic "smart types".

Basic types (string / number / date) drive which filter operators a column
offers. Smart types (email, phone, url, currency, date, percentage, zipcode)
are a semantic layer on top, used for validation badges and to suggest
anonymization.

Detection priority:
1. Basic type: number is checked before date; the first non-string type
   found in the first sampled rows wins for the whole column.
2. Smart type: value patterns are tried in registry order and the first
   match wins; a column's dominant kind must cover at least half of its
   non-blank values.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from gridsight.config import settings
from gridsight.services.values import is_blank, parse_date, parse_number, round_half_up

STRING = "string"
NUMBER = "number"
DATE = "date"
BASIC_TYPES = (STRING, NUMBER, DATE)

NO_SMART_TYPE = "none"

# Smart-type registry: kind -> pattern config. Order is precedence.
SMART_TYPE_PATTERNS: Dict[str, Dict[str, Any]] = {
    "email": {
        "pattern": r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$",
    },
    "phone": {
        "pattern": r"^[+]?[(]?[0-9]{1,3}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,4}[-\s.]?[0-9]{1,9}$",
    },
    "url": {
        "pattern": r"^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})[/\w .-]*/?$",
        "case_insensitive": True,
    },
    "currency": {
        "pattern": r"^[$€£¥₹]?\s?-?\d{1,3}(,\d{3})*(\.\d{1,2})?$|^-?\d+(\.\d{1,2})?\s?[$€£¥₹]?$",
    },
    "date": {
        # YYYY-MM-DD, MM/DD/YYYY, DD-MM-YYYY with optional HH:MM[:SS] [AM|PM]
        "pattern": r"^(\d{4}[-/]\d{1,2}[-/]\d{1,2}|\d{1,2}[-/]\d{1,2}[-/]\d{2,4})(\s+\d{1,2}:\d{2}(:\d{2})?\s*(AM|PM|am|pm)?)?$",
    },
    "percentage": {
        "pattern": r"^-?\d+(\.\d+)?%$",
    },
    "zipcode": {
        "pattern": r"^\d{5}(-\d{4})?$|^[A-Z]{1,2}\d[A-Z\d]?\s?\d[A-Z]{2}$",
        "case_insensitive": True,
    },
}

SMART_TYPE_KINDS = tuple(SMART_TYPE_PATTERNS) + (NO_SMART_TYPE,)


def _compile_patterns() -> Dict[str, "re.Pattern[str]"]:
    compiled = {}
    for kind, config in SMART_TYPE_PATTERNS.items():
        flags = re.ASCII
        if config.get("case_insensitive", False):
            flags |= re.IGNORECASE
        compiled[kind] = re.compile(config["pattern"], flags)
    return compiled


_SMART_TYPE_REGEXES = _compile_patterns()


@dataclass(frozen=True)
class SmartTypeInfo:
    """Dominant semantic type of a column plus validation counts."""
    kind: str = NO_SMART_TYPE
    valid_count: int = 0
    invalid_count: int = 0
    valid_percent: int = 0

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "valid_percent": self.valid_percent,
        }


def _columns_of(rows: List[Mapping[str, Any]]) -> List[str]:
    return list(rows[0].keys()) if rows else []


# ─────────────────────────────────────────────────────────────────────────────
# Basic types
# ─────────────────────────────────────────────────────────────────────────────

def detect_type(value: Any) -> str:
    """Classify a single cell as 'string', 'number' or 'date'."""
    if is_blank(value):
        return STRING
    if parse_number(value) is not None:
        return NUMBER
    if parse_date(value) is not None:
        return DATE
    return STRING


def detect_column_types(rows: Iterable[Mapping[str, Any]], sample_size: int = None) -> Dict[str, str]:
    """
    Infer one basic type per column from the first ``sample_size`` rows.

    The first non-string type seen among non-blank sampled values is taken
    for the whole column. A column whose sampled rows are all text but whose
    later rows are numeric stays 'string' for the lifetime of the table.
    """
    rows = list(rows)
    if not rows:
        return {}
    if sample_size is None:
        sample_size = settings.TYPE_SAMPLE_ROWS
    sample = rows[:sample_size]

    types: Dict[str, str] = {}
    for col in _columns_of(rows):
        col_type = STRING
        for row in sample:
            value = row.get(col)
            if is_blank(value):
                continue
            col_type = detect_type(value)
            if col_type != STRING:
                break
        types[col] = col_type
    return types


# ─────────────────────────────────────────────────────────────────────────────
# Smart types
# ─────────────────────────────────────────────────────────────────────────────

def detect_smart_type(value: Any) -> str:
    """Return the first smart-type kind whose pattern matches the trimmed value, else 'none'."""
    if is_blank(value):
        return NO_SMART_TYPE
    text = str(value).strip()
    for kind, regex in _SMART_TYPE_REGEXES.items():
        if regex.match(text):
            return kind
    return NO_SMART_TYPE


def detect_smart_column_types(
    rows: Iterable[Mapping[str, Any]],
    threshold: float = None,
) -> Dict[str, SmartTypeInfo]:
    """
    Find the dominant smart type of each column.

    A kind is dominant when it has the highest match count (first seen wins
    a tie) and matches at least ``threshold`` of the non-blank values.
    """
    rows = list(rows)
    if not rows:
        return {}
    if threshold is None:
        threshold = settings.SMART_TYPE_THRESHOLD

    result: Dict[str, SmartTypeInfo] = {}
    for col in _columns_of(rows):
        non_blank = [row.get(col) for row in rows if not is_blank(row.get(col))]
        if not non_blank:
            result[col] = SmartTypeInfo()
            continue

        type_counts: Dict[str, int] = {}
        for value in non_blank:
            kind = detect_smart_type(value)
            if kind != NO_SMART_TYPE:
                type_counts[kind] = type_counts.get(kind, 0) + 1

        total = len(non_blank)
        dominant = None
        max_count = 0
        for kind, count in type_counts.items():
            if count > max_count and count >= total * threshold:
                max_count = count
                dominant = kind

        if dominant is None:
            result[col] = SmartTypeInfo()
            continue

        valid = type_counts[dominant]
        result[col] = SmartTypeInfo(
            kind=dominant,
            valid_count=valid,
            invalid_count=total - valid,
            valid_percent=round_half_up(valid / total * 100),
        )
    return result
