"""Data quality report — per-column missing / duplicate / outlier checks and a 0-100 score."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from gridsight.config import settings
from gridsight.services.table import Table, duplicate_indices
from gridsight.services.type_inference import NUMBER
from gridsight.services.values import is_blank, parse_number, round_half_up, to_text

logger = logging.getLogger(__name__)


@dataclass
class OutlierInfo:
    count: int = 0
    indices: List[int] = field(default_factory=list)
    bounds: Optional[Dict[str, float]] = None   # {lower, upper}

    def to_dict(self) -> dict:
        return {"count": self.count, "indices": self.indices, "bounds": self.bounds}


@dataclass
class ColumnQuality:
    missing_count: int
    missing_percent: float
    duplicate_count: int
    outliers: OutlierInfo
    score: int

    def to_dict(self) -> dict:
        return {
            "missing": {"count": self.missing_count, "percent": self.missing_percent},
            "duplicates": {"count": self.duplicate_count},
            "outliers": self.outliers.to_dict(),
            "score": self.score,
        }


@dataclass
class QualityReport:
    overall: int = 0
    row_duplicates: int = 0
    total_rows: int = 0
    columns: Dict[str, ColumnQuality] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return quality_label(self.overall)

    def to_dict(self) -> dict:
        return {
            "overall": self.overall,
            "label": self.label,
            "row_duplicates": self.row_duplicates,
            "total_rows": self.total_rows,
            "columns": {col: q.to_dict() for col, q in self.columns.items()},
        }


def quality_label(score: float) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 80:
        return "Good"
    if score >= 60:
        return "Fair"
    return "Poor"


def find_duplicates(rows: Sequence[Mapping[str, Any]], columns: Optional[Sequence[str]] = None) -> List[int]:
    """Indices of rows repeating an earlier row over *columns* (default: the first row's keys)."""
    rows = list(rows)
    if not rows:
        return []
    if columns is None:
        columns = list(rows[0].keys())
    return duplicate_indices(rows, columns)


def find_outliers(rows: Sequence[Mapping[str, Any]], column: str) -> OutlierInfo:
    """
    Flag values of *column* outside ``[Q1 - k·IQR, Q3 + k·IQR]``.

    Quartiles are taken by position in the sorted numeric values
    (``v[floor(0.25n)]``, ``v[floor(0.75n)]``). Fewer than
    OUTLIER_MIN_VALUES numeric values report nothing.
    """
    values = []
    for idx, row in enumerate(rows):
        number = parse_number(row.get(column))
        if number is not None:
            values.append((idx, number))

    if len(values) < settings.OUTLIER_MIN_VALUES:
        return OutlierInfo()

    ordered = sorted(v for _, v in values)
    n = len(ordered)
    q1 = ordered[math.floor(n * 0.25)]
    q3 = ordered[math.floor(n * 0.75)]
    iqr = q3 - q1
    lower = q1 - settings.IQR_MULTIPLIER * iqr
    upper = q3 + settings.IQR_MULTIPLIER * iqr

    indices = [idx for idx, v in values if v < lower or v > upper]
    return OutlierInfo(
        count=len(indices),
        indices=indices,
        bounds={"lower": round_half_up(lower, 2), "upper": round_half_up(upper, 2)},
    )


def analyze_quality(table: Table, types: Optional[Mapping[str, str]] = None) -> QualityReport:
    """Score every column of *table*; the overall score is the mean of the column scores."""
    if table.is_empty:
        return QualityReport()

    if types is None:
        types = table.types
    rows = table.rows
    total = len(rows)

    columns: Dict[str, ColumnQuality] = {}
    raw_scores = []
    for col in table.columns:
        cells = [row.get(col) for row in rows]
        missing = sum(1 for v in cells if is_blank(v))
        distinct = {to_text(v) for v in cells if not is_blank(v)}
        missing_pct = missing / total * 100

        outliers = find_outliers(rows, col) if types.get(col) == NUMBER else OutlierInfo()
        score = max(0.0, 100 - missing_pct - (outliers.count / total) * 50)
        raw_scores.append(score)

        columns[col] = ColumnQuality(
            missing_count=missing,
            missing_percent=round_half_up(missing_pct, 1),
            duplicate_count=max(0, total - missing - len(distinct)),
            outliers=outliers,
            score=round_half_up(score),
        )

    overall = round_half_up(sum(raw_scores) / len(raw_scores)) if raw_scores else 0
    report = QualityReport(
        overall=overall,
        row_duplicates=len(find_duplicates(rows, table.columns)),
        total_rows=total,
        columns=columns,
    )
    logger.debug("Quality of %r: overall=%d over %d columns", table.name, overall, len(columns))
    return report
