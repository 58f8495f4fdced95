"""Column statistics, number-column sums and unique-value lists, memoized on the table snapshot."""

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np

from gridsight.services.table import Table
from gridsight.services.type_inference import NUMBER
from gridsight.services.values import is_blank, parse_number, round_half_up, to_text

logger = logging.getLogger(__name__)

DISTRIBUTION_BUCKETS = 10


def _mode(values: List[float]) -> Optional[float]:
    """Most frequent value (first to reach the top count); None when every value is unique."""
    frequency: Dict[float, int] = {}
    best, best_count = None, 0
    for v in values:
        frequency[v] = frequency.get(v, 0) + 1
        if frequency[v] > best_count:
            best, best_count = v, frequency[v]
    return best if best_count > 1 else None


def _distribution(values: List[float], low: float, high: float) -> List[int]:
    bucket_size = (high - low) / DISTRIBUTION_BUCKETS or 1
    buckets = [0] * DISTRIBUTION_BUCKETS
    for v in values:
        idx = min(math.floor((v - low) / bucket_size), DISTRIBUTION_BUCKETS - 1)
        buckets[idx] += 1
    return buckets


def _compute_stats(table: Table, column: str) -> Optional[Dict[str, Any]]:
    values = [
        n for n in (parse_number(row.get(column)) for row in table.rows if not is_blank(row.get(column)))
        if n is not None
    ]
    if not values:
        return None

    arr = np.array(values, dtype=float)
    low, high = float(arr.min()), float(arr.max())
    mode = _mode(values)
    std_dev = float(arr.std()) if len(values) >= 2 else None

    logger.debug("Computed statistics for column '%s' of %r", column, table.name)
    return {
        "count": len(values),
        "sum": round_half_up(float(arr.sum()), 2),
        "min": round_half_up(low, 2),
        "max": round_half_up(high, 2),
        "avg": round_half_up(float(arr.mean()), 2),
        "median": round_half_up(float(np.median(arr)), 2),
        "mode": round_half_up(mode, 2) if mode is not None else None,
        "std_dev": round_half_up(std_dev, 2) if std_dev is not None else None,
        "distribution": _distribution(values, low, high),
    }


def calculate_column_stats(table: Table, column: str) -> Optional[Dict[str, Any]]:
    """
    Summary statistics over the numeric cells of *column*.

    Returns None when the column has no numeric values. ``std_dev`` is the
    population standard deviation. ``distribution`` counts values into 10
    equal-width buckets between min and max.
    """
    return table.memoize(("column_stats", column), lambda: _compute_stats(table, column))


def unique_values(table: Table, column: str, limit: Optional[int] = None) -> List[str]:
    """Sorted distinct display forms of the non-blank cells of *column*."""
    values = table.memoize(
        ("unique_values", column),
        lambda: sorted({to_text(row.get(column)) for row in table.rows if not is_blank(row.get(column))}),
    )
    return list(values if limit is None else values[:limit])


def column_sums(table: Table) -> Dict[str, float]:
    """Totals of every number-typed column; cells that do not parse count as 0."""
    def compute():
        types = table.types
        sums = {}
        for col in table.columns:
            if types.get(col) != NUMBER:
                continue
            total = sum(parse_number(row.get(col)) or 0.0 for row in table.rows)
            sums[col] = round_half_up(total, 2)
        return sums

    return dict(table.memoize(("column_sums",), compute))
