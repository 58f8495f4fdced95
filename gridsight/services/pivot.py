"""
Pivot aggregation — pivot / crosstab summaries over a (filtered) table.

Row and column keys are the distinct display forms of the chosen fields; a
missing value is bucketed as "(Empty)". Cells aggregate the numeric form of
the value field (or a constant 1 per row when no value field is chosen) in a
single pandas groupby pass.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from gridsight.config import settings
from gridsight.errors import InvalidConfigError
from gridsight.services.table import Table
from gridsight.services.values import parse_number, round_half_up, to_text

logger = logging.getLogger(__name__)

EMPTY_KEY = "(Empty)"
TOTAL_KEY = "Total"

# aggFunc name -> pandas aggregation
AGG_FUNCTIONS: Dict[str, str] = {
    "sum": "sum",
    "avg": "mean",
    "count": "count",
    "min": "min",
    "max": "max",
    "countDistinct": "nunique",
}


@dataclass(frozen=True)
class PivotConfig:
    row_field: Optional[str]
    column_field: Optional[str] = None
    value_field: Optional[str] = None
    agg_func: str = "sum"

    def __post_init__(self):
        if self.agg_func not in AGG_FUNCTIONS:
            raise InvalidConfigError(
                f"Unknown aggregation function '{self.agg_func}'",
                field="agg_func",
                value=self.agg_func,
            )


def _empty_totals() -> dict:
    return {"row": {}, "column": {}, "grand": 0}


@dataclass
class PivotResult:
    rows: List[str] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    data: Dict[str, Dict[str, float]] = field(default_factory=dict)
    totals: dict = field(default_factory=_empty_totals)

    def to_dict(self) -> dict:
        return {
            "rows": self.rows,
            "columns": self.columns,
            "data": self.data,
            "totals": self.totals,
        }


def _pivot_key(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return EMPTY_KEY
    return to_text(value)


def create_pivot(table: Table, config: PivotConfig) -> PivotResult:
    """Build the pivot grid for *config*; an empty table or no row field gives an empty result."""
    if not config.row_field or table.is_empty:
        return PivotResult()

    digits = settings.PIVOT_DECIMALS
    records = []
    for row in table.rows:
        if config.value_field:
            value = parse_number(row.get(config.value_field))
        else:
            value = 1.0
        records.append(
            {
                "_row": _pivot_key(row.get(config.row_field)),
                "_col": _pivot_key(row.get(config.column_field)) if config.column_field else TOTAL_KEY,
                "_value": value,
            }
        )
    df = pd.DataFrame.from_records(records, columns=["_row", "_col", "_value"])

    row_keys = sorted(df["_row"].unique().tolist())
    col_keys = sorted(df["_col"].unique().tolist())

    values = df.dropna(subset=["_value"]).astype({"_value": float})
    cells = values.groupby(["_row", "_col"])["_value"].agg(AGG_FUNCTIONS[config.agg_func])
    cell_map = {key: float(val) for key, val in cells.items()}

    data: Dict[str, Dict[str, float]] = {}
    row_totals: Dict[str, float] = {}
    for r in row_keys:
        data[r] = {c: round_half_up(cell_map.get((r, c), 0.0), digits) for c in col_keys}
        row_totals[r] = round_half_up(sum(data[r].values()), digits)

    column_totals = {
        c: round_half_up(sum(data[r][c] for r in row_keys), digits) for c in col_keys
    }
    grand = round_half_up(sum(row_totals.values()), digits)

    logger.debug(
        "Pivot %s by %s/%s: %d x %d cells",
        config.agg_func, config.row_field, config.column_field, len(row_keys), len(col_keys),
    )
    return PivotResult(
        rows=row_keys,
        columns=col_keys,
        data=data,
        totals={"row": row_totals, "column": column_totals, "grand": grand},
    )


def pivot_to_rows(result: PivotResult, row_field: str) -> List[Dict[str, Any]]:
    """Flatten a pivot grid into export rows, closing with a 'Total' row."""
    if not result.rows:
        return []
    out = []
    for r in result.rows:
        line = {row_field: r}
        line.update(result.data[r])
        line[TOTAL_KEY] = result.totals["row"][r]
        out.append(line)
    footer = {row_field: TOTAL_KEY}
    footer.update(result.totals["column"])
    footer[TOTAL_KEY] = result.totals["grand"]
    out.append(footer)
    return out
