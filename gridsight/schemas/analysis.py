from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class PivotRequest(BaseModel):
    row_field: str
    column_field: Optional[str] = None
    value_field: Optional[str] = None
    agg_func: str = "sum"


class PivotResponse(BaseModel):
    rows: list[str]
    columns: list[str]
    data: dict[str, dict[str, float]]
    totals: dict[str, Any]      # {"row": {...}, "column": {...}, "grand": float}
    export_rows: list[dict[str, Any]]


class OutlierModel(BaseModel):
    count: int
    indices: list[int]
    bounds: Optional[dict[str, float]] = None


class ColumnQualityModel(BaseModel):
    missing: dict[str, float]   # {count, percent}
    duplicates: dict[str, int]  # {count}
    outliers: OutlierModel
    score: int


class QualityResponse(BaseModel):
    overall: int
    label: str
    row_duplicates: int
    total_rows: int
    columns: dict[str, ColumnQualityModel]


class ColumnStatsResponse(BaseModel):
    column: str
    count: int
    sum: float
    min: float
    max: float
    avg: float
    median: float
    mode: Optional[float] = None
    std_dev: Optional[float] = None
    distribution: list[int]
