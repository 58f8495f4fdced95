from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class SmartTypeModel(BaseModel):
    kind: str
    valid_count: int
    invalid_count: int
    valid_percent: int


class TableSummary(BaseModel):
    name: str
    row_count: int
    columns: list[str]
    types: dict[str, str]
    smart_types: dict[str, SmartTypeModel]


class LoadTableRequest(BaseModel):
    name: str = Field(min_length=1)
    rows: list[dict[str, Any]]


class JoinSpecModel(BaseModel):
    left_table: str
    left_column: str
    right_table: str
    right_column: str
    join_type: Literal["inner", "left", "right", "full"] = "inner"


class SetJoinsRequest(BaseModel):
    joins: list[JoinSpecModel]


class SetAliasRequest(BaseModel):
    alias: str = ""   # blank -> default short alias


class WorkspaceResponse(BaseModel):
    id: str
    tables: list[TableSummary]
    active_table: Optional[str]
    aliases: dict[str, str]
    joins: list[JoinSpecModel]
    case_sensitive: bool
    filter_tree: dict[str, Any]


class ViewResponse(BaseModel):
    name: Optional[str]
    row_count: int              # rows after filter and search, before paging
    columns: list[str]
    types: dict[str, str]
    rows: list[dict[str, Any]]
    column_sums: dict[str, float] = {}


class FilterColumn(BaseModel):
    table: str
    column: str
    name: str
    type: str


class UniqueValuesResponse(BaseModel):
    column: str
    values: list[str]
