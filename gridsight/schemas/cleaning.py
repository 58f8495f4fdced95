from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class CleanColumnRequest(BaseModel):
    column: str
    operation: str
    table: Optional[str] = None   # defaults to the active table


class CleaningChange(BaseModel):
    row_index: int
    before: Any
    after: Any


class CleaningPreviewResponse(BaseModel):
    column: str
    operation: str
    changes: list[CleaningChange]


class FillEmptyRequest(BaseModel):
    column: str
    fill_value: Any
    table: Optional[str] = None


class RemoveDuplicatesRequest(BaseModel):
    table: Optional[str] = None


class RemoveDuplicatesResponse(BaseModel):
    table: str
    duplicates_removed: int
    row_count: int


class AnonymizeRequest(BaseModel):
    # column -> mask | redact | hash | remove; omitted -> suggested methods
    methods: Optional[dict[str, Literal["mask", "redact", "hash", "remove"]]] = None
    limit: Optional[int] = None


class AnonymizeResponse(BaseModel):
    methods: dict[str, str]
    columns: list[str]
    rows: list[dict[str, Any]]
