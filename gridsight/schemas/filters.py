from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class FilterTreeRequest(BaseModel):
    tree: dict[str, Any]   # {"id", "type": "group", "logic", "children": [...]}
    case_sensitive: Optional[bool] = None


class AddConditionRequest(BaseModel):
    parent_id: Optional[str] = None
    field: str = ""
    operator: str = "is"
    value: Any = ""


class AddGroupRequest(BaseModel):
    parent_id: Optional[str] = None
    logic: Literal["AND", "OR"] = "AND"


class UpdateNodeRequest(BaseModel):
    field: Optional[str] = None
    operator: Optional[str] = None
    value: Any = None
    logic: Optional[Literal["AND", "OR"]] = None


class CaseSensitivityRequest(BaseModel):
    case_sensitive: bool


class NodeCreatedResponse(BaseModel):
    id: str
    filter_tree: dict[str, Any]
