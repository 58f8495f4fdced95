"""
Filter tree — nested AND/OR groups of conditions.

Nodes are frozen dataclasses and every edit copies the path from the root
down to the touched node, returning a new root. Untouched subtrees are shared
between the old and the new tree.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from gridsight.errors import FilterConfigError

LOGIC_AND = "AND"
LOGIC_OR = "OR"
LOGICS = (LOGIC_AND, LOGIC_OR)


def _new_id() -> str:
    return uuid.uuid4().hex[:10]


@dataclass(frozen=True)
class FilterCondition:
    id: str
    field: str = ""
    operator: str = "is"
    value: Any = ""


@dataclass(frozen=True)
class FilterGroup:
    id: str
    logic: str = LOGIC_AND
    children: Tuple["FilterNode", ...] = ()


FilterNode = Union[FilterGroup, FilterCondition]


# ─────────────────────────────────────────────────────────────────────────────
# Constructors
# ─────────────────────────────────────────────────────────────────────────────

def new_root() -> FilterGroup:
    """Empty AND group; matches every row."""
    return FilterGroup(id=_new_id())


def new_condition(field: str = "", operator: str = "is", value: Any = "") -> FilterCondition:
    return FilterCondition(id=_new_id(), field=field, operator=operator, value=value)


def new_group(logic: str = LOGIC_AND) -> FilterGroup:
    if logic not in LOGICS:
        raise FilterConfigError(f"Unknown group logic '{logic}'", field="logic", value=logic)
    return FilterGroup(id=_new_id(), logic=logic)


# ─────────────────────────────────────────────────────────────────────────────
# Path-copying edits
# ─────────────────────────────────────────────────────────────────────────────

def find_node(root: FilterNode, node_id: str) -> Optional[FilterNode]:
    if root.id == node_id:
        return root
    if isinstance(root, FilterGroup):
        for child in root.children:
            found = find_node(child, node_id)
            if found is not None:
                return found
    return None


def insert_node(root: FilterNode, parent_id: str, node: FilterNode) -> FilterNode:
    """Append *node* under the group *parent_id*. Unknown ids leave the tree unchanged."""
    if not isinstance(root, FilterGroup):
        return root
    if root.id == parent_id:
        return dataclasses.replace(root, children=root.children + (node,))
    children = tuple(insert_node(child, parent_id, node) for child in root.children)
    if all(new is old for new, old in zip(children, root.children)):
        return root
    return dataclasses.replace(root, children=children)


def remove_node(root: FilterNode, node_id: str) -> FilterNode:
    """Drop the node with *node_id* wherever it sits. The root itself is never removed."""
    if not isinstance(root, FilterGroup):
        return root
    kept = tuple(child for child in root.children if child.id != node_id)
    children = tuple(remove_node(child, node_id) for child in kept)
    if len(children) == len(root.children) and all(
        new is old for new, old in zip(children, root.children)
    ):
        return root
    return dataclasses.replace(root, children=children)


def update_node(root: FilterNode, node_id: str, **changes: Any) -> FilterNode:
    """
    Replace fields of the node with *node_id*.

    Callers changing a condition's ``field`` pass the operator and value to
    reset to alongside it; this function applies exactly what it is given.
    """
    if "id" in changes:
        raise FilterConfigError("A node id cannot be changed", field="id", value=changes["id"])
    if root.id == node_id:
        allowed = {f.name for f in dataclasses.fields(root)}
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise FilterConfigError(
                f"Unknown {type(root).__name__} field(s): {', '.join(unknown)}",
                field=unknown[0],
            )
        if "logic" in changes and changes["logic"] not in LOGICS:
            raise FilterConfigError(
                f"Unknown group logic '{changes['logic']}'", field="logic", value=changes["logic"]
            )
        if "children" in changes:
            changes["children"] = tuple(changes["children"])
        return dataclasses.replace(root, **changes)
    if isinstance(root, FilterGroup):
        children = tuple(update_node(child, node_id, **changes) for child in root.children)
        if any(new is not old for new, old in zip(children, root.children)):
            return dataclasses.replace(root, children=children)
    return root


# ─────────────────────────────────────────────────────────────────────────────
# JSON form
# ─────────────────────────────────────────────────────────────────────────────

def to_dict(node: FilterNode) -> dict:
    if isinstance(node, FilterGroup):
        return {
            "id": node.id,
            "type": "group",
            "logic": node.logic,
            "children": [to_dict(child) for child in node.children],
        }
    return {
        "id": node.id,
        "type": "condition",
        "field": node.field,
        "operator": node.operator,
        "value": node.value,
    }


def from_dict(data: dict) -> FilterNode:
    """Build a tree from its JSON form; nodes without an id get a fresh one."""
    node_type = data.get("type", "group")
    node_id = data.get("id") or _new_id()
    if node_type == "group":
        logic = data.get("logic", LOGIC_AND)
        if logic not in LOGICS:
            raise FilterConfigError(f"Unknown group logic '{logic}'", field="logic", value=logic)
        return FilterGroup(
            id=node_id,
            logic=logic,
            children=tuple(from_dict(child) for child in data.get("children") or ()),
        )
    if node_type == "condition":
        value = data.get("value")
        return FilterCondition(
            id=node_id,
            field=data.get("field") or "",
            operator=data.get("operator") or "is",
            value="" if value is None else value,
        )
    raise FilterConfigError(f"Unknown filter node type '{node_type}'", field="type", value=node_type)
