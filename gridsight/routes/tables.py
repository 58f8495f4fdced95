from __future__ import annotations

from dataclasses import asdict
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException

from gridsight.schemas.filters import (
    AddConditionRequest,
    AddGroupRequest,
    CaseSensitivityRequest,
    FilterTreeRequest,
    NodeCreatedResponse,
    UpdateNodeRequest,
)
from gridsight.schemas.tables import (
    FilterColumn,
    LoadTableRequest,
    SetAliasRequest,
    SetJoinsRequest,
    TableSummary,
    UniqueValuesResponse,
    ViewResponse,
    WorkspaceResponse,
)
from gridsight.services import filter_tree
from gridsight.services.joins import JoinSpec
from gridsight.services.table import Table
from gridsight.services.workspace import Workspace, WorkspaceStore
from gridsight.store import get_store

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


def _get_workspace_or_404(workspace_id: str, store: WorkspaceStore) -> Workspace:
    workspace = store.get(workspace_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return workspace


def _table_summary(table: Table) -> TableSummary:
    return TableSummary(
        name=table.name,
        row_count=len(table),
        columns=table.columns,
        types=table.types,
        smart_types={col: info.to_dict() for col, info in table.smart_types.items()},
    )


def _workspace_response(workspace: Workspace) -> WorkspaceResponse:
    return WorkspaceResponse(
        id=workspace.id,
        tables=[_table_summary(t) for t in workspace.tables.values()],
        active_table=workspace.active_table,
        aliases=workspace.aliases,
        joins=[asdict(j) for j in workspace.joins],
        case_sensitive=workspace.case_sensitive,
        filter_tree=filter_tree.to_dict(workspace.filter_tree),
    )


def _view_response(
    table: Table,
    offset: int = 0,
    limit: int | None = None,
    column_sums: dict[str, float] | None = None,
) -> ViewResponse:
    rows = table.rows[offset:] if limit is None else table.rows[offset:offset + limit]
    return ViewResponse(
        name=table.name,
        row_count=len(table),
        columns=table.columns,
        types=table.types,
        rows=[dict(r) for r in rows],
        column_sums=column_sums or {},
    )


# ─────────────────────────────────────────────────────────────────────────────
# Workspace lifecycle
# ─────────────────────────────────────────────────────────────────────────────

@router.post("", response_model=WorkspaceResponse, status_code=201)
def create_workspace(store: WorkspaceStore = Depends(get_store)):
    return _workspace_response(store.create())


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
def get_workspace(workspace_id: str, store: WorkspaceStore = Depends(get_store)):
    return _workspace_response(_get_workspace_or_404(workspace_id, store))


@router.delete("/{workspace_id}", status_code=204)
def delete_workspace(workspace_id: str, store: WorkspaceStore = Depends(get_store)):
    if not store.delete(workspace_id):
        raise HTTPException(status_code=404, detail="Workspace not found")


@router.post("/{workspace_id}/clear", response_model=WorkspaceResponse)
def clear_workspace(workspace_id: str, store: WorkspaceStore = Depends(get_store)):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.clear()
    return _workspace_response(workspace)


# ─────────────────────────────────────────────────────────────────────────────
# Tables
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{workspace_id}/tables", response_model=TableSummary, status_code=201)
def load_table(
    workspace_id: str,
    payload: LoadTableRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    return _table_summary(workspace.load_table(payload.name, payload.rows))


@router.delete("/{workspace_id}/tables/{name}", response_model=WorkspaceResponse)
def remove_table(workspace_id: str, name: str, store: WorkspaceStore = Depends(get_store)):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.remove_table(name)
    return _workspace_response(workspace)


@router.put("/{workspace_id}/active-table/{name}", response_model=WorkspaceResponse)
def set_active_table(workspace_id: str, name: str, store: WorkspaceStore = Depends(get_store)):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.set_active_table(name)
    return _workspace_response(workspace)


@router.put("/{workspace_id}/tables/{name}/alias", response_model=WorkspaceResponse)
def set_alias(
    workspace_id: str,
    name: str,
    payload: SetAliasRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.set_alias(name, payload.alias)
    return _workspace_response(workspace)


@router.put("/{workspace_id}/joins", response_model=WorkspaceResponse)
def set_joins(
    workspace_id: str,
    payload: SetJoinsRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.set_joins([JoinSpec(**j.model_dump()) for j in payload.joins])
    return _workspace_response(workspace)


# ─────────────────────────────────────────────────────────────────────────────
# Filter tree
# ─────────────────────────────────────────────────────────────────────────────

@router.put("/{workspace_id}/filter", response_model=WorkspaceResponse)
def set_filter_tree(
    workspace_id: str,
    payload: FilterTreeRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.set_filter_tree(filter_tree.from_dict(payload.tree))
    if payload.case_sensitive is not None:
        workspace.set_case_sensitive(payload.case_sensitive)
    return _workspace_response(workspace)


@router.post("/{workspace_id}/filter/conditions", response_model=NodeCreatedResponse, status_code=201)
def add_condition(
    workspace_id: str,
    payload: AddConditionRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    node_id = workspace.add_condition(
        payload.parent_id, field=payload.field, operator=payload.operator, value=payload.value
    )
    return NodeCreatedResponse(id=node_id, filter_tree=filter_tree.to_dict(workspace.filter_tree))


@router.post("/{workspace_id}/filter/groups", response_model=NodeCreatedResponse, status_code=201)
def add_group(
    workspace_id: str,
    payload: AddGroupRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    node_id = workspace.add_group(payload.parent_id, payload.logic)
    return NodeCreatedResponse(id=node_id, filter_tree=filter_tree.to_dict(workspace.filter_tree))


@router.patch("/{workspace_id}/filter/nodes/{node_id}", response_model=WorkspaceResponse)
def update_node(
    workspace_id: str,
    node_id: str,
    payload: UpdateNodeRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.update_node(node_id, **payload.model_dump(exclude_unset=True))
    return _workspace_response(workspace)


@router.delete("/{workspace_id}/filter/nodes/{node_id}", response_model=WorkspaceResponse)
def remove_node(workspace_id: str, node_id: str, store: WorkspaceStore = Depends(get_store)):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.remove_node(node_id)
    return _workspace_response(workspace)


@router.put("/{workspace_id}/filter/case-sensitivity", response_model=WorkspaceResponse)
def set_case_sensitivity(
    workspace_id: str,
    payload: CaseSensitivityRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    workspace.set_case_sensitive(payload.case_sensitive)
    return _workspace_response(workspace)


@router.get("/{workspace_id}/filter/columns", response_model=list[FilterColumn])
def filter_columns(workspace_id: str, store: WorkspaceStore = Depends(get_store)):
    return _get_workspace_or_404(workspace_id, store).filter_columns()


# ─────────────────────────────────────────────────────────────────────────────
# Views
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{workspace_id}/view", response_model=ViewResponse)
def filtered_view(
    workspace_id: str,
    offset: int = 0,
    limit: int | None = None,
    search: str | None = None,
    search_case_sensitive: bool = False,
    sort_by: str | None = None,
    direction: Literal["asc", "desc"] = "asc",
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    table = workspace.data_view(search, search_case_sensitive, sort_by, direction)
    sums = workspace.column_sums(search, search_case_sensitive)
    return _view_response(table, offset, limit, sums)


@router.get("/{workspace_id}/columns/{column}/values", response_model=UniqueValuesResponse)
def unique_values(
    workspace_id: str,
    column: str,
    limit: int | None = None,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    return UniqueValuesResponse(column=column, values=workspace.unique_values(column, limit))
