from __future__ import annotations

from fastapi import APIRouter, Depends

from gridsight.routes.tables import _get_workspace_or_404, _table_summary
from gridsight.schemas.cleaning import (
    AnonymizeRequest,
    AnonymizeResponse,
    CleanColumnRequest,
    CleaningPreviewResponse,
    FillEmptyRequest,
    RemoveDuplicatesRequest,
    RemoveDuplicatesResponse,
)
from gridsight.schemas.tables import TableSummary
from gridsight.services.workspace import WorkspaceStore
from gridsight.store import get_store

router = APIRouter(prefix="/workspaces", tags=["cleaning"])


# ─────────────────────────────────────────────────────────────────────────────
# Column cleaning
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{workspace_id}/clean/preview", response_model=CleaningPreviewResponse)
def preview_cleaning(
    workspace_id: str,
    payload: CleanColumnRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    changes = workspace.preview_cleaning(payload.column, payload.operation, payload.table)
    return CleaningPreviewResponse(column=payload.column, operation=payload.operation, changes=changes)


@router.post("/{workspace_id}/clean", response_model=TableSummary)
def clean_column(
    workspace_id: str,
    payload: CleanColumnRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    return _table_summary(workspace.clean_column(payload.column, payload.operation, payload.table))


@router.post("/{workspace_id}/fill-empty", response_model=TableSummary)
def fill_empty(
    workspace_id: str,
    payload: FillEmptyRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    return _table_summary(workspace.fill_empty(payload.column, payload.fill_value, payload.table))


@router.post("/{workspace_id}/remove-duplicates", response_model=RemoveDuplicatesResponse)
def remove_duplicates(
    workspace_id: str,
    payload: RemoveDuplicatesRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    removed = workspace.remove_duplicates(payload.table)
    name = payload.table or workspace.active_table
    return RemoveDuplicatesResponse(
        table=name,
        duplicates_removed=removed,
        row_count=len(workspace.tables[name]),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Anonymization
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{workspace_id}/anonymize/suggestions", response_model=dict[str, str])
def anonymization_suggestions(workspace_id: str, store: WorkspaceStore = Depends(get_store)):
    return _get_workspace_or_404(workspace_id, store).suggested_anonymization()


@router.post("/{workspace_id}/anonymize/preview", response_model=AnonymizeResponse)
def anonymize_preview(
    workspace_id: str,
    payload: AnonymizeRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    methods = payload.methods if payload.methods is not None else workspace.suggested_anonymization()
    rows = workspace.anonymize_preview(methods, payload.limit)
    columns = [c for c in workspace.filtered_view().columns if methods.get(c) != "remove"]
    return AnonymizeResponse(methods=methods, columns=columns, rows=rows)


@router.post("/{workspace_id}/anonymize", response_model=AnonymizeResponse)
def anonymize(
    workspace_id: str,
    payload: AnonymizeRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    methods = payload.methods if payload.methods is not None else workspace.suggested_anonymization()
    table = workspace.anonymize(methods)
    rows = table.rows if payload.limit is None else table.rows[:payload.limit]
    return AnonymizeResponse(methods=methods, columns=table.columns, rows=[dict(r) for r in rows])
