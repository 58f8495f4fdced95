from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from gridsight.routes.tables import _get_workspace_or_404
from gridsight.schemas.analysis import (
    ColumnStatsResponse,
    PivotRequest,
    PivotResponse,
    QualityResponse,
)
from gridsight.services.pivot import PivotConfig, pivot_to_rows
from gridsight.services.workspace import WorkspaceStore
from gridsight.store import get_store

router = APIRouter(prefix="/workspaces", tags=["analysis"])


@router.post("/{workspace_id}/pivot", response_model=PivotResponse)
def pivot(
    workspace_id: str,
    payload: PivotRequest,
    store: WorkspaceStore = Depends(get_store),
):
    workspace = _get_workspace_or_404(workspace_id, store)
    config = PivotConfig(**payload.model_dump())
    result = workspace.pivot(config)
    return PivotResponse(**result.to_dict(), export_rows=pivot_to_rows(result, payload.row_field))


@router.get("/{workspace_id}/quality", response_model=QualityResponse)
def quality_report(workspace_id: str, store: WorkspaceStore = Depends(get_store)):
    workspace = _get_workspace_or_404(workspace_id, store)
    return workspace.quality().to_dict()


@router.get("/{workspace_id}/columns/{column}/stats", response_model=ColumnStatsResponse)
def column_stats(workspace_id: str, column: str, store: WorkspaceStore = Depends(get_store)):
    workspace = _get_workspace_or_404(workspace_id, store)
    stats = workspace.column_stats(column)
    if stats is None:
        raise HTTPException(status_code=422, detail=f"Column '{column}' has no numeric values")
    return ColumnStatsResponse(column=column, **stats)
