"""
API routes for the preview snapshot and the update history.

Endpoints
---------
- ``GET /preview``: the latest preview document, 404 before any write.
- ``PUT /preview``: validate and write a full document, then broadcast it.
- ``GET /updates``: the hub's trailing history, oldest first.
- ``GET /updates/latest``: the last update relayed to the snapshot medium,
  i.e. what other processes observe; 404 before the first update.

Storage failures map to 507 (quota) and 500 (serialization) through the
application's exception handlers.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from pagesync.api.schemas import PreviewDocument, ValidationErrorBody
from pagesync.api.state import AppState, get_state
from pagesync.core.contracts.update import RealtimeUpdate
from pagesync.core.tree import to_wire
from pagesync.core.validation import validate_elements

router = APIRouter(tags=["Preview"])


@router.get("/preview", summary="Read the preview snapshot")
async def read_preview(state: AppState = Depends(get_state)) -> dict[str, Any]:
    document = state.snapshots.read(state.preview_key)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No preview written yet")
    return document.to_wire()


@router.put("/preview", summary="Replace the preview snapshot")
async def write_preview(
    request: PreviewDocument, state: AppState = Depends(get_state)
) -> Any:
    elements = tuple(request.elements)
    result = validate_elements(elements)
    if not result.is_valid:
        return JSONResponse(
            status_code=422, content=ValidationErrorBody.from_result(result).model_dump()
        )

    size = state.snapshots.write(state.preview_key, elements)
    state.hub.publish_page("update", {"elements": to_wire(elements)})
    return {"key": state.preview_key, "bytes": size, "elements": len(elements)}


@router.get("/updates", response_model=list[RealtimeUpdate], summary="Recent updates")
async def recent_updates(state: AppState = Depends(get_state)) -> list[RealtimeUpdate]:
    return list(state.hub.history())


@router.get("/updates/latest", response_model=RealtimeUpdate, summary="Last relayed update")
async def latest_update(state: AppState = Depends(get_state)) -> RealtimeUpdate:
    update = state.relay.latest()
    if update is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No update relayed yet")
    return update


__all__ = ["router"]
