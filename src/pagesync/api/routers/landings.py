"""
API routes for campaign landing pages.

Same shape as the template routes: ``content`` is an element tree stored as
a string, updates use ``PATCH`` and only touch the fields that were sent.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from pagesync.api.routers.templates import stored_tree
from pagesync.api.schemas import LandingCreate, LandingUpdate
from pagesync.api.state import AppState, get_state
from pagesync.core.contracts.document import LandingPage

router = APIRouter(prefix="/landings", tags=["Landings"])


def _not_found(landing_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail=f"Landing page {landing_id} not found"
    )


@router.get("", response_model=list[LandingPage], summary="List landing pages")
async def list_landings(state: AppState = Depends(get_state)) -> list[LandingPage]:
    return state.landings.list()


@router.post(
    "",
    response_model=LandingPage,
    status_code=status.HTTP_201_CREATED,
    summary="Create a landing page",
)
async def create_landing(
    request: LandingCreate, state: AppState = Depends(get_state)
) -> LandingPage:
    return state.landings.create(
        title=request.title, campaign=request.campaign, content=stored_tree(request.content)
    )


@router.get("/{landing_id}", response_model=LandingPage, summary="Get a landing page")
async def get_landing(landing_id: str, state: AppState = Depends(get_state)) -> LandingPage:
    landing = state.landings.get(landing_id)
    if landing is None:
        raise _not_found(landing_id)
    return landing


@router.patch("/{landing_id}", response_model=LandingPage, summary="Update a landing page")
async def update_landing(
    landing_id: str, request: LandingUpdate, state: AppState = Depends(get_state)
) -> LandingPage:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if "content" in changes:
        changes["content"] = stored_tree(changes["content"])
    landing = state.landings.update(landing_id, **changes)
    if landing is None:
        raise _not_found(landing_id)
    return landing


@router.delete(
    "/{landing_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a landing page"
)
async def delete_landing(landing_id: str, state: AppState = Depends(get_state)) -> None:
    if state.landings.delete(landing_id) is None:
        raise _not_found(landing_id)


__all__ = ["router"]
