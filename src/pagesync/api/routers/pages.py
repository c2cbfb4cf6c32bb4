"""
API routes for pages.

Endpoints
---------
- ``GET /pages``: list pages, newest first.
- ``POST /pages``: create a page (unique slug, validation, broadcast).
- ``GET /pages/{page_id}``: fetch one page.
- ``PUT /pages/{page_id}``: update a page (validation, broadcast).
- ``DELETE /pages/{page_id}``: delete a page (broadcast).

Validation failures answer 422 with the error list and per-field summary;
a slug taken between the lookup and the insert answers 409.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from pagesync.api.schemas import PageCreate, PageUpdate, ValidationErrorBody, stringify
from pagesync.api.state import AppState, get_state
from pagesync.core.contracts.document import Page
from pagesync.core.errors import SlugConflict
from pagesync.core.slug import unique_slug
from pagesync.core.validation import validate_page

router = APIRouter(prefix="/pages", tags=["Pages"])


def _invalid(body: ValidationErrorBody) -> JSONResponse:
    return JSONResponse(status_code=422, content=body.model_dump())


def _not_found(page_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Page {page_id} not found")


def _conflict(exc: SlugConflict) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get("", response_model=list[Page], summary="List pages")
async def list_pages(state: AppState = Depends(get_state)) -> list[Page]:
    return state.pages.list()


@router.post(
    "",
    response_model=Page,
    status_code=status.HTTP_201_CREATED,
    summary="Create a page",
)
async def create_page(request: PageCreate, state: AppState = Depends(get_state)) -> Any:
    """Create a page with a slug derived from ``slug`` or ``title``.

    The slug is made unique by trying ``base``, ``base-2``, ... against the
    store; the store still enforces uniqueness on insert.
    """
    fields = request.model_dump()
    fields["content"] = stringify(request.content) if request.content is not None else "[]"
    fields["slug"] = unique_slug(request.slug or request.title, state.pages.slug_exists)

    result = validate_page(fields)
    if not result.is_valid:
        return _invalid(ValidationErrorBody.from_result(result))

    try:
        page = state.pages.create(**fields)
    except SlugConflict as exc:
        raise _conflict(exc) from exc

    state.hub.publish_page("create", page.model_dump(mode="json"))
    return page


@router.get("/{page_id}", response_model=Page, summary="Get a page")
async def get_page(page_id: str, state: AppState = Depends(get_state)) -> Page:
    page = state.pages.get(page_id)
    if page is None:
        raise _not_found(page_id)
    return page


@router.put("/{page_id}", response_model=Page, summary="Update a page")
async def update_page(
    page_id: str, request: PageUpdate, state: AppState = Depends(get_state)
) -> Any:
    current = state.pages.get(page_id)
    if current is None:
        raise _not_found(page_id)

    changes = request.model_dump(exclude_unset=True)
    if "content" in changes:
        changes["content"] = stringify(changes["content"])

    result = validate_page({**current.model_dump(), **changes})
    if not result.is_valid:
        return _invalid(ValidationErrorBody.from_result(result))

    try:
        page = state.pages.update(page_id, **changes)
    except SlugConflict as exc:
        raise _conflict(exc) from exc
    if page is None:
        raise _not_found(page_id)

    payload = page.model_dump(mode="json")
    state.hub.publish_page("update", payload)
    if "header_menu" in changes or "footer_menu" in changes:
        state.hub.publish_page_menu(payload)
    return page


@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a page")
async def delete_page(page_id: str, state: AppState = Depends(get_state)) -> None:
    page = state.pages.delete(page_id)
    if page is None:
        raise _not_found(page_id)
    state.hub.publish_page("delete", {"id": page_id})


__all__ = ["router"]
