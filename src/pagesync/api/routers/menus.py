"""
API routes for menus.

Endpoints
---------
- ``GET /menus`` / ``POST /menus``
- ``GET /menus/{menu_id}`` / ``PUT /menus/{menu_id}`` / ``DELETE /menus/{menu_id}``
- ``GET /menus/{menu_id}/items``: the items decoded into typed, nested entries

``items`` and ``style`` are accepted as JSON strings (stored as-is) or as
already-structured JSON (stringified before storage). Every confirmed change
is broadcast as a ``menu`` update.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from pagesync.api.schemas import MenuCreate, MenuUpdate, ValidationErrorBody, stringify
from pagesync.api.state import AppState, get_state
from pagesync.core.contracts.document import Menu, MenuItem
from pagesync.core.validation import validate_menu

router = APIRouter(prefix="/menus", tags=["Menus"])


def _not_found(menu_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Menu {menu_id} not found")


def _stored_fields(fields: dict[str, Any]) -> dict[str, Any]:
    out = dict(fields)
    for name in ("items", "style"):
        if name in out:
            out[name] = stringify(out[name])
    return out


@router.get("", response_model=list[Menu], summary="List menus")
async def list_menus(state: AppState = Depends(get_state)) -> list[Menu]:
    return state.menus.list()


@router.post("", response_model=Menu, status_code=status.HTTP_201_CREATED, summary="Create a menu")
async def create_menu(request: MenuCreate, state: AppState = Depends(get_state)) -> Any:
    fields = _stored_fields(request.model_dump())
    result = validate_menu(fields)
    if not result.is_valid:
        return JSONResponse(
            status_code=422, content=ValidationErrorBody.from_result(result).model_dump()
        )

    if fields["items"] is None:
        fields["items"] = "[]"
    menu = state.menus.create(**fields)
    state.hub.publish_menu("create", menu.model_dump(mode="json"))
    return menu


@router.get("/{menu_id}", response_model=Menu, summary="Get a menu")
async def get_menu(menu_id: str, state: AppState = Depends(get_state)) -> Menu:
    menu = state.menus.get(menu_id)
    if menu is None:
        raise _not_found(menu_id)
    return menu


@router.get("/{menu_id}/items", response_model=list[MenuItem], summary="Get a menu's items")
async def get_menu_items(menu_id: str, state: AppState = Depends(get_state)) -> list[MenuItem]:
    """Decoded, typed items; stored items that do not decode answer 400."""
    menu = state.menus.get(menu_id)
    if menu is None:
        raise _not_found(menu_id)
    return menu.parsed_items()


@router.put("/{menu_id}", response_model=Menu, summary="Update a menu")
async def update_menu(
    menu_id: str, request: MenuUpdate, state: AppState = Depends(get_state)
) -> Any:
    current = state.menus.get(menu_id)
    if current is None:
        raise _not_found(menu_id)

    changes = _stored_fields(request.model_dump(exclude_unset=True))
    result = validate_menu({**current.model_dump(), **changes})
    if not result.is_valid:
        return JSONResponse(
            status_code=422, content=ValidationErrorBody.from_result(result).model_dump()
        )

    menu = state.menus.update(menu_id, **changes)
    if menu is None:
        raise _not_found(menu_id)
    state.hub.publish_menu("update", menu.model_dump(mode="json"))
    return menu


@router.delete("/{menu_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a menu")
async def delete_menu(menu_id: str, state: AppState = Depends(get_state)) -> None:
    if state.menus.delete(menu_id) is None:
        raise _not_found(menu_id)
    state.hub.publish_menu("delete", {"id": menu_id})


__all__ = ["router"]
