"""
API routes for page templates.

Endpoints
---------
- ``GET /templates`` / ``POST /templates``
- ``GET /templates/{template_id}`` / ``PATCH /templates/{template_id}`` /
  ``DELETE /templates/{template_id}``

``content`` is an element tree, sent either as its JSON string or as the
element list itself; it is stored as a string. A tree that does not decode
answers 400 through the application's ``ValueError`` handler.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from pagesync.api.schemas import TemplateCreate, TemplateUpdate, stringify
from pagesync.api.state import AppState, get_state
from pagesync.core.contracts.document import Template
from pagesync.core.tree import deserialize

router = APIRouter(prefix="/templates", tags=["Templates"])


def _not_found(template_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail=f"Template {template_id} not found"
    )


def stored_tree(content: Any) -> str:
    """Stringify ``content`` and check that it decodes as an element tree.

    Raises
    ------
    MalformedDocument
        If the text is not a well-formed element array.
    """
    text = stringify(content) or "[]"
    deserialize(text)
    return text


@router.get("", response_model=list[Template], summary="List templates")
async def list_templates(state: AppState = Depends(get_state)) -> list[Template]:
    return state.templates.list()


@router.post(
    "", response_model=Template, status_code=status.HTTP_201_CREATED, summary="Create a template"
)
async def create_template(
    request: TemplateCreate, state: AppState = Depends(get_state)
) -> Template:
    return state.templates.create(name=request.name, content=stored_tree(request.content))


@router.get("/{template_id}", response_model=Template, summary="Get a template")
async def get_template(template_id: str, state: AppState = Depends(get_state)) -> Template:
    template = state.templates.get(template_id)
    if template is None:
        raise _not_found(template_id)
    return template


@router.patch("/{template_id}", response_model=Template, summary="Update a template")
async def update_template(
    template_id: str, request: TemplateUpdate, state: AppState = Depends(get_state)
) -> Template:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if "content" in changes:
        changes["content"] = stored_tree(changes["content"])
    template = state.templates.update(template_id, **changes)
    if template is None:
        raise _not_found(template_id)
    return template


@router.delete(
    "/{template_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a template"
)
async def delete_template(template_id: str, state: AppState = Depends(get_state)) -> None:
    if state.templates.delete(template_id) is None:
        raise _not_found(template_id)


__all__ = ["router", "stored_tree"]
