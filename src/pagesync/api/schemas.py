"""Request/response schemas for the pagesync HTTP API."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field

from pagesync.core.contracts.document import PageStatus, Visibility
from pagesync.core.contracts.element import PageElement
from pagesync.core.contracts.media import MediaItem
from pagesync.core.contracts.validation import FieldError, ValidationResult


def stringify(value: Any) -> str | None:
    """Keep strings as-is and JSON-encode anything else (stored fields are text)."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class PageCreate(BaseModel):
    """Body of ``POST /pages``; ``content`` may be a string or an element list."""

    title: str = "Untitled Page"
    slug: str | None = None
    content: Any = None
    status: PageStatus = "draft"
    visibility: Visibility = "public"
    password: str | None = None
    excerpt: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    template: str | None = None
    header_menu: str | None = None
    footer_menu: str | None = None


class PageUpdate(BaseModel):
    """Body of ``PUT /pages/{id}``; absent fields keep their stored value."""

    title: str | None = None
    slug: str | None = None
    content: Any = None
    status: PageStatus | None = None
    visibility: Visibility | None = None
    password: str | None = None
    excerpt: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    template: str | None = None
    header_menu: str | None = None
    footer_menu: str | None = None


class MenuCreate(BaseModel):
    name: str = ""
    location: str | None = None
    items: Any = None
    style: Any = None


class MenuUpdate(BaseModel):
    name: str | None = None
    location: str | None = None
    items: Any = None
    style: Any = None


class TemplateCreate(BaseModel):
    """Body of ``POST /templates``; ``content`` may be a string or an element list."""

    name: str = "Untitled Template"
    content: Any = None


class TemplateUpdate(BaseModel):
    name: str | None = None
    content: Any = None


class LandingCreate(BaseModel):
    """Body of ``POST /landings``."""

    title: str = "Untitled Landing"
    campaign: str | None = None
    content: Any = None


class LandingUpdate(BaseModel):
    title: str | None = None
    campaign: str | None = None
    content: Any = None


class MediaList(BaseModel):
    """Response of ``GET /media``, newest first."""

    media: list[MediaItem]


class PreviewDocument(BaseModel):
    """Body and response of ``/preview``."""

    elements: list[PageElement] = Field(default_factory=list)


class ValidationErrorBody(BaseModel):
    """422 payload: the raw error list plus the per-field summary."""

    error: str = "Validation failed"
    errors: list[FieldError]
    fields: dict[str, str]

    @classmethod
    def from_result(cls, result: ValidationResult) -> ValidationErrorBody:
        return cls(errors=result.errors, fields=result.by_field())


__all__ = [
    "LandingCreate",
    "LandingUpdate",
    "MediaList",
    "MenuCreate",
    "MenuUpdate",
    "PageCreate",
    "PageUpdate",
    "PreviewDocument",
    "TemplateCreate",
    "TemplateUpdate",
    "ValidationErrorBody",
    "stringify",
]
