"""Persisted document envelopes: Page, Menu, MenuItem, Template and LandingPage.

These are owned by the persistence collaborator; the core only validates
them. ``Page.content`` holds the stringified element tree and
``Menu.items`` the stringified menu-item list, exactly as stored. Templates
and landing pages carry a stringified element tree in ``content`` too.

Validation of *candidate* payloads happens on plain mappings in
:mod:`pagesync.core.validation` (a candidate may be arbitrarily broken and
validators must never raise), so the models below are deliberately lenient:
they describe stored records, not input rules.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

PageStatus = Literal["draft", "published"]
Visibility = Literal["public", "private", "password_protected"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MenuItem(BaseModel):
    """A navigation entry; ``children`` nest to any depth."""

    id: str
    label: str
    url: str
    children: list[MenuItem] = Field(default_factory=list)


class Page(BaseModel):
    """A stored page and its serialized element tree."""

    id: str
    title: str
    slug: str
    content: str = "[]"
    status: PageStatus = "draft"
    visibility: Visibility = "public"
    password: str | None = None
    excerpt: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    template: str | None = None
    header_menu: str | None = None
    footer_menu: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Menu(BaseModel):
    """A stored navigation menu."""

    id: str
    name: str
    location: str | None = None
    items: str = "[]"
    style: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def parsed_items(self) -> list[MenuItem]:
        """Decode ``items`` into typed menu items.

        Raises
        ------
        ValueError
            If ``items`` is not a JSON array of well-formed items (pydantic's
            ``ValidationError`` and ``json.JSONDecodeError`` both subclass it).
        """
        raw = json.loads(self.items)
        if not isinstance(raw, list):
            raise ValueError("Menu items must be a JSON array")
        return [MenuItem.model_validate(item) for item in raw]


class Template(BaseModel):
    """A reusable element tree the builder can start a page from."""

    id: str
    name: str
    content: str = "[]"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class LandingPage(BaseModel):
    """A campaign landing page; same tree storage as :class:`Page`, no slug."""

    id: str
    title: str
    campaign: str | None = None
    content: str = "[]"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


__all__ = ["LandingPage", "Menu", "MenuItem", "Page", "PageStatus", "Template", "Visibility"]
