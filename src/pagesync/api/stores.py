"""
In-memory persistence collaborators for pages, menus, templates and landing pages.

Responsibilities
----------------
- **Create**: assign UUIDs and timestamps.
- **Read**: list (newest first) and fetch by id.
- **Update/Delete**: replace fields, bump ``updated_at``.
- **Uniqueness**: ``Page.slug`` is unique. The check-and-insert happens under
  a lock, so it is the authoritative backstop behind the advisory
  :func:`pagesync.core.slug.unique_slug` lookup.

Note on Persistence
-------------------
This is a volatile memory store, one per application instance. A database
implementation would enforce the same unique constraint with an index.
"""

from __future__ import annotations

import threading
import uuid
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pagesync.core.contracts.document import LandingPage, Menu, Page, Template
from pagesync.core.errors import SlugConflict


class PageStore:
    """Dictionary-backed page repository with a unique slug constraint."""

    def __init__(self) -> None:
        self._pages: dict[str, Page] = {}
        self._lock = threading.Lock()

    def slug_exists(self, slug: str, *, exclude_id: str | None = None) -> bool:
        return any(p.slug == slug and p.id != exclude_id for p in self._pages.values())

    def create(self, **fields: Any) -> Page:
        """Insert a new page.

        Raises
        ------
        SlugConflict
            If another page already uses ``fields["slug"]``.
        """
        with self._lock:
            if self.slug_exists(fields["slug"]):
                raise SlugConflict(fields["slug"])
            page = Page(id=str(uuid.uuid4()), **fields)
            self._pages[page.id] = page
            return page

    def get(self, page_id: str) -> Page | None:
        return self._pages.get(page_id)

    def list(self) -> list[Page]:
        return sorted(self._pages.values(), key=lambda p: p.created_at, reverse=True)

    def update(self, page_id: str, **fields: Any) -> Page | None:
        """Replace the given fields; ``None`` if the page does not exist."""
        with self._lock:
            current = self._pages.get(page_id)
            if current is None:
                return None
            slug = fields.get("slug")
            if slug is not None and self.slug_exists(slug, exclude_id=page_id):
                raise SlugConflict(slug)
            updated = current.model_copy(update={**fields, "updated_at": datetime.now(UTC)})
            self._pages[page_id] = updated
            return updated

    def delete(self, page_id: str) -> Page | None:
        with self._lock:
            return self._pages.pop(page_id, None)


RecordT = TypeVar("RecordT", Menu, Template, LandingPage)


class RecordStore(Generic[RecordT]):
    """Dictionary-backed repository for records without unique constraints."""

    model: type[RecordT]

    def __init__(self) -> None:
        self._records: dict[str, RecordT] = {}

    def create(self, **fields: Any) -> RecordT:
        record = self.model(id=str(uuid.uuid4()), **fields)
        self._records[record.id] = record
        return record

    def get(self, record_id: str) -> RecordT | None:
        return self._records.get(record_id)

    def list(self) -> list[RecordT]:
        return sorted(self._records.values(), key=lambda r: r.created_at, reverse=True)

    def update(self, record_id: str, **fields: Any) -> RecordT | None:
        current = self._records.get(record_id)
        if current is None:
            return None
        updated = current.model_copy(update={**fields, "updated_at": datetime.now(UTC)})
        self._records[record_id] = updated
        return updated

    def delete(self, record_id: str) -> RecordT | None:
        return self._records.pop(record_id, None)


class MenuStore(RecordStore[Menu]):
    model = Menu


class TemplateStore(RecordStore[Template]):
    model = Template


class LandingStore(RecordStore[LandingPage]):
    model = LandingPage


__all__ = ["LandingStore", "MenuStore", "PageStore", "RecordStore", "TemplateStore"]
