"""Exception taxonomy for pagesync.

Validation problems are *not* modelled here: validators always return a
:class:`~pagesync.core.contracts.validation.ValidationResult` and never raise.
The exceptions below cover the failures that must reach the immediate caller
(decode, storage, serialization) plus the per-callback failures the broadcast
hub catches and logs.

Hierarchy
---------
PageSyncError
├── MalformedDocument      (also ValueError)
├── ElementNotFound        (also KeyError)
├── SnapshotError
│   ├── QuotaExceeded
│   └── SerializationError
├── SubscriberFailure
├── HubClosed              (also RuntimeError)
├── SlugConflict
└── MediaRejected          (also ValueError)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any


class PageSyncError(Exception):
    """Base class for every error raised by pagesync."""


class MalformedDocument(PageSyncError, ValueError):
    """A serialized element tree could not be decoded."""


class ElementNotFound(PageSyncError, KeyError):
    """No element with the requested id exists in the tree."""

    def __init__(self, element_id: str) -> None:
        super().__init__(element_id)
        self.element_id = element_id

    def __str__(self) -> str:
        return f"Element {self.element_id!r} not found"


class SnapshotError(PageSyncError):
    """Base class for Snapshot Store write failures."""


class QuotaExceeded(SnapshotError):
    """The durable medium rejected a write for lack of space."""

    def __init__(self, key: str, size: int, available: int | None = None) -> None:
        self.key = key
        self.size = size
        self.available = available
        detail = f"{size} bytes" if available is None else f"{size} bytes, {available} available"
        super().__init__(f"Storage quota exceeded writing {key!r} ({detail})")


class SerializationError(SnapshotError):
    """A document could not be encoded for storage."""


class SubscriberFailure(PageSyncError):
    """A broadcast subscriber raised while handling an update.

    Instances are created and logged by the hub; they are collected in the
    publish report but never raised to the publisher.
    """

    def __init__(self, callback: Callable[..., Any], cause: BaseException) -> None:
        self.callback = callback
        self.cause = cause
        name = getattr(callback, "__qualname__", None) or repr(callback)
        super().__init__(f"Subscriber {name} failed: {cause!r}")


class HubClosed(PageSyncError, RuntimeError):
    """The broadcast hub was torn down and no longer accepts calls."""


class SlugConflict(PageSyncError):
    """The persistence layer refused a slug that is already taken."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"Slug {slug!r} is already in use")


class MediaRejected(PageSyncError, ValueError):
    """An upload was refused by the media collaborator (size or type)."""


__all__ = [
    "PageSyncError",
    "MalformedDocument",
    "ElementNotFound",
    "SnapshotError",
    "QuotaExceeded",
    "SerializationError",
    "SubscriberFailure",
    "HubClosed",
    "SlugConflict",
    "MediaRejected",
]
