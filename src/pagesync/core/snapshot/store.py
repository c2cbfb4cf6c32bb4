"""
Snapshot Store: full-document hand-off between execution contexts.

The store binds a :class:`~pagesync.core.snapshot.medium.StorageMedium` to one
execution context. ``write`` replaces the whole value under a key; ``read``
returns the last successfully written document or ``None``. Readers never
merge: a read replaces the caller's entire view.

Durable key layout
------------------
``"pagebuilder-preview"`` (configurable) holds the latest document as::

    {"elements": [<PageElement wire dict>, ...]}
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from pagesync.core.contracts.element import PageElement
from pagesync.core.errors import MalformedDocument, SerializationError
from pagesync.core.settings import get_logger
from pagesync.core.snapshot.medium import StorageChange, StorageMedium, Unwatch
from pagesync.core.tree import to_wire

logger = get_logger("pagesync.snapshot")


class DocumentSnapshot(BaseModel):
    """A complete document as stored under a snapshot key."""

    model_config = ConfigDict(frozen=True)

    elements: tuple[PageElement, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        return {"elements": to_wire(self.elements)}


Document = DocumentSnapshot | Sequence[PageElement]


class SnapshotStore:
    """Read/write full documents on a shared medium on behalf of one context.

    Parameters
    ----------
    medium:
        The durable medium shared with other contexts.
    context:
        Name of the owning context. Change signals caused by this store's own
        writes are not delivered to its watchers.
    """

    def __init__(self, medium: StorageMedium, *, context: str = "default") -> None:
        self.medium = medium
        self.context = context

    # ------------------------------- Raw JSON -------------------------------

    def write_json(self, key: str, value: Any) -> int:
        """Encode ``value`` as JSON and replace ``key``; returns bytes written.

        Raises
        ------
        SerializationError
            If ``value`` is not JSON-encodable.
        QuotaExceeded
            If the medium rejects the write.
        """
        try:
            text = json.dumps(value, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot encode snapshot {key!r}: {exc}") from exc
        try:
            self.medium.set(key, text, origin=self.context)
        except Exception:
            logger.warning("context=%s rejected write of %r", self.context, key)
            raise
        size = len(text.encode("utf-8"))
        logger.debug("context=%s wrote %r (%d bytes)", self.context, key, size)
        return size

    def read_json(self, key: str) -> Any | None:
        """Return the decoded value under ``key`` or ``None`` when absent.

        Raises
        ------
        MalformedDocument
            If the stored text is not valid JSON.
        """
        text = self.medium.get(key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise MalformedDocument(f"Snapshot {key!r} is not valid JSON: {exc}") from exc

    # ------------------------------- Documents ------------------------------

    def write(self, key: str, document: Document) -> int:
        """Persist ``document`` under ``key``, replacing any prior value.

        Raises
        ------
        SerializationError
            If ``document`` is not a sequence of elements (or element dicts).
        QuotaExceeded
            If the medium rejects the write.
        """
        if not isinstance(document, DocumentSnapshot):
            try:
                document = DocumentSnapshot(elements=tuple(document))
            except (TypeError, ValidationError) as exc:
                raise SerializationError(f"Cannot encode snapshot {key!r}: {exc}") from exc
        return self.write_json(key, document.to_wire())

    def read(self, key: str) -> DocumentSnapshot | None:
        """Return the last written document, or ``None`` if nothing was written.

        Raises
        ------
        MalformedDocument
            If the stored value does not decode into a document.
        """
        data = self.read_json(key)
        if data is None:
            return None
        if isinstance(data, list):
            # Bare element arrays written by older builders.
            data = {"elements": data}
        try:
            return DocumentSnapshot.model_validate(data)
        except ValidationError as exc:
            raise MalformedDocument(f"Snapshot {key!r} is not a valid document: {exc}") from exc

    def remove(self, key: str) -> bool:
        return self.medium.delete(key, origin=self.context)

    # ------------------------------- Signals --------------------------------

    def watch(self, key: str, callback: Callable[[StorageChange], None]) -> Unwatch:
        """Call ``callback`` when another context changes ``key``.

        The signal means "re-read now"; it does not carry the value.
        """

        def on_change(change: StorageChange) -> None:
            if change.key == key:
                callback(change)

        return self.medium.watch(on_change, context=self.context)


__all__ = ["Document", "DocumentSnapshot", "SnapshotStore"]
