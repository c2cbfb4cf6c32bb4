"""
Editor session: the producer side of document synchronization.

An :class:`EditorSession` owns the live element tree of one editor context and
drives the whole synchronization flow for every change:

1. **Validate** the candidate tree (duplicate ids, untyped widgets, optional
   strict nesting). An invalid tree is returned as a failed
   :class:`ValidationResult` and changes nothing.
2. **Commit** it locally and push the previous tree on the undo stack.
3. **Snapshot** the tree under the preview key, so other contexts can re-read
   it. Storage failures (``QuotaExceeded``, ``SerializationError``) are raised
   to the caller *after* the local commit: the editor keeps its view and the
   preview stays stale until the next successful write.
4. **Publish** a ``page/update`` carrying ``{"elements": [...]}`` on the
   context's broadcast hub. Each relay transport (typically a
   :class:`SnapshotTransport`) is attached to the hub as a signal listener, so
   every published update is also forwarded to other contexts. Relay failures
   are isolated by the hub and show up in the publish report.

Trees are immutable, so the undo/redo stacks simply hold references to
earlier trees.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from pagesync.core.broadcast.hub import BroadcastHub, PublishReport, Unsubscribe
from pagesync.core.broadcast.transport import UpdateTransport
from pagesync.core.contracts.element import PageElement, Tree
from pagesync.core.contracts.validation import ValidationResult
from pagesync.core.settings import get_logger, load_settings
from pagesync.core.snapshot.store import SnapshotStore
from pagesync.core.tree import (
    compact_for_storage,
    find_by_id,
    insert_element,
    remove_by_id,
    to_wire,
    update_element,
)
from pagesync.core.validation import validate_elements

logger = get_logger("pagesync.editor")

DEFAULT_UNDO_LIMIT = 50


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A tree together with the label of the change that produced it."""

    elements: Tree
    description: str


@dataclass(frozen=True, slots=True)
class ApplyOutcome:
    """Result of :meth:`EditorSession.apply`.

    Attributes
    ----------
    validation : ValidationResult
        Always present; ``validation.is_valid`` tells whether the change landed.
    snapshot_bytes : int
        Size of the written snapshot (0 when the change was rejected).
    report : PublishReport | None
        Broadcast report, ``None`` when the change was rejected.
    """

    validation: ValidationResult
    snapshot_bytes: int = 0
    report: PublishReport | None = None

    @property
    def applied(self) -> bool:
        return self.validation.is_valid


class EditorSession:
    """Live tree of one editor context plus its undo/redo history.

    Parameters
    ----------
    store:
        Snapshot store bound to the editor's context.
    hub:
        Broadcast hub of the editor's context.
    elements:
        Initial tree. It is not validated or written until the first change;
        call :meth:`sync` to push it explicitly.
    key:
        Snapshot key; defaults to the configured preview key.
    strict_nesting:
        Enforce ``section → column → widget`` on every change.
    compact:
        Replace large inline images with markers in the *snapshot* (the live
        tree keeps the originals).
    undo_limit:
        Number of earlier trees kept for undo.
    relays:
        Transports that receive a copy of every update published on ``hub``.
    """

    def __init__(
        self,
        store: SnapshotStore,
        hub: BroadcastHub,
        elements: Sequence[PageElement] = (),
        *,
        key: str | None = None,
        strict_nesting: bool = False,
        compact: bool = True,
        undo_limit: int = DEFAULT_UNDO_LIMIT,
        relays: Sequence[UpdateTransport] = (),
    ) -> None:
        self.store = store
        self.hub = hub
        self.key = key if key is not None else load_settings().preview_key
        self.strict_nesting = strict_nesting
        self.compact = compact
        self._elements: Tree = tuple(elements)
        self._undo: deque[HistoryEntry] = deque(maxlen=undo_limit)
        self._redo: list[HistoryEntry] = []
        self._last_description = "Initial state"
        self._relay_handles: list[Unsubscribe] = [
            hub.add_signal_listener(relay.send) for relay in relays
        ]

    def close(self) -> None:
        """Detach the relays from the hub; the session keeps its tree."""
        for remove in self._relay_handles:
            remove()
        self._relay_handles.clear()

    def __enter__(self) -> EditorSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------- State ----------------------------------

    @property
    def elements(self) -> Tree:
        return self._elements

    def find(self, element_id: str) -> PageElement | None:
        return find_by_id(self._elements, element_id)

    # ------------------------------- Core flow ------------------------------

    def apply(self, elements: Sequence[PageElement], description: str = "Edit") -> ApplyOutcome:
        """Validate, commit, snapshot and broadcast ``elements``.

        Raises
        ------
        QuotaExceeded, SerializationError
            When the snapshot write fails; the local commit has already happened.
        """
        candidate = tuple(elements)
        validation = validate_elements(candidate, strict_nesting=self.strict_nesting)
        if not validation.is_valid:
            logger.info("rejected %r: %d error(s)", description, len(validation.errors))
            return ApplyOutcome(validation=validation)

        self._undo.append(HistoryEntry(self._elements, self._last_description))
        self._redo.clear()
        self._commit(candidate, description)
        size, report = self._propagate()
        return ApplyOutcome(validation=validation, snapshot_bytes=size, report=report)

    def sync(self) -> ApplyOutcome:
        """Write and broadcast the current tree without changing it."""
        validation = validate_elements(self._elements, strict_nesting=self.strict_nesting)
        if not validation.is_valid:
            return ApplyOutcome(validation=validation)
        size, report = self._propagate()
        return ApplyOutcome(validation=validation, snapshot_bytes=size, report=report)

    def _commit(self, elements: Tree, description: str) -> None:
        self._elements = elements
        self._last_description = description
        logger.debug("committed %r", description)

    def _propagate(self) -> tuple[int, PublishReport]:
        stored = compact_for_storage(self._elements) if self.compact else self._elements
        size = self.store.write(self.key, stored)
        report = self.hub.publish_page("update", {"elements": to_wire(stored)})
        return size, report

    # ------------------------------- Mutations ------------------------------

    def update_element(self, element_id: str, **changes: Any) -> ApplyOutcome:
        """Merge ``changes`` into one element (raises ``ElementNotFound``)."""
        content = changes.get("content")
        label = content.get("text") if isinstance(content, dict) else None
        description = f"Update {label or changes.get('widget_type') or 'element'}"
        return self.apply(update_element(self._elements, element_id, **changes), description)

    def add_element(
        self,
        element: PageElement,
        parent_id: str | None = None,
        index: int | None = None,
    ) -> ApplyOutcome:
        return self.apply(
            insert_element(self._elements, element, parent_id, index),
            f"Add {element.widget_type or element.kind}",
        )

    def remove_element(self, element_id: str) -> ApplyOutcome:
        return self.apply(remove_by_id(self._elements, element_id), f"Delete {element_id}")

    # ------------------------------- Undo / redo ----------------------------

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo_description(self) -> str | None:
        return self._last_description if self._undo else None

    def redo_description(self) -> str | None:
        return self._redo[-1].description if self._redo else None

    def undo(self) -> ApplyOutcome | None:
        """Restore the previous tree; ``None`` when there is nothing to undo."""
        if not self._undo:
            return None
        previous = self._undo.pop()
        self._redo.append(HistoryEntry(self._elements, self._last_description))
        self._commit(previous.elements, previous.description)
        return self.sync()

    def redo(self) -> ApplyOutcome | None:
        """Re-apply the last undone tree; ``None`` when there is nothing to redo."""
        if not self._redo:
            return None
        following = self._redo.pop()
        self._undo.append(HistoryEntry(self._elements, self._last_description))
        self._commit(following.elements, following.description)
        return self.sync()


__all__ = ["ApplyOutcome", "EditorSession", "HistoryEntry"]
