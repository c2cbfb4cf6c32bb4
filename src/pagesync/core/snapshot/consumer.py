"""
Snapshot consumer: keeps a read-only view of a document in sync.

A consumer lives in a preview-style context. Correctness never depends on
receiving change signals:

1. :meth:`SnapshotConsumer.start` always performs an initial read, so a
   context created after the last write still sees it;
2. every change signal afterwards means "re-read now" (the signal carries no
   payload);
3. each read replaces the whole view. A snapshot that fails to decode is
   logged and the previous view is kept.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from pagesync.core.contracts.element import PageElement
from pagesync.core.errors import MalformedDocument
from pagesync.core.settings import get_logger, load_settings
from pagesync.core.snapshot.medium import StorageChange, Unwatch
from pagesync.core.snapshot.store import DocumentSnapshot, SnapshotStore

logger = get_logger("pagesync.snapshot.consumer")

ChangeHandler = Callable[[DocumentSnapshot | None], None]


class SnapshotConsumer:
    """Follow one snapshot key and notify ``on_change`` with each new view.

    Parameters
    ----------
    store:
        Store bound to the consumer's own context.
    key:
        Snapshot key to follow; defaults to the configured preview key.
    on_change:
        Called with the new document (or ``None`` when the key is absent and no
        fallback is set) each time the view is replaced.
    fallback:
        Elements shown while the key is absent, e.g. a starter page.
    """

    def __init__(
        self,
        store: SnapshotStore,
        key: str | None = None,
        *,
        on_change: ChangeHandler | None = None,
        fallback: Sequence[PageElement] | None = None,
    ) -> None:
        self.store = store
        self.key = key if key is not None else load_settings().preview_key
        self._on_change = on_change
        self._fallback = (
            DocumentSnapshot(elements=tuple(fallback)) if fallback is not None else None
        )
        self._view: DocumentSnapshot | None = None
        self._loaded = False
        self._unwatch: Unwatch | None = None
        self.refresh_count = 0

    @property
    def document(self) -> DocumentSnapshot | None:
        """Current view (the fallback while nothing has been written)."""
        return self._view

    @property
    def elements(self) -> tuple[PageElement, ...]:
        return self._view.elements if self._view is not None else ()

    @property
    def running(self) -> bool:
        return self._unwatch is not None

    def start(self) -> SnapshotConsumer:
        """Subscribe to change signals and perform the initial read."""
        if self._unwatch is None:
            self._unwatch = self.store.watch(self.key, self._on_signal)
        self.refresh()
        return self

    def stop(self) -> None:
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None

    def __enter__(self) -> SnapshotConsumer:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _on_signal(self, change: StorageChange) -> None:
        logger.debug("context=%s change signal for %r", self.store.context, change.key)
        self.refresh()

    def refresh(self) -> bool:
        """Re-read the snapshot; returns True when the view was replaced."""
        try:
            document = self.store.read(self.key)
        except MalformedDocument as exc:
            logger.warning("context=%s kept previous view: %s", self.store.context, exc)
            return False

        if document is None:
            document = self._fallback
        self.refresh_count += 1
        if self._loaded and document == self._view:
            return False
        self._loaded = True
        self._view = document
        if self._on_change is not None:
            self._on_change(document)
        return True


__all__ = ["ChangeHandler", "SnapshotConsumer"]
