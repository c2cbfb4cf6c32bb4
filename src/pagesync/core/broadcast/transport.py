"""
Update transports: one interface, two delivery mechanisms.

Consumers depend only on :class:`UpdateTransport`:

- :class:`InMemoryTransport` delivers through a :class:`BroadcastHub`, i.e.
  direct subscription inside one execution context;
- :class:`SnapshotTransport` stores the latest update under a durable key and
  relies on the medium's change signal to reach other contexts. Listeners
  re-read the key on every signal, so a missed signal only delays delivery
  until the next one, and :meth:`UpdateTransport.latest` always answers from
  storage.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from pagesync.core.broadcast.hub import BroadcastHub, Unsubscribe
from pagesync.core.contracts.update import RealtimeUpdate
from pagesync.core.errors import MalformedDocument
from pagesync.core.settings import get_logger
from pagesync.core.snapshot.medium import StorageChange
from pagesync.core.snapshot.store import SnapshotStore

logger = get_logger("pagesync.broadcast.transport")

UpdateCallback = Callable[[RealtimeUpdate], Any]

DEFAULT_UPDATE_KEY = "pagebuilder-update"


@runtime_checkable
class UpdateTransport(Protocol):
    """Minimal contract shared by in-context and cross-context delivery."""

    def send(self, update: RealtimeUpdate) -> None: ...

    def listen(self, callback: UpdateCallback) -> Unsubscribe: ...

    def latest(self) -> RealtimeUpdate | None: ...


class InMemoryTransport:
    """Direct-subscription transport backed by a broadcast hub."""

    def __init__(self, hub: BroadcastHub) -> None:
        self.hub = hub

    def send(self, update: RealtimeUpdate) -> None:
        self.hub.publish(update)

    def listen(self, callback: UpdateCallback) -> Unsubscribe:
        return self.hub.subscribe(callback)

    def latest(self) -> RealtimeUpdate | None:
        history = self.hub.history()
        return history[-1] if history else None


class SnapshotTransport:
    """Durable-snapshot-plus-signal transport between contexts.

    Parameters
    ----------
    store:
        Snapshot store bound to the local context.
    key:
        Key holding the most recent update.
    """

    def __init__(self, store: SnapshotStore, key: str = DEFAULT_UPDATE_KEY) -> None:
        self.store = store
        self.key = key

    def send(self, update: RealtimeUpdate) -> None:
        """Persist ``update`` (replacing the previous one); storage errors propagate."""
        self.store.write_json(self.key, update.model_dump(mode="json"))

    def latest(self) -> RealtimeUpdate | None:
        """Read the most recent update, or ``None`` when absent or unreadable."""
        try:
            data = self.store.read_json(self.key)
        except MalformedDocument as exc:
            logger.warning("ignoring unreadable update under %r: %s", self.key, exc)
            return None
        if data is None:
            return None
        try:
            return RealtimeUpdate.model_validate(data)
        except ValidationError as exc:
            logger.warning("ignoring invalid update under %r: %s", self.key, exc)
            return None

    def listen(self, callback: UpdateCallback) -> Unsubscribe:
        """Deliver the stored update to ``callback`` whenever another context writes it."""

        def on_change(change: StorageChange) -> None:
            if change.deleted:
                return
            update = self.latest()
            if update is None:
                return
            try:
                callback(update)
            except Exception:
                logger.exception("update listener failed for %r", self.key)

        return self.store.watch(self.key, on_change)


__all__ = [
    "DEFAULT_UPDATE_KEY",
    "InMemoryTransport",
    "SnapshotTransport",
    "UpdateCallback",
    "UpdateTransport",
]
