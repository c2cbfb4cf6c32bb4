"""
In-context broadcast hub for realtime updates.

A :class:`BroadcastHub` fans :class:`RealtimeUpdate` values out to every
subscriber of one execution context. It is an explicit, constructible object
(one per context, torn down with :meth:`BroadcastHub.close` or a ``with``
block) rather than an ambient module global, so tests can build as many as
they need.

Delivery rules
--------------
- ``publish`` is synchronous: every subscriber registered when the publish
  starts is called, in registration order, before ``publish`` returns.
- Each callback is isolated. A failure is logged as a
  :class:`~pagesync.core.errors.SubscriberFailure`, collected in the returned
  :class:`PublishReport`, and never reaches the publisher or the remaining
  subscribers.
- Subscribing during a publish does not deliver the in-flight update to the
  new callback; unsubscribing during a publish prevents any still-pending
  delivery to that callback.
- A publish issued from inside a callback is queued and runs after the
  current publish finishes, so two publishes never interleave.

Every publish is also appended to a bounded trailing history (oldest evicted
first) and announced to *signal listeners*: a coarse, context-wide "something
changed" hook used by consumers that do not hold a direct subscription.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pagesync.core.contracts.update import RealtimeUpdate, UpdateAction
from pagesync.core.errors import HubClosed, SubscriberFailure
from pagesync.core.settings import get_logger, load_settings

Subscriber = Callable[[RealtimeUpdate], Any]
SignalListener = Callable[[RealtimeUpdate], Any]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True, slots=True)
class PublishReport:
    """What happened to one update.

    Attributes
    ----------
    update : RealtimeUpdate
        The update that was delivered.
    delivered : int
        Number of subscriber callbacks that returned normally.
    failures : tuple[SubscriberFailure, ...]
        Subscriber and signal-listener failures, in call order.
    deferred : bool
        True when the publish was issued from inside a callback and queued;
        ``delivered``/``failures`` are then empty and the update is delivered
        once the outer publish completes.
    """

    update: RealtimeUpdate
    delivered: int = 0
    failures: tuple[SubscriberFailure, ...] = field(default_factory=tuple)
    deferred: bool = False


class BroadcastHub:
    """Process-local publish/subscribe fan-out with bounded history.

    Parameters
    ----------
    history_size:
        Capacity of the trailing history; defaults to the configured
        ``history_size`` (50).
    name:
        Label used in log records, e.g. ``"editor"`` or ``"preview"``.
    logger:
        Logger receiving subscriber failures; defaults to ``pagesync.broadcast``.
    """

    def __init__(
        self,
        *,
        history_size: int | None = None,
        name: str = "default",
        logger: logging.Logger | None = None,
    ) -> None:
        size = history_size if history_size is not None else load_settings().history_size
        if size < 1:
            raise ValueError("history_size must be at least 1")
        self.name = name
        self._log = logger or get_logger("pagesync.broadcast")
        self._subscribers: dict[int, Subscriber] = {}
        self._signal_listeners: dict[int, SignalListener] = {}
        self._tokens = itertools.count()
        self._history: deque[RealtimeUpdate] = deque(maxlen=size)
        self._pending: deque[RealtimeUpdate] = deque()
        self._publishing = False
        self._closed = False

    # ------------------------------- Lifecycle ------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Drop every subscriber and listener; later calls raise :class:`HubClosed`."""
        self._subscribers.clear()
        self._signal_listeners.clear()
        self._pending.clear()
        self._closed = True

    def __enter__(self) -> BroadcastHub:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise HubClosed(f"Broadcast hub {self.name!r} is closed")

    # ------------------------------- Subscriptions --------------------------

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        """Register ``callback`` and return a capability that removes it.

        The same callable may be registered more than once; each returned
        capability removes only its own registration, and calling it again
        has no effect.
        """
        self._ensure_open()
        token = next(self._tokens)
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def add_signal_listener(self, listener: SignalListener) -> Unsubscribe:
        """Register a context-wide change listener (called once per publish)."""
        self._ensure_open()
        token = next(self._tokens)
        self._signal_listeners[token] = listener

        def remove() -> None:
            self._signal_listeners.pop(token, None)

        return remove

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ------------------------------- Publishing -----------------------------

    def publish(self, update: RealtimeUpdate) -> PublishReport:
        """Deliver ``update`` to every current subscriber, then signal listeners."""
        self._ensure_open()
        if self._publishing:
            self._pending.append(update)
            return PublishReport(update=update, deferred=True)

        self._publishing = True
        try:
            report = self._deliver(update)
            while self._pending and not self._closed:
                self._deliver(self._pending.popleft())
        finally:
            self._publishing = False
        return report

    def _deliver(self, update: RealtimeUpdate) -> PublishReport:
        self._history.append(update)
        self._log.debug(
            "hub=%s publish subject=%s action=%s subscribers=%d",
            self.name,
            update.subject,
            update.action,
            len(self._subscribers),
        )

        failures: list[SubscriberFailure] = []
        delivered = 0
        for token in list(self._subscribers):
            callback = self._subscribers.get(token)
            if callback is None:
                # Unsubscribed by an earlier callback of this same publish.
                continue
            if self._call(callback, update, failures):
                delivered += 1

        for token in list(self._signal_listeners):
            listener = self._signal_listeners.get(token)
            if listener is not None:
                self._call(listener, update, failures)

        return PublishReport(update=update, delivered=delivered, failures=tuple(failures))

    def _call(
        self,
        callback: Callable[[RealtimeUpdate], Any],
        update: RealtimeUpdate,
        failures: list[SubscriberFailure],
    ) -> bool:
        try:
            callback(update)
        except Exception as exc:
            failure = SubscriberFailure(callback, exc)
            failures.append(failure)
            self._log.error("hub=%s %s", self.name, failure, exc_info=exc)
            return False
        return True

    # ------------------------------- Conveniences ---------------------------

    def publish_page(self, action: UpdateAction, payload: Any) -> PublishReport:
        return self.publish(RealtimeUpdate(subject="page", action=action, payload=payload))

    def publish_menu(self, action: UpdateAction, payload: Any) -> PublishReport:
        return self.publish(RealtimeUpdate(subject="menu", action=action, payload=payload))

    def publish_page_menu(self, payload: Any) -> PublishReport:
        return self.publish(RealtimeUpdate(subject="page-menu", action="update", payload=payload))

    # ------------------------------- History --------------------------------

    def history(self) -> tuple[RealtimeUpdate, ...]:
        """Most recent updates, oldest first."""
        return tuple(self._history)

    @property
    def history_size(self) -> int:
        return self._history.maxlen or 0


__all__ = ["BroadcastHub", "PublishReport", "SignalListener", "Subscriber", "Unsubscribe"]
