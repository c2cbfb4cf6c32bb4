"""Per-application collaborators, built once by the app factory.

Each :func:`pagesync.api.app.create_app` call gets its own hub, stores and
snapshot store, so tests can build isolated apps without resetting globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from pagesync.api.media_store import MediaStore
from pagesync.api.stores import LandingStore, MenuStore, PageStore, TemplateStore
from pagesync.core.broadcast.hub import BroadcastHub
from pagesync.core.broadcast.transport import SnapshotTransport
from pagesync.core.snapshot.store import SnapshotStore


@dataclass(slots=True)
class AppState:
    hub: BroadcastHub
    pages: PageStore
    menus: MenuStore
    templates: TemplateStore
    landings: LandingStore
    media: MediaStore
    snapshots: SnapshotStore
    preview_key: str
    # Forwards every hub update to processes watching the snapshot medium.
    relay: SnapshotTransport


def get_state(request: Request) -> AppState:
    """FastAPI dependency returning the collaborators of the current app."""
    state: AppState = request.app.state.pagesync
    return state


__all__ = ["AppState", "get_state"]
