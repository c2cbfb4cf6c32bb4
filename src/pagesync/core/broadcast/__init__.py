"""In-context broadcast hub and the update transports built on it."""

from __future__ import annotations

from .hub import BroadcastHub, PublishReport
from .transport import InMemoryTransport, SnapshotTransport, UpdateTransport

__all__ = [
    "BroadcastHub",
    "InMemoryTransport",
    "PublishReport",
    "SnapshotTransport",
    "UpdateTransport",
]
