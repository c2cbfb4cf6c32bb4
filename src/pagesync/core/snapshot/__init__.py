"""Cross-context snapshot hand-off: media, store and consumer."""

from __future__ import annotations

from .consumer import SnapshotConsumer
from .medium import FileMedium, MemoryMedium, StorageChange, StorageMedium
from .store import DocumentSnapshot, SnapshotStore

__all__ = [
    "DocumentSnapshot",
    "FileMedium",
    "MemoryMedium",
    "SnapshotConsumer",
    "SnapshotStore",
    "StorageChange",
    "StorageMedium",
]
