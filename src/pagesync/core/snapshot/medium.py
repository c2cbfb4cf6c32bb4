"""
Durable storage media shared by execution contexts.

A *medium* is the only channel between contexts that share no memory: a
key → text store with a byte quota plus a change signal. It plays the role a
browser's ``localStorage`` plays between an editor window and a preview
popup:

- ``set`` replaces the whole value of a key (last writer wins);
- watchers registered by *other* contexts are told that a key changed; the
  writing context is never notified of its own writes;
- the signal carries only the key, never the value, because signals can be
  missed and readers must re-read.

Implementations
---------------
- :class:`MemoryMedium`: process-local; contexts are simulated by name.
  Signals are delivered synchronously inside ``set``/``delete``.
- :class:`FileMedium`: one JSON file per key in a directory. Writes go to a
  temporary file that is then renamed over the target, so a reader sees the
  old or the new snapshot, never a partial one. Watchers inside this process
  are signalled immediately; changes made by other processes are detected by
  :meth:`FileMedium.poll`.
"""

from __future__ import annotations

import errno
import itertools
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote

from pagesync.core.errors import QuotaExceeded
from pagesync.core.settings import get_logger, load_settings

logger = get_logger("pagesync.snapshot")

# Context name used for changes whose writer is unknown (another process).
EXTERNAL_CONTEXT = "<external>"


@dataclass(frozen=True, slots=True)
class StorageChange:
    """Signal that ``key`` changed; re-read to learn the new value."""

    key: str
    origin: str
    deleted: bool = False


ChangeListener = Callable[[StorageChange], None]
Unwatch = Callable[[], None]


def _size(value: str) -> int:
    return len(value.encode("utf-8"))


class StorageMedium(ABC):
    """Abstract key → text medium with a byte quota and a change signal."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes if quota_bytes is not None else (
            load_settings().snapshot_quota_bytes
        )
        self._watchers: dict[int, tuple[str, ChangeListener]] = {}
        self._tokens = itertools.count()

    # ------------------------------- Storage --------------------------------

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored text, or ``None`` if the key was never written."""

    @abstractmethod
    def _store(self, key: str, value: str) -> None: ...

    @abstractmethod
    def _remove(self, key: str) -> bool: ...

    @abstractmethod
    def used_bytes(self, *, excluding: str | None = None) -> int:
        """Bytes currently held, optionally ignoring one key's current value."""

    def set(self, key: str, value: str, *, origin: str) -> None:
        """Replace ``key`` with ``value`` and signal other contexts.

        Raises
        ------
        QuotaExceeded
            If the value does not fit in the remaining quota.
        """
        size = _size(value)
        available = self.quota_bytes - self.used_bytes(excluding=key)
        if size > available:
            raise QuotaExceeded(key, size, max(available, 0))
        self._store(key, value)
        self._notify(StorageChange(key=key, origin=origin))

    def delete(self, key: str, *, origin: str) -> bool:
        """Remove ``key``; returns False when it was not stored."""
        removed = self._remove(key)
        if removed:
            self._notify(StorageChange(key=key, origin=origin, deleted=True))
        return removed

    # ------------------------------- Signals --------------------------------

    def watch(self, listener: ChangeListener, *, context: str) -> Unwatch:
        """Call ``listener`` for changes written by any context except ``context``."""
        token = next(self._tokens)
        self._watchers[token] = (context, listener)

        def unwatch() -> None:
            self._watchers.pop(token, None)

        return unwatch

    def _notify(self, change: StorageChange) -> None:
        for token in list(self._watchers):
            entry = self._watchers.get(token)
            if entry is None:
                continue
            context, listener = entry
            if context == change.origin:
                continue
            try:
                listener(change)
            except Exception:
                logger.exception("storage watcher of context %r failed on %r", context, change.key)


class MemoryMedium(StorageMedium):
    """Process-local medium; contexts are distinguished only by name."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        super().__init__(quota_bytes)
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def _store(self, key: str, value: str) -> None:
        self._data[key] = value

    def _remove(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def used_bytes(self, *, excluding: str | None = None) -> int:
        return sum(_size(v) for k, v in self._data.items() if k != excluding)

    def keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._data))

    def clear(self) -> None:
        """Drop every key without signalling (test helper)."""
        self._data.clear()


class FileMedium(StorageMedium):
    """Directory-backed medium usable across processes.

    Parameters
    ----------
    base_dir:
        Directory holding one ``<key>.json`` file per key; defaults to the
        configured ``snapshot_dir``. Created on demand. Keys are
        percent-encoded, so every key maps to one file name and back.
    quota_bytes:
        Total bytes across all keys.
    """

    def __init__(self, base_dir: Path | None = None, quota_bytes: int | None = None) -> None:
        super().__init__(quota_bytes)
        self.base_dir: Path = base_dir if base_dir is not None else load_settings().snapshot_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        # key -> (mtime_ns, size) last seen by this process, for poll().
        self._seen: dict[str, tuple[int, int]] = self._scan()

    def path_for(self, key: str) -> Path:
        """Filesystem path of ``key``; separators and other unsafe characters are escaped."""
        return self.base_dir / f"{quote(key, safe='')}.json"

    def _stat(self, path: Path) -> tuple[int, int] | None:
        try:
            st = path.stat()
        except FileNotFoundError:
            return None
        return st.st_mtime_ns, st.st_size

    def get(self, key: str) -> str | None:
        try:
            return self.path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _store(self, key: str, value: str) -> None:
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, prefix=".write-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            if exc.errno in (errno.ENOSPC, errno.EDQUOT):
                raise QuotaExceeded(key, _size(value)) from exc
            raise
        stat = self._stat(path)
        if stat is not None:
            self._seen[key] = stat

    def _remove(self, key: str) -> bool:
        path = self.path_for(key)
        self._seen.pop(key, None)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def used_bytes(self, *, excluding: str | None = None) -> int:
        skip = self.path_for(excluding) if excluding is not None else None
        total = 0
        for path in self.base_dir.glob("*.json"):
            if path == skip:
                continue
            stat = self._stat(path)
            if stat is not None:
                total += stat[1]
        return total

    def _scan(self) -> dict[str, tuple[int, int]]:
        found: dict[str, tuple[int, int]] = {}
        for path in self.base_dir.glob("*.json"):
            stat = self._stat(path)
            if stat is not None:
                found[unquote(path.stem)] = stat
        return found

    def poll(self) -> list[StorageChange]:
        """Detect keys changed by other processes and signal local watchers.

        Returns the changes found, each with ``origin`` set to
        :data:`EXTERNAL_CONTEXT`.
        """
        changes: list[StorageChange] = []
        current = self._scan()
        for key, stat in current.items():
            if self._seen.get(key) != stat:
                changes.append(StorageChange(key=key, origin=EXTERNAL_CONTEXT))
        for key in set(self._seen) - set(current):
            changes.append(StorageChange(key=key, origin=EXTERNAL_CONTEXT, deleted=True))

        self._seen = current
        for change in changes:
            self._notify(change)
        return changes


__all__ = [
    "EXTERNAL_CONTEXT",
    "ChangeListener",
    "FileMedium",
    "MemoryMedium",
    "StorageChange",
    "StorageMedium",
    "Unwatch",
]
