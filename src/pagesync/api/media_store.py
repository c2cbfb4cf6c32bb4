"""
Disk-backed media collaborator.

Accepts a binary blob with its declared content type, enforces the size limit
and the content-type allow-list, writes it under the upload directory as
``<epoch-ms>-<random>.<ext>`` and returns a :class:`MediaItem` whose ``url``
is the root-relative location ``/uploads/<file>``.
"""

from __future__ import annotations

import re
import secrets
import string
from datetime import UTC, datetime
from pathlib import Path

from pagesync.core.contracts.media import MediaCategory, MediaItem
from pagesync.core.contracts.update import now_ms
from pagesync.core.errors import MediaRejected
from pagesync.core.settings import get_logger, load_settings

logger = get_logger("pagesync.media")

ALLOWED_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "video/mp4",
        "video/mov",
        "video/avi",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

_ALPHABET = string.ascii_lowercase + string.digits
_EXTENSION = re.compile(r"[A-Za-z0-9]{1,16}")
_STORED_NAME = re.compile(r"(?P<stamp>\d+)-(?P<random>[a-z0-9]+)\.(?P<ext>[a-z0-9]+)")

_IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
_VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "avi"})


def categorize(content_type: str) -> MediaCategory:
    """Infer the media category from a content type."""
    if content_type.startswith("image/"):
        return "image"
    if content_type.startswith("video/"):
        return "video"
    return "document"


def safe_extension(filename: str) -> str:
    """Lower-cased alphanumeric extension of ``filename``, ``"bin"`` otherwise."""
    _, dot, extension = filename.rpartition(".")
    if dot and _EXTENSION.fullmatch(extension):
        return extension.lower()
    return "bin"


def _categorize_extension(extension: str) -> MediaCategory:
    if extension in _IMAGE_EXTENSIONS:
        return "image"
    if extension in _VIDEO_EXTENSIONS:
        return "video"
    return "document"


class MediaStore:
    """Store uploads on disk after checking size and type."""

    def __init__(self, base_dir: Path | None = None, max_bytes: int | None = None) -> None:
        cfg = load_settings()
        self.base_dir = base_dir if base_dir is not None else cfg.upload_dir
        self.max_bytes = max_bytes if max_bytes is not None else cfg.max_upload_bytes

    def check(self, content_type: str, size: int) -> None:
        """Raise :class:`MediaRejected` if the upload may not be stored."""
        if size > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            raise MediaRejected(f"File size exceeds {limit_mb}MB limit")
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise MediaRejected("File type not allowed")

    def save(self, filename: str, content_type: str, data: bytes) -> MediaItem:
        """Validate and write ``data``; returns the stored item's description."""
        self.check(content_type, len(data))

        stamp = now_ms()
        random_id = "".join(secrets.choice(_ALPHABET) for _ in range(13))
        extension = safe_extension(filename)
        stored_name = f"{stamp}-{random_id}.{extension}"

        self.base_dir.mkdir(parents=True, exist_ok=True)
        (self.base_dir / stored_name).write_bytes(data)
        logger.info("stored upload %s as %s (%d bytes)", filename, stored_name, len(data))

        return MediaItem(
            id=f"{stamp}-{random_id}",
            name=filename,
            type=categorize(content_type),
            url=f"/uploads/{stored_name}",
            size=len(data),
            created_at=datetime.now(UTC),
        )

    def list(self) -> list[MediaItem]:
        """Stored uploads, newest first.

        The original filename is not kept, so ``name`` is the stored file name
        and the category comes from its extension. Files that do not follow
        the ``<epoch-ms>-<random>.<ext>`` layout are skipped.
        """
        if not self.base_dir.is_dir():
            return []
        items: list[MediaItem] = []
        for path in self.base_dir.iterdir():
            match = _STORED_NAME.fullmatch(path.name)
            if match is None or not path.is_file():
                continue
            stamp = int(match["stamp"])
            items.append(
                MediaItem(
                    id=f"{match['stamp']}-{match['random']}",
                    name=path.name,
                    type=_categorize_extension(match["ext"]),
                    url=f"/uploads/{path.name}",
                    size=path.stat().st_size,
                    created_at=datetime.fromtimestamp(stamp / 1000, tz=UTC),
                )
            )
        return sorted(items, key=lambda item: item.created_at, reverse=True)


__all__ = ["ALLOWED_CONTENT_TYPES", "MediaStore", "categorize", "safe_extension"]
