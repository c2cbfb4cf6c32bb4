"""MediaItem — what the media collaborator returns for a stored upload."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MediaCategory = Literal["image", "video", "document"]


class MediaItem(BaseModel):
    """Stable identifier, inferred category and retrievable location of an upload."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = Field(description="Original client-side filename.")
    type: MediaCategory
    url: str = Field(description="Root-relative location, e.g. '/uploads/<file>'.")
    size: int = Field(ge=0)
    created_at: datetime = Field(alias="createdAt")


__all__ = ["MediaCategory", "MediaItem"]
