"""RealtimeUpdate — the unit of synchronization.

Created by a producer at the moment of a confirmed mutation and delivered by
the broadcast hub to every subscriber of the context. ``timestamp`` is epoch
milliseconds so that updates produced in different contexts compare on the
same scale.
"""

from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

UpdateSubject = Literal["page", "menu", "page-menu"]
UpdateAction = Literal["create", "update", "delete"]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class RealtimeUpdate(BaseModel):
    """Notification that a page, menu or page-menu binding changed."""

    model_config = ConfigDict(frozen=True)

    subject: UpdateSubject
    action: UpdateAction
    payload: Any = None
    timestamp: int = Field(default_factory=now_ms, ge=0)


__all__ = ["RealtimeUpdate", "UpdateAction", "UpdateSubject", "now_ms"]
