"""Pipeline entry points for pagesync.

Currently exposed:

- :class:`EditorSession` — validate → commit → snapshot → broadcast for the
  editor context, implemented in ``editor.py``.
"""

from __future__ import annotations

from .editor import ApplyOutcome, EditorSession

__all__ = ["ApplyOutcome", "EditorSession"]
