"""Core package initializer for pagesync.

Downstream code imports from the submodules directly, e.g.:
    from pagesync.core.settings import settings, load_settings, Settings, get_logger
    from pagesync.core.tree import serialize, deserialize, find_by_id
"""

from __future__ import annotations

__all__ = ["__doc__"]
