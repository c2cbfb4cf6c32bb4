"""pagesync package bootstrap.

The package keeps a page-builder document consistent between an editor
context and one or more preview contexts: the element tree model, the
validation engine, the in-context broadcast hub and the cross-context
snapshot store live under :mod:`pagesync.core`.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
