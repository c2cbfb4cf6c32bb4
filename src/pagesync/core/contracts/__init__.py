"""Pydantic contracts shared across pagesync components."""

from __future__ import annotations

from .document import LandingPage, Menu, MenuItem, Page, Template
from .element import ELEMENT_KINDS, ElementKind, PageElement, Tree
from .media import MediaItem
from .update import RealtimeUpdate, UpdateAction, UpdateSubject
from .validation import FieldError, ValidationResult, format_validation_errors

__all__ = [
    "ELEMENT_KINDS",
    "ElementKind",
    "FieldError",
    "LandingPage",
    "MediaItem",
    "Menu",
    "MenuItem",
    "Page",
    "PageElement",
    "RealtimeUpdate",
    "Template",
    "Tree",
    "UpdateAction",
    "UpdateSubject",
    "ValidationResult",
    "format_validation_errors",
]
