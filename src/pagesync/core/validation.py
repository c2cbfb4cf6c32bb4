"""Validation engine for pages, menus and element trees.

Every validator takes a candidate payload (a mapping or a pydantic model),
collects *all* problems in encounter order and returns a
:class:`~pagesync.core.contracts.validation.ValidationResult`. Validators never
raise: a candidate may be arbitrarily broken (wrong types, invalid JSON,
missing keys) and the caller always gets a result back.

URL checks
----------
Absolute URLs are checked with pydantic's ``AnyUrl`` parser, which follows
the WHATWG URL rules browsers use. Fragment (``#...``) and root-relative
(``/...``) menu targets are accepted without parsing.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from pydantic import AnyUrl, BaseModel, TypeAdapter, ValidationError

from pagesync.core.contracts.element import PageElement
from pagesync.core.contracts.validation import (
    FieldError,
    ValidationResult,
    format_validation_errors,
)
from pagesync.core.slug import is_valid_slug
from pagesync.core.tree import duplicate_ids, iter_elements

MIN_PASSWORD_LENGTH = 6

_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)
_CONTENT_URL = re.compile(r"https?://[^\s<\"]+")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Allowed parent kind per element kind under strict nesting (None = top level).
_NESTING: dict[str, str | None] = {"section": None, "column": "section", "widget": "column"}


# --------------------------------------------------------------------------- #
# Small predicates
# --------------------------------------------------------------------------- #


def is_valid_url(text: str) -> bool:
    """Return True if ``text`` parses as an absolute URL."""
    try:
        _URL_ADAPTER.validate_python(text)
    except ValidationError:
        return False
    return True


def is_valid_email(text: str) -> bool:
    return bool(_EMAIL.match(text))


def _as_mapping(data: Mapping[str, Any] | BaseModel | Any) -> Mapping[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, Mapping):
        return data
    return {}


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return not value


def _parses_as_json(value: Any) -> tuple[bool, Any]:
    """Decode ``value`` if it is a string; already-decoded values pass through."""
    if not isinstance(value, str | bytes | bytearray):
        return True, value
    try:
        return True, json.loads(value)
    except ValueError:
        return False, None


# --------------------------------------------------------------------------- #
# Pages
# --------------------------------------------------------------------------- #


def validate_page(data: Mapping[str, Any] | BaseModel) -> ValidationResult:
    """Check a page payload before it is persisted.

    Rules
    -----
    - ``title``: required, non-blank.
    - ``slug``: required; lowercase alnum segments joined by single hyphens.
    - ``content``: required, non-blank.
    - ``password``: required and at least 6 characters when
      ``visibility == "password_protected"``.
    - every ``http(s)://`` URL inside textual ``content`` must parse; each
      invalid one is reported with its 1-based position among all URLs found.
    """
    page = _as_mapping(data)
    errors: list[FieldError] = []

    if _blank(page.get("title")):
        errors.append(FieldError(field="title", message="Title is required"))

    slug = page.get("slug")
    if _blank(slug):
        errors.append(FieldError(field="slug", message="Slug is required"))
    elif not isinstance(slug, str) or not is_valid_slug(slug):
        errors.append(
            FieldError(
                field="slug",
                message="Slug must contain only lowercase letters, numbers, and hyphens",
            )
        )

    content = page.get("content")
    if _blank(content):
        errors.append(FieldError(field="content", message="Content is required"))

    if page.get("visibility") == "password_protected":
        password = page.get("password")
        if _blank(password):
            errors.append(
                FieldError(
                    field="password",
                    message="Password is required for password protected pages",
                )
            )
        elif not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            errors.append(
                FieldError(
                    field="password",
                    message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                )
            )

    if isinstance(content, str):
        for position, url in enumerate(_CONTENT_URL.findall(content), start=1):
            if not is_valid_url(url):
                errors.append(
                    FieldError(
                        field="content",
                        message=f"Invalid URL found at position {position}: {url}",
                    )
                )

    return ValidationResult.from_errors(errors)


# --------------------------------------------------------------------------- #
# Menus
# --------------------------------------------------------------------------- #


def _menu_item_errors(item: Any, path: str) -> Iterator[FieldError]:
    """Errors for one item, then its children, depth-first."""
    if not isinstance(item, Mapping):
        yield FieldError(
            field="items",
            message=f"Menu item at {path} is missing required fields (id, label, or url)",
        )
        return

    if _blank(item.get("id")) or _blank(item.get("label")) or _blank(item.get("url")):
        yield FieldError(
            field="items",
            message=f"Menu item at {path} is missing required fields (id, label, or url)",
        )

    url = item.get("url")
    if isinstance(url, str) and url and not url.startswith(("#", "/")) and not is_valid_url(url):
        yield FieldError(
            field="items",
            message=f'Invalid URL for menu item "{item.get("label")}" at {path}',
        )

    children = item.get("children")
    if isinstance(children, list):
        for index, child in enumerate(children):
            yield from _menu_item_errors(child, f"{path}.children[{index}]")


def validate_menu(data: Mapping[str, Any] | BaseModel) -> ValidationResult:
    """Check a menu payload before it is persisted.

    ``items`` and ``style`` may be JSON strings (as stored) or already-decoded
    values. Item errors recurse into ``children`` at any depth, parent first.
    """
    menu = _as_mapping(data)
    errors: list[FieldError] = []

    if _blank(menu.get("name")):
        errors.append(FieldError(field="name", message="Menu name is required"))

    raw_items = menu.get("items")
    if raw_items:
        ok, items = _parses_as_json(raw_items)
        if not ok:
            errors.append(FieldError(field="items", message="Menu items must be valid JSON"))
        elif not isinstance(items, list):
            errors.append(FieldError(field="items", message="Menu items must be a JSON array"))
        else:
            for index, item in enumerate(items):
                errors.extend(_menu_item_errors(item, f"[{index}]"))

    raw_style = menu.get("style")
    if raw_style:
        ok, _ = _parses_as_json(raw_style)
        if not ok:
            errors.append(FieldError(field="style", message="Menu style must be valid JSON"))

    return ValidationResult.from_errors(errors)


# --------------------------------------------------------------------------- #
# Element trees
# --------------------------------------------------------------------------- #


def validate_elements(
    tree: Sequence[PageElement], *, strict_nesting: bool = False
) -> ValidationResult:
    """Check document-level invariants the tree type does not enforce.

    - ids are unique across the whole document (one error per duplicated id);
    - widgets name their ``widget_type``;
    - with ``strict_nesting``, sections sit at the top level, columns inside
      sections and widgets inside columns.
    """
    errors: list[FieldError] = [
        FieldError(field="elements", message=f'Duplicate element id "{element_id}"')
        for element_id in duplicate_ids(tree)
    ]

    kinds: dict[str, str] = {}
    for visit in iter_elements(tree):
        element = visit.element
        kinds.setdefault(element.id, element.kind)
        if element.kind == "widget" and _blank(element.widget_type):
            errors.append(
                FieldError(
                    field="elements",
                    message=f'Widget "{element.id}" is missing a widget type',
                )
            )
        if strict_nesting:
            parent_kind = kinds.get(visit.parent_id) if visit.parent_id is not None else None
            expected = _NESTING[element.kind]
            if parent_kind != expected:
                where = f"inside a {parent_kind}" if parent_kind else "at the top level"
                label = f'{element.kind.capitalize()} "{element.id}"'
                errors.append(
                    FieldError(
                        field="elements",
                        message=f"{label} cannot be placed {where}",
                    )
                )

    return ValidationResult.from_errors(errors)


__all__ = [
    "MIN_PASSWORD_LENGTH",
    "format_validation_errors",
    "is_valid_email",
    "is_valid_url",
    "validate_elements",
    "validate_menu",
    "validate_page",
]
