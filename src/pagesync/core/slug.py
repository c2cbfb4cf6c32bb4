"""Slug helpers: generation, format and uniqueness checks.

The uniqueness check is advisory. It asks the persistence layer whether a
candidate is taken, one candidate at a time, and returns the first free one;
two concurrent creators can still settle on the same value between the check
and the write. The persistence layer therefore enforces the unique constraint
atomically as the backstop (see ``pagesync.api.stores.PageStore``).
"""

from __future__ import annotations

import re
from collections.abc import Callable

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

# Used when a title reduces to nothing (e.g. "!!!").
FALLBACK_SLUG = "page"

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def generate_slug(title: str) -> str:
    """Turn a human title into a URL slug.

    >>> generate_slug("Hello, World!")
    'hello-world'
    """
    slug = _DISALLOWED.sub("", title.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


def is_valid_slug(slug: str) -> bool:
    """Return True if ``slug`` is lowercase alnum segments joined by single hyphens."""
    return bool(SLUG_PATTERN.fullmatch(slug))


def unique_slug(
    base: str,
    exists: Callable[[str], bool],
    *,
    max_attempts: int | None = None,
) -> str:
    """Return ``base`` or the first free ``base-2``, ``base-3``, ... candidate.

    Parameters
    ----------
    base:
        Desired slug. It is normalized with :func:`generate_slug`; an empty
        result falls back to ``"page"``.
    exists:
        Callback asking the persistence layer whether a slug is taken. It is
        called sequentially, each call after the previous answer.
    max_attempts:
        Optional bound on the number of candidates tried.

    Raises
    ------
    RuntimeError
        If all ``max_attempts`` candidates were taken.
    """
    root = generate_slug(base) or FALLBACK_SLUG
    candidate = root
    attempt = 1
    while exists(candidate):
        if max_attempts is not None and attempt >= max_attempts:
            raise RuntimeError(f"No free slug for {root!r} after {attempt} attempts")
        attempt += 1
        candidate = f"{root}-{attempt}"
    return candidate


__all__ = [
    "FALLBACK_SLUG",
    "SLUG_PATTERN",
    "generate_slug",
    "is_valid_slug",
    "unique_slug",
]
