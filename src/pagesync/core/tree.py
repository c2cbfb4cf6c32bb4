"""Element tree operations: encode, decode, search and structural updates.

Trees are ``tuple[PageElement, ...]`` of frozen nodes. Every transformation
returns a *new* tree and copies only the nodes on the path from the root to
the changed node; all other subtrees are shared by identity (structural
sharing). Update cost is therefore proportional to path depth, and any tree
handed out earlier (to a snapshot, an undo stack, a subscriber) is never
affected by later edits.

Public API
----------
- :func:`serialize` / :func:`deserialize`: stable JSON encoding; exact
  round-trip for every well-formed tree.
- :func:`find_by_id`: depth-first, pre-order search; first match wins.
- :func:`replace_by_id`, :func:`update_element`, :func:`remove_by_id`,
  :func:`insert_element`: path-copying updates.
- :func:`iter_elements`, :func:`collect_ids`, :func:`duplicate_ids`,
  :func:`element_count`: traversal helpers.
- :func:`create_default_elements`, :func:`compact_for_storage`: builder
  conveniences for new pages and preview snapshots.
"""

from __future__ import annotations

import json
import uuid
from collections import Counter
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter, ValidationError

from pagesync.core.contracts.element import PageElement, Tree
from pagesync.core.errors import ElementNotFound, MalformedDocument, SerializationError

_TREE_ADAPTER: TypeAdapter[tuple[PageElement, ...]] = TypeAdapter(tuple[PageElement, ...])

# Inline images above this many characters are replaced by a marker when a
# tree is compacted for storage.
INLINE_IMAGE_LIMIT = 1000
_IMAGE_MARKER_PREFIX_LEN = 50

Replacement = PageElement | Callable[[PageElement], PageElement]


# --------------------------------------------------------------------------- #
# Encoding
# --------------------------------------------------------------------------- #


def to_wire(tree: Sequence[PageElement]) -> list[dict[str, Any]]:
    """Return the JSON-ready list for ``tree``."""
    return [element.to_wire() for element in tree]


def serialize(tree: Sequence[PageElement]) -> str:
    """Encode ``tree`` as a JSON array.

    Raises
    ------
    SerializationError
        If a ``content``/``styles``/``props`` value is not JSON-encodable
        (arbitrary objects, NaN/Infinity floats, circular containers).
    """
    try:
        return json.dumps(to_wire(tree), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Element tree is not JSON-encodable: {exc}") from exc


def deserialize(text: str | bytes) -> Tree:
    """Decode a JSON array of elements into a tree.

    Raises
    ------
    MalformedDocument
        If ``text`` is not valid JSON, is not an array, or any node lacks
        ``id``, ``type``/``kind`` or ``children``.
    """
    try:
        return _TREE_ADAPTER.validate_json(text)
    except ValidationError as exc:
        raise MalformedDocument(_describe(exc)) from exc


def from_wire(data: Any) -> Tree:
    """Build a tree from already-decoded JSON data (see :func:`deserialize`)."""
    try:
        return _TREE_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise MalformedDocument(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    extra = f" (+{exc.error_count() - 1} more)" if exc.error_count() > 1 else ""
    return f"Malformed document at {loc}: {first.get('msg', 'invalid')}{extra}"


# --------------------------------------------------------------------------- #
# Traversal
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class Visit:
    """One step of a pre-order walk."""

    element: PageElement
    depth: int
    parent_id: str | None


def iter_elements(tree: Sequence[PageElement]) -> Iterator[Visit]:
    """Yield every node depth-first, parent before children."""
    stack: list[tuple[PageElement, int, str | None]] = [
        (element, 0, None) for element in reversed(tree)
    ]
    while stack:
        element, depth, parent_id = stack.pop()
        yield Visit(element, depth, parent_id)
        stack.extend((child, depth + 1, element.id) for child in reversed(element.children))


def find_by_id(tree: Sequence[PageElement], element_id: str) -> PageElement | None:
    """Return the first node (pre-order) whose id is ``element_id``, else ``None``."""
    for visit in iter_elements(tree):
        if visit.element.id == element_id:
            return visit.element
    return None


def collect_ids(tree: Sequence[PageElement]) -> list[str]:
    """All ids in pre-order, duplicates included."""
    return [visit.element.id for visit in iter_elements(tree)]


def duplicate_ids(tree: Sequence[PageElement]) -> list[str]:
    """Ids that occur more than once, in order of first appearance."""
    counts = Counter(collect_ids(tree))
    return [element_id for element_id, count in counts.items() if count > 1]


def element_count(tree: Sequence[PageElement]) -> int:
    return sum(1 for _ in iter_elements(tree))


# --------------------------------------------------------------------------- #
# Structural updates
# --------------------------------------------------------------------------- #


def _replace_in(
    nodes: tuple[PageElement, ...],
    element_id: str,
    fn: Callable[[PageElement], Sequence[PageElement]],
) -> tuple[tuple[PageElement, ...], bool]:
    """Splice ``fn(node)`` in place of the first match; copy only the path to it."""
    for index, node in enumerate(nodes):
        if node.id == element_id:
            return nodes[:index] + tuple(fn(node)) + nodes[index + 1 :], True
        if node.children:
            children, hit = _replace_in(node.children, element_id, fn)
            if hit:
                parent = node.model_copy(update={"children": children})
                return nodes[:index] + (parent,) + nodes[index + 1 :], True
    return nodes, False


def replace_by_id(
    tree: Sequence[PageElement], element_id: str, replacement: Replacement
) -> Tree:
    """Return a new tree with the node ``element_id`` replaced.

    Parameters
    ----------
    tree:
        The current tree; it is not modified.
    element_id:
        Id of the node to replace (first pre-order match).
    replacement:
        Either the new node or a function computing it from the old node.

    Raises
    ------
    ElementNotFound
        If no node carries ``element_id``.
    """
    fn = replacement if callable(replacement) else (lambda _old: replacement)
    updated, hit = _replace_in(tuple(tree), element_id, lambda old: (fn(old),))
    if not hit:
        raise ElementNotFound(element_id)
    return updated


def update_element(tree: Sequence[PageElement], element_id: str, **changes: Any) -> Tree:
    """Merge ``changes`` into the node ``element_id`` and return the new tree.

    Field names are the Python attribute names (``widget_type``, not
    ``widgetType``). The merged node is re-validated.
    """

    def merge(old: PageElement) -> PageElement:
        data = {**dict(old), **changes}
        return PageElement.model_validate(data)

    return replace_by_id(tree, element_id, merge)


def remove_by_id(tree: Sequence[PageElement], element_id: str) -> Tree:
    """Return a new tree without the node ``element_id`` (and its subtree)."""
    updated, hit = _replace_in(tuple(tree), element_id, lambda _old: ())
    if not hit:
        raise ElementNotFound(element_id)
    return updated


def insert_element(
    tree: Sequence[PageElement],
    element: PageElement,
    parent_id: str | None = None,
    index: int | None = None,
) -> Tree:
    """Insert ``element`` under ``parent_id`` (top level when ``None``).

    ``index`` follows list-insert semantics; ``None`` appends.
    """

    def splice(children: tuple[PageElement, ...]) -> tuple[PageElement, ...]:
        items = list(children)
        if index is None:
            items.append(element)
        else:
            items.insert(index, element)
        return tuple(items)

    if parent_id is None:
        return splice(tuple(tree))
    return replace_by_id(
        tree,
        parent_id,
        lambda parent: parent.model_copy(update={"children": splice(parent.children)}),
    )


# --------------------------------------------------------------------------- #
# Builder conveniences
# --------------------------------------------------------------------------- #


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def create_default_elements(
    title: str, id_factory: Callable[[str], str] = _new_id
) -> Tree:
    """Starter document for a new page: one section, one full-width column, a heading.

    Ids are drawn in document order (section, column, widget).
    """
    section_id, column_id, widget_id = (
        id_factory("section"),
        id_factory("column"),
        id_factory("widget"),
    )
    heading = PageElement(
        id=widget_id,
        kind="widget",
        widget_type="heading",
        children=(),
        content={"text": title},
        styles={"fontSize": "32px", "fontWeight": "bold", "textAlign": "center"},
    )
    column = PageElement(
        id=column_id,
        kind="column",
        children=(heading,),
        styles={"padding": "20px"},
        props={"width": 12},
    )
    section = PageElement(
        id=section_id,
        kind="section",
        children=(column,),
        styles={"padding": "60px 0px", "backgroundColor": "#f8f9fa"},
    )
    return (section,)


def _compact_value(value: Any) -> Any:
    if (
        isinstance(value, str)
        and value.startswith("data:image/")
        and len(value) > INLINE_IMAGE_LIMIT
    ):
        return f"IMAGE:{value[:_IMAGE_MARKER_PREFIX_LEN]}..."
    return value


def compact_for_storage(tree: Sequence[PageElement]) -> Tree:
    """Replace large inline ``data:image/...`` content values with a short marker.

    Snapshot media are small (browser-style quotas), and a single pasted image
    can exhaust them. Untouched nodes are shared with the input tree.
    """
    out: list[PageElement] = []
    for element in tree:
        children = compact_for_storage(element.children)
        content = {key: _compact_value(value) for key, value in element.content.items()}
        changed_children = any(a is not b for a, b in zip(children, element.children, strict=True))
        if content == element.content and not changed_children:
            out.append(element)
        else:
            out.append(element.model_copy(update={"children": children, "content": content}))
    return tuple(out)


__all__ = [
    "INLINE_IMAGE_LIMIT",
    "Visit",
    "collect_ids",
    "compact_for_storage",
    "create_default_elements",
    "deserialize",
    "duplicate_ids",
    "element_count",
    "find_by_id",
    "from_wire",
    "insert_element",
    "iter_elements",
    "remove_by_id",
    "replace_by_id",
    "serialize",
    "to_wire",
    "update_element",
]
