"""PageElement — the unit of the page document tree.

A document is an ordered sequence of top-level elements (conventionally
``section`` nodes), each carrying an ordered tuple of children. The model is
frozen: a mutation always produces a new tree (see :mod:`pagesync.core.tree`)
so that a previously taken snapshot stays valid after the live tree changes.

Wire format
-----------
The JSON shape matches what the page builder stores under the preview key::

    {"id": "s1", "type": "section", "children": [...],
     "content": {}, "styles": {}, "props": {}}

``kind`` is exposed as ``type`` on the wire (``kind`` is accepted on input as
well) and ``widget_type`` as ``widgetType``. ``content``, ``styles`` and
``props`` are schema-less maps; interpreting them is the renderer's job.

Notes
-----
- ``id``, ``kind`` and ``children`` are required on every node; decoding a
  node without them fails.
- Global id uniqueness and the ``section → column → widget`` nesting
  convention are checked by :func:`pagesync.core.validation.validate_elements`,
  not by this model.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ElementKind = Literal["section", "column", "widget"]

ELEMENT_KINDS: tuple[ElementKind, ...] = ("section", "column", "widget")


class PageElement(BaseModel):
    """A node of the page document tree."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Document-wide unique identifier.")
    kind: ElementKind = Field(..., alias="type", description="Structural role of the node.")
    widget_type: str | None = Field(
        default=None,
        alias="widgetType",
        description="Rendering behavior for widgets, e.g. 'heading' or 'text-editor'.",
    )
    children: tuple[PageElement, ...] = Field(..., description="Ordered child elements.")
    content: dict[str, Any] = Field(default_factory=dict)
    styles: dict[str, Any] = Field(default_factory=dict)
    props: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready dict for this node and its whole subtree.

        ``content``, ``styles`` and ``props`` are deep-copied, so a payload
        handed to subscribers shares nothing with the live tree.
        """
        out: dict[str, Any] = {"id": self.id, "type": self.kind}
        if self.widget_type is not None:
            out["widgetType"] = self.widget_type
        out["children"] = [child.to_wire() for child in self.children]
        out["content"] = deepcopy(self.content)
        out["styles"] = deepcopy(self.styles)
        out["props"] = deepcopy(self.props)
        return out


Tree = tuple[PageElement, ...]


__all__ = ["ELEMENT_KINDS", "ElementKind", "PageElement", "Tree"]
