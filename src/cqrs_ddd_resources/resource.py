"""
Resource: the output unit handed back to the HTTP layer.

A single resource carries ``attributes`` and ``links`` (``$self`` plus one
entry per included relationship). A collection resource additionally
carries ``elements`` and ``meta``. Both accumulate ``includes``: related
resources pulled out of eagerly loaded attributes by the assembler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .links import SELF


@dataclass(frozen=True)
class EmbeddedEntity:
    """
    Marks an attribute value as an eagerly loaded related entity.

    Only the assembler creates these; ``flatten`` replaces every one of
    them with a link plus an entry in ``includes``.
    """

    attributes: dict[str, Any]


@dataclass
class Resource:
    links: dict[str, str]
    attributes: dict[str, Any] = field(default_factory=dict)
    elements: list[Resource] | None = None
    meta: dict[str, Any] | None = None
    includes: list[Resource] = field(default_factory=list)

    @property
    def self_link(self) -> str | None:
        return self.links.get(SELF)

    @property
    def is_collection(self) -> bool:
        return self.elements is not None

    def add_links(self, links: dict[str, str]) -> None:
        self.links.update(links)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON-compatible wire shape."""
        result: dict[str, Any] = {"links": dict(self.links)}
        if self.elements is not None:
            result["elements"] = [e.to_dict() for e in self.elements]
        else:
            result["attributes"] = dict(self.attributes)
        if self.meta is not None:
            result["meta"] = self.meta
        if self.includes:
            result["includes"] = [i.to_dict() for i in self.includes]
        return result
