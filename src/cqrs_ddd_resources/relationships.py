"""Relationship registration and per-request resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .ports import IJoinSpec


@dataclass(frozen=True)
class RelationshipDescriptor:
    """
    How to load and how to link one named relationship.

    Attributes:
        join: Engine-specific eager-load descriptor.
        link: ``<%=field%>`` template rendered against the *parent*
            entity, e.g. ``/users/<%=author_id%>``.
        item_link: Optional template rendered against each *child* of a
            to-many relationship, e.g. ``/posts/<%=id%>``. Without it every
            included child reuses ``link`` as its self link.
    """

    join: IJoinSpec
    link: str
    item_link: str | None = None


@dataclass(frozen=True)
class ResolvedRelationships:
    """
    Join specs for the store and link templates for the assembler.

    Both are keyed by the registered relationship name, which the store
    uses to key the loaded relations whatever the engine calls them.
    """

    joins: dict[str, IJoinSpec] = field(default_factory=dict)
    links: dict[str, RelationshipDescriptor] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.links)


class RelationshipResolver:
    """Pick the registered relationships a request asked to include."""

    def __init__(self, relationships: Mapping[str, RelationshipDescriptor]) -> None:
        self._relationships: Mapping[str, RelationshipDescriptor] = MappingProxyType(
            dict(relationships)
        )

    def resolve(self, requested: Iterable[str] | None) -> ResolvedRelationships:
        """
        Resolve requested names against the registered descriptors.

        Names that were never registered are dropped silently.
        """
        if not requested:
            return ResolvedRelationships()

        picked: dict[str, RelationshipDescriptor] = {}
        for name in requested:
            descriptor = self._relationships.get(name)
            if descriptor is not None and name not in picked:
                picked[name] = descriptor

        return ResolvedRelationships(
            joins={name: d.join for name, d in picked.items()},
            links=picked,
        )
