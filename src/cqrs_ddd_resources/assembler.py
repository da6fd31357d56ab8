"""
ResourceAssembler: entity snapshots → linked resources.

Elements are built with every eagerly loaded relationship wrapped in an
:class:`EmbeddedEntity`. ``flatten`` then swaps each wrapper for a link and
moves the related entity into ``includes``::

    before: attributes = {"title": "Hi", "author_id": 3,
                          "author": EmbeddedEntity({...})}
    after:  attributes = {"title": "Hi", "author_id": 3}
            links      = {"$self": "/posts/1", "author": "/users/3"}
            includes   = [Resource(links={"$self": "/users/3"}, ...)]

Includes are not de-duplicated: two posts by the same author yield two
include entries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .links import SELF, render_link
from .resource import EmbeddedEntity, Resource

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .ports import EntityRecord
    from .relationships import RelationshipDescriptor


class ResourceAssembler:
    """Build single and collection resources and flatten their includes."""

    def __init__(self, *, item_template: str = "/<%=id%>") -> None:
        self._item_template = item_template

    def build_single(self, record: EntityRecord, self_template: str) -> Resource:
        attributes = self._attributes_from(record)
        return Resource(
            links={SELF: render_link(self_template, attributes)},
            attributes=attributes,
        )

    def build_collection(
        self,
        records: Iterable[EntityRecord],
        url: str,
        meta: dict[str, Any] | None = None,
    ) -> Resource:
        template = url + self._item_template
        elements = [self.build_single(r, template) for r in records]
        return Resource(links={SELF: url}, elements=elements, meta=meta)

    def flatten(
        self,
        resource: Resource,
        links: Mapping[str, RelationshipDescriptor],
    ) -> None:
        """
        Replace embedded entities with links, in place.

        For a collection every element is flattened and the elements'
        includes are moved up into the collection's ``includes``.
        """
        if resource.elements is not None:
            for element in resource.elements:
                self.flatten(element, links)
                resource.includes.extend(element.includes)
                element.includes = []
            return

        for name, descriptor in links.items():
            value = resource.attributes.get(name)
            if value is None:
                continue

            if isinstance(value, EmbeddedEntity):
                link = render_link(descriptor.link, resource.attributes)
                resource.includes.append(self._include(value, link))
            elif isinstance(value, list) and all(
                isinstance(item, EmbeddedEntity) for item in value
            ):
                link = render_link(descriptor.link, resource.attributes)
                for item in value:
                    item_link = (
                        render_link(descriptor.item_link, item.attributes)
                        if descriptor.item_link
                        else link
                    )
                    resource.includes.append(self._include(item, item_link))
            else:
                # plain column sharing the relationship's name
                continue

            del resource.attributes[name]
            resource.links[name] = link

    # -- internal -----------------------------------------------------------

    @staticmethod
    def _include(entity: EmbeddedEntity, link: str) -> Resource:
        return Resource(links={SELF: link}, attributes=dict(entity.attributes))

    @classmethod
    def _attributes_from(cls, record: EntityRecord) -> dict[str, Any]:
        attributes: dict[str, Any] = dict(record.fields)
        for name, related in record.relations.items():
            if related is None:
                attributes[name] = None
            elif isinstance(related, list):
                attributes[name] = [cls._embed(r) for r in related]
            else:
                attributes[name] = cls._embed(related)
        return attributes

    @staticmethod
    def _embed(record: EntityRecord) -> EmbeddedEntity:
        return EmbeddedEntity(attributes=dict(record.fields))
