"""
ResourceCollection: list / get / create / update / delete over one store.

Each operation composes the row selection from the request (filter, id)
and a trusted caller *constraint*, runs it through the injected
:class:`IResourceStore`, and assembles a linked :class:`Resource`.

The constraint is what scopes a collection to the caller, e.g. "only the
users of group 1"::

    users = ResourceCollection(store, CollectionConfig(relationships={...}))
    page = await users.list("/users", options, constraint={"group_id": 1})

A row outside the constraint is indistinguishable from a missing row:
``get`` and ``update`` return ``None``, ``delete`` returns ``0``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .assembler import ResourceAssembler
from .config import CollectionConfig
from .exceptions import ConstraintViolationError
from .links import page_count, page_links
from .payload import ResourcePayload
from .predicates.factory import PredicateFactory
from .relationships import RelationshipResolver, ResolvedRelationships
from .translation import match_id, translate_filter

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .ports import IQueryOptions, IResourceStore
    from .predicates.base import FilterPredicate
    from .predicates.evaluator import MemoryOperatorRegistry
    from .resource import Resource

    Constraint = FilterPredicate | Mapping[str, Any] | None

logger = logging.getLogger("cqrs_ddd.resources")


class ResourceCollection:
    """
    Stateless CRUD orchestration for one resource type.

    Args:
        store: Storage engine executing the composed queries.
        config: Relationships and link conventions.
        registry: In-memory operator registry used to test write payloads
            against the constraint. Defaults to the built-in operators.
    """

    def __init__(
        self,
        store: IResourceStore,
        config: CollectionConfig | None = None,
        *,
        registry: MemoryOperatorRegistry | None = None,
    ) -> None:
        self._store = store
        self._config = config or CollectionConfig()
        self._registry = registry
        self._resolver = RelationshipResolver(self._config.relationships)
        self._assembler = ResourceAssembler(item_template=self._config.item_template)

    @property
    def config(self) -> CollectionConfig:
        return self._config

    async def list(
        self,
        url: str,
        options: IQueryOptions,
        constraint: Constraint = None,
    ) -> Resource:
        """
        Return one page of the collection.

        The resource carries ``meta.count`` (total matches), ``meta.page``
        and ``$first`` / ``$last`` / ``$previous`` / ``$next`` links. With
        ``include`` the related entities end up in ``includes``.

        Raises:
            InvalidFilterError: the request filter is malformed.
            FieldNotFoundError: filter, sort or fields name an unknown field.
        """
        where = translate_filter(options.filter(), constraint)
        resolved = self._resolver.resolve(options.include())
        page = options.page()

        records, total = await self._store.find_matching(
            where,
            projection=_projection(options, self._config),
            order=_order(options),
            limit=page.size,
            offset=(page.number - 1) * page.size,
            eager_load=resolved.joins,
        )

        pages = page_count(total, page.size)
        meta = {
            "count": total,
            "page": {"number": page.number, "size": page.size, "count": pages},
        }
        resource = self._assembler.build_collection(records, url, meta)
        resource.add_links(page_links(url, options, page.number, pages))
        self._flatten(resource, resolved)
        return resource

    async def get(
        self,
        url: str,
        entity_id: Any,
        options: IQueryOptions | None = None,
        constraint: Constraint = None,
    ) -> Resource | None:
        """Return the entity or ``None`` when no row matches id and constraint."""
        resolved = self._resolver.resolve(
            options.include() if options is not None else None
        )
        record = await self._store.find_one(
            match_id(self._config.id_field, entity_id, constraint),
            projection=_projection(options, self._config),
            eager_load=resolved.joins,
        )
        if record is None:
            logger.debug("No %s row for id %r", url, entity_id)
            return None

        resource = self._assembler.build_single(record, self._item_template(url))
        self._flatten(resource, resolved)
        return resource

    async def create(
        self,
        url: str,
        payload: ResourcePayload | Mapping[str, Any],
        constraint: Constraint = None,
    ) -> Resource:
        """
        Insert ``payload["attributes"]`` and return the stored entity.

        Raises:
            InvalidPayloadError: *payload* is not ``{"attributes": {...}}``.
            ConstraintViolationError: the attributes fail *constraint*;
                nothing is inserted.
        """
        attributes = ResourcePayload.parse(payload).attributes
        self._check_constraint(constraint, attributes)

        record = await self._store.insert(attributes)
        resource = self._assembler.build_single(record, self._item_template(url))
        logger.info("Created %s", resource.self_link)
        return resource

    async def update(
        self,
        url: str,
        entity_id: Any,
        payload: ResourcePayload | Mapping[str, Any],
        constraint: Constraint = None,
    ) -> Resource | None:
        """
        Update the row matching id and constraint.

        Returns ``None`` when no row matched. The attributes are checked
        against *constraint* first, so an update can never move a row
        outside the caller's scope.

        Raises:
            InvalidPayloadError: *payload* is not ``{"attributes": {...}}``.
            ConstraintViolationError: the attributes fail *constraint*;
                nothing is updated.
        """
        attributes = ResourcePayload.parse(payload).attributes
        self._check_constraint(constraint, attributes)

        id_field = self._config.id_field
        count, rows = await self._store.update_matching(
            match_id(id_field, entity_id, constraint), attributes
        )
        if count == 0:
            logger.debug("Update of %s id %r matched no rows", url, entity_id)
            return None

        if rows:
            record = rows[0]
        else:
            record = await self._store.find_one(
                match_id(id_field, attributes.get(id_field, entity_id))
            )
            if record is None:
                return None

        resource = self._assembler.build_single(record, self._item_template(url))
        logger.info("Updated %s (%d row(s))", resource.self_link, count)
        return resource

    async def delete(self, entity_id: Any, constraint: Constraint = None) -> int:
        """Delete the row matching id and constraint; return the row count."""
        count = await self._store.delete_matching(
            match_id(self._config.id_field, entity_id, constraint)
        )
        logger.info("Deleted id %r (%d row(s))", entity_id, count)
        return count

    # -- internal -----------------------------------------------------------

    def _item_template(self, url: str) -> str:
        return url + self._config.item_template

    def _flatten(self, resource: Resource, resolved: ResolvedRelationships) -> None:
        if resolved:
            self._assembler.flatten(resource, resolved.links)

    def _check_constraint(
        self,
        constraint: Constraint,
        attributes: dict[str, Any],
    ) -> None:
        predicate = PredicateFactory.coerce(constraint, strict=False)
        if predicate is None:
            return
        if not predicate.is_satisfied_by(attributes, self._registry):
            logger.warning(
                "Rejected payload %r: constraint %r not satisfied",
                attributes,
                predicate,
            )
            raise ConstraintViolationError(constraint, attributes)


def _projection(
    options: IQueryOptions | None,
    config: CollectionConfig,
) -> list[str] | None:
    """Requested sparse fieldset plus the id field, or ``None`` for all."""
    if options is None:
        return None
    fields = options.fields_for(config.fields_scope)
    if not fields:
        return None
    projection = list(dict.fromkeys(fields))
    if config.id_field not in projection:
        projection.append(config.id_field)
    return projection


def _order(options: IQueryOptions) -> list[tuple[str, str]]:
    sort = options.sort()
    if not sort:
        return []
    return [(f, "desc" if d < 0 else "asc") for f, d in sort.items()]
