"""
Contracts consumed by the resource layer.

- ``IResourceStore``: the storage engine (query execution is opaque)
- ``IJoinSpec``: engine-specific eager-load descriptor
- ``IQueryOptions``: parsed query string (pagination, sort, fields, filter,
  include)
- ``EntityRecord``: the snapshot a store hands back for each row
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .predicates.base import FilterPredicate


@dataclass
class EntityRecord:
    """
    Detached snapshot of one stored entity.

    Attributes:
        fields: Loaded column values, keyed by attribute name.
        relations: Eagerly loaded relationships only, keyed by the name
            they were requested under. A to-one relation
            maps to an ``EntityRecord`` or ``None``; a to-many relation
            maps to a list of records.
    """

    fields: dict[str, Any]
    relations: dict[str, EntityRecord | list[EntityRecord] | None] = field(
        default_factory=dict
    )


class PageLike(Protocol):
    number: int
    size: int


@runtime_checkable
class IJoinSpec(Protocol):
    """Capability: describe an eager-load join to a specific engine."""

    def describe_join(self) -> Any:
        """Return the engine-specific join descriptor."""
        ...


@runtime_checkable
class IQueryOptions(Protocol):
    """Already-parsed, immutable query options for one request."""

    def page(self) -> PageLike: ...

    def sort(self) -> dict[str, int] | None:
        """Ordered ``field -> 1 | -1`` mapping, or ``None`` when unsorted."""
        ...

    def fields_for(self, scope: str) -> list[str] | None:
        """Sparse fieldset for *scope*, or ``None`` meaning all fields."""
        ...

    def filter(self) -> Mapping[str, Any] | None: ...

    def include(self) -> list[str] | None: ...

    def clone(self, override: Mapping[str, Any]) -> IQueryOptions:
        """Return a copy with *override* deep-merged in."""
        ...

    def to_query_string(self) -> str:
        """Serialise to ``?key=value&...`` (empty string when nothing set)."""
        ...


@runtime_checkable
class IResourceStore(Protocol):
    """
    Storage engine contract.

    ``where`` is always the fully composed predicate (filter ∧ constraint);
    stores translate it into their native query form.
    """

    async def find_matching(
        self,
        where: FilterPredicate | None,
        *,
        projection: Sequence[str] | None = None,
        order: Sequence[tuple[str, str]] = (),
        limit: int | None = None,
        offset: int | None = None,
        eager_load: Mapping[str, IJoinSpec] | None = None,
    ) -> tuple[list[EntityRecord], int]:
        """
        Return one page of records plus the total number of matches.

        Each join in *eager_load* is loaded and stored in
        ``EntityRecord.relations`` under its mapping key.
        """
        ...

    async def find_one(
        self,
        where: FilterPredicate,
        *,
        projection: Sequence[str] | None = None,
        eager_load: Mapping[str, IJoinSpec] | None = None,
    ) -> EntityRecord | None: ...

    async def insert(self, attributes: Mapping[str, Any]) -> EntityRecord: ...

    async def update_matching(
        self,
        where: FilterPredicate,
        attributes: Mapping[str, Any],
    ) -> tuple[int, list[EntityRecord] | None]:
        """
        Update every matching row.

        Returns the affected row count and, when the engine can report them
        from the same statement, the updated records (``None`` otherwise).
        """
        ...

    async def delete_matching(self, where: FilterPredicate) -> int: ...
