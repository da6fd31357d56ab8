"""Eager-load join descriptor for SQLAlchemy relationships."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, eq=False)
class SQLAlchemyJoin:
    """
    Names one relationship attribute to load eagerly.

    Example::

        RelationshipDescriptor(
            join=SQLAlchemyJoin(Post.author),
            link="/users/<%=author_id%>",
        )
    """

    attribute: Any

    def describe_join(self) -> Any:
        return self.attribute
