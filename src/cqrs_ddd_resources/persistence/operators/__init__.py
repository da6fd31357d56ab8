"""
SQLAlchemy operator implementations and default registry.

Usage::

    from cqrs_ddd_resources.persistence.operators import DEFAULT_SQL_REGISTRY

    expr = DEFAULT_SQL_REGISTRY.apply(FilterOperator.EQ, column, value)
"""

from __future__ import annotations

from ..strategy import SQLAlchemyOperatorRegistry
from .set import (
    BetweenOperator,
    InOperator,
    NotBetweenOperator,
    NotInOperator,
)
from .standard import (
    EqualOperator,
    GreaterEqualOperator,
    GreaterThanOperator,
    LessEqualOperator,
    LessThanOperator,
    NotEqualOperator,
)
from .string import (
    ILikeOperator,
    LikeOperator,
    NotLikeOperator,
)


def build_default_sql_registry() -> SQLAlchemyOperatorRegistry:
    """Create a registry with all built-in SQLAlchemy operators."""
    registry = SQLAlchemyOperatorRegistry()
    registry.register_all(
        # Standard comparison
        EqualOperator(),
        NotEqualOperator(),
        GreaterThanOperator(),
        LessThanOperator(),
        GreaterEqualOperator(),
        LessEqualOperator(),
        # Set
        InOperator(),
        NotInOperator(),
        BetweenOperator(),
        NotBetweenOperator(),
        # String
        LikeOperator(),
        NotLikeOperator(),
        ILikeOperator(),
    )
    return registry


DEFAULT_SQL_REGISTRY: SQLAlchemyOperatorRegistry = build_default_sql_registry()

__all__ = [
    "DEFAULT_SQL_REGISTRY",
    "build_default_sql_registry",
    "SQLAlchemyOperatorRegistry",
]
