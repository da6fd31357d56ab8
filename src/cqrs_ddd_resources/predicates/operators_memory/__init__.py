"""
In-memory operator implementations.

Usage::

    from cqrs_ddd_resources.predicates.operators_memory import build_default_registry

    registry = build_default_registry()
    result = registry.evaluate(FilterOperator.EQ, actual, expected)
"""

from __future__ import annotations

from ..evaluator import MemoryOperatorRegistry
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


def build_default_registry() -> MemoryOperatorRegistry:
    """
    Create a registry with all built-in operators.

    Returns a fresh instance on every call, so callers may register
    extra operators without affecting anyone else.

    Example:
        >>> registry = build_default_registry()
        >>> registry.evaluate(FilterOperator.EQ, "active", "active")
        True
    """
    registry = MemoryOperatorRegistry()
    registry.register_all(
        # Standard comparison
        EqualOperator(),
        NotEqualOperator(),
        GreaterThanOperator(),
        GreaterEqualOperator(),
        LessThanOperator(),
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


__all__ = [
    "build_default_registry",
    "MemoryOperatorRegistry",
]
