"""
Compile a :class:`FilterPredicate` tree into a SQLAlchemy filter expression.

Uses the strategy pattern: each operator is an isolated class in
``operators/``, registered in a ``SQLAlchemyOperatorRegistry``.
``build_where_clause`` walks the tree and delegates leaf compilation to the
registry. Only mapped column attributes are filterable; anything else
raises :class:`FieldNotFoundError` with suggestions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, and_, asc, desc, inspect, not_, or_

from ..exceptions import FieldNotFoundError
from ..predicates.base import (
    AndPredicate,
    FieldPredicate,
    FilterPredicate,
    NotPredicate,
    OrPredicate,
)
from .operators import DEFAULT_SQL_REGISTRY

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .strategy import SQLAlchemyOperatorRegistry

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_where_clause(
    model: type[Any],
    predicate: FilterPredicate,
    *,
    registry: SQLAlchemyOperatorRegistry | None = None,
) -> ColumnElement[bool]:
    """
    Build a SQLAlchemy filter expression from a predicate tree.

    Args:
        model: The SQLAlchemy model class.
        predicate: Root of the predicate tree.
        registry: Optional custom operator registry.  Falls back to
            ``DEFAULT_SQL_REGISTRY``.

    Returns:
        SQLAlchemy Boolean expression.

    Raises:
        FieldNotFoundError: a leaf names an attribute that is not a mapped
            column of *model*.
    """
    reg = registry or DEFAULT_SQL_REGISTRY
    return _compile_node(model, predicate, reg)


def build_order_by(
    model: type[Any],
    order: Sequence[tuple[str, str]],
) -> list[Any]:
    """Turn ``[("name", "asc"), ("email", "desc")]`` into order clauses."""
    clauses: list[Any] = []
    for field_name, direction in order:
        column = resolve_column(model, field_name)
        clauses.append(desc(column) if direction == "desc" else asc(column))
    return clauses


def column_names(model: type[Any]) -> list[str]:
    """Mapped column attribute names of *model*."""
    return [attr.key for attr in inspect(model).column_attrs]


def resolve_column(model: type[Any], field_name: str) -> Any:
    """
    Return the instrumented column attribute for *field_name*.

    Raises:
        FieldNotFoundError: *field_name* is not a mapped column.
    """
    available = column_names(model)
    if field_name not in available:
        raise FieldNotFoundError(field_name, model_label(model), available)
    return getattr(model, field_name)


def check_fields(model: type[Any], field_names: Iterable[str]) -> None:
    """Raise :class:`FieldNotFoundError` for the first unknown name."""
    available = column_names(model)
    for name in field_names:
        if name not in available:
            raise FieldNotFoundError(name, model_label(model), available)


def model_label(model: type[Any]) -> str:
    return str(getattr(model, "__tablename__", model.__name__))


# ---------------------------------------------------------------------------
# Internal compilation
# ---------------------------------------------------------------------------


def _compile_node(
    model: type[Any],
    node: FilterPredicate,
    registry: SQLAlchemyOperatorRegistry,
) -> ColumnElement[bool]:
    if isinstance(node, AndPredicate):
        return and_(*(_compile_node(model, c, registry) for c in node.children))
    if isinstance(node, OrPredicate):
        return or_(*(_compile_node(model, c, registry) for c in node.children))
    if isinstance(node, NotPredicate):
        return not_(_compile_node(model, node.child, registry))
    if isinstance(node, FieldPredicate):
        column = resolve_column(model, node.field)
        return registry.apply(node.op, column, node.value)
    raise TypeError(f"Unknown predicate node: {type(node).__name__}")
