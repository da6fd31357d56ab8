"""
Filter translation: merge a user filter with a trusted constraint.

The constraint is always AND-ed onto the *whole* filter at the top level,
never merged field by field and never pushed into ``$or`` / ``$not``
branches, so no filter can widen what the constraint admits.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .predicates.base import (
    AndPredicate,
    FieldPredicate,
    FilterPredicate,
    NotPredicate,
    OrPredicate,
)
from .predicates.factory import PredicateFactory
from .predicates.operators import FilterOperator

logger = logging.getLogger("cqrs_ddd.resources.translation")

_CASE_INSENSITIVE_LIKE = frozenset({FilterOperator.LIKE, FilterOperator.ILIKE})


def translate_filter(
    filter_: FilterPredicate | Mapping[str, Any] | None,
    constraint: FilterPredicate | Mapping[str, Any] | None = None,
) -> FilterPredicate | None:
    """
    Combine a user filter and a caller constraint into one predicate.

    - neither present → ``None``
    - only the constraint → the constraint, verbatim
    - a filter → its tree with ``$like`` leaves made case-insensitive,
      AND-ed with the constraint when one is given

    Raises:
        InvalidFilterError: if the user filter is malformed, including a
            field condition carrying more than one operator.
    """
    user = PredicateFactory.coerce(filter_, strict=True)
    trusted = PredicateFactory.coerce(constraint, strict=False)

    if user is None:
        return trusted

    rewritten = _rewrite(user)
    if trusted is None:
        return rewritten

    logger.debug("Constraining filter %r with %r", rewritten, trusted)
    return AndPredicate(rewritten, trusted)


def match_id(
    id_field: str,
    entity_id: Any,
    constraint: FilterPredicate | Mapping[str, Any] | None = None,
) -> FilterPredicate:
    """Row-selection predicate ``{id_field: entity_id} ∧ constraint``."""
    selector = FieldPredicate(id_field, FilterOperator.EQ, entity_id)
    trusted = PredicateFactory.coerce(constraint, strict=False)
    if trusted is None:
        return selector
    return AndPredicate(selector, trusted)


def _rewrite(node: FilterPredicate) -> FilterPredicate:
    if isinstance(node, AndPredicate):
        return AndPredicate(*(_rewrite(c) for c in node.children))
    if isinstance(node, OrPredicate):
        return OrPredicate(*(_rewrite(c) for c in node.children))
    if isinstance(node, NotPredicate):
        return NotPredicate(_rewrite(node.child))
    if isinstance(node, FieldPredicate):
        return _rewrite_leaf(node)
    raise TypeError(f"Unknown predicate node: {type(node).__name__}")


def _rewrite_leaf(leaf: FieldPredicate) -> FieldPredicate:
    # lower(column) LIKE lower(pattern): matching ignores storage collation
    if leaf.op in _CASE_INSENSITIVE_LIKE and isinstance(leaf.value, str):
        return FieldPredicate(leaf.field, FilterOperator.ILIKE, leaf.value.lower())
    return leaf
