"""
Build predicate trees from the mongo-style mapping the query model uses.

Accepted shapes::

    {"name": "Fred"}                          # equality
    {"name": {"$like": "fre%"}}               # single operator
    {"name": "Fred", "group_id": 2}           # implicit AND
    {"$and": [{...}, {...}]}                  # explicit combinators
    {"$or": [{...}, {...}]}
    {"$not": {...}}

In *strict* mode (user supplied filters) a field mapping with more than
one operator key is rejected. Trusted constraint maps are parsed
non-strictly, where ``{"age": {"$gte": 18, "$lt": 65}}`` becomes an AND.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..exceptions import InvalidFilterError, OperatorNotFoundError
from .base import AndPredicate, FieldPredicate, FilterPredicate, NotPredicate, OrPredicate
from .operators import FIELD_OPERATORS, LOGICAL_OPERATORS, FilterOperator

_VALID_KEYS: list[str] = sorted(FIELD_OPERATORS | LOGICAL_OPERATORS)
_LIST_OPERATORS = frozenset({FilterOperator.IN, FilterOperator.NOT_IN})
_RANGE_OPERATORS = frozenset({FilterOperator.BETWEEN, FilterOperator.NOT_BETWEEN})


class PredicateFactory:
    """Parse and validate mongo-style filter mappings."""

    @staticmethod
    def from_dict(
        data: Mapping[str, Any] | None,
        *,
        strict: bool = True,
    ) -> FilterPredicate | None:
        """
        Create a predicate tree from a mapping.

        Returns ``None`` for an empty or missing mapping.

        Raises:
            InvalidFilterError: on malformed input, or on compound operator
                leaves when *strict* is set.
        """
        if data is None:
            return None
        return PredicateFactory._build(data, strict=strict, path="<root>")

    @staticmethod
    def coerce(
        value: FilterPredicate | Mapping[str, Any] | None,
        *,
        strict: bool = True,
    ) -> FilterPredicate | None:
        """Accept either an already-built predicate or a raw mapping."""
        if value is None or isinstance(value, FilterPredicate):
            return value
        return PredicateFactory.from_dict(value, strict=strict)

    # ------------------------------------------------------------------ #
    # Internal: recursive build                                           #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _build(data: Any, *, strict: bool, path: str) -> FilterPredicate | None:
        if not isinstance(data, Mapping):
            raise InvalidFilterError(
                f"Expected a mapping, got {type(data).__name__}", path=path
            )

        parts: list[FilterPredicate] = []
        for key, value in data.items():
            node_path = f"{path}.{key}"
            if key in LOGICAL_OPERATORS:
                node = PredicateFactory._build_logical(
                    FilterOperator(key), value, strict=strict, path=node_path
                )
            elif key.startswith("$"):
                raise OperatorNotFoundError(key, _VALID_KEYS, path=node_path)
            else:
                node = PredicateFactory._build_field(
                    key, value, strict=strict, path=node_path
                )
            if node is not None:
                parts.append(node)

        if not parts:
            return None
        if len(parts) == 1:
            return parts[0]
        return AndPredicate(*parts)

    @staticmethod
    def _build_logical(
        op: FilterOperator,
        value: Any,
        *,
        strict: bool,
        path: str,
    ) -> FilterPredicate | None:
        if op is FilterOperator.NOT:
            if isinstance(value, list):
                value = {FilterOperator.AND.value: value}
            inner = PredicateFactory._build(value, strict=strict, path=path)
            if inner is None:
                raise InvalidFilterError("'$not' requires a condition", path=path)
            return NotPredicate(inner)

        if not isinstance(value, list):
            raise InvalidFilterError(f"'{op.value}' requires a list", path=path)

        children: list[FilterPredicate] = []
        for idx, child in enumerate(value):
            node = PredicateFactory._build(child, strict=strict, path=f"{path}[{idx}]")
            if node is not None:
                children.append(node)

        if not children:
            return None
        if op is FilterOperator.AND:
            return AndPredicate(*children)
        return OrPredicate(*children)

    @staticmethod
    def _build_field(
        field: str,
        value: Any,
        *,
        strict: bool,
        path: str,
    ) -> FilterPredicate:
        if not isinstance(value, Mapping):
            return FieldPredicate(field, FilterOperator.EQ, value)

        if not value:
            raise InvalidFilterError(f"Empty condition for field '{field}'", path=path)

        if strict and len(value) > 1:
            raise InvalidFilterError(
                f"filter key {field} query is too complex", path=path
            )

        leaves: list[FilterPredicate] = []
        for op_key, operand in value.items():
            if op_key not in FIELD_OPERATORS:
                if not op_key.startswith("$"):
                    raise InvalidFilterError(
                        f"Nested objects are not supported for field '{field}'",
                        path=path,
                    )
                raise OperatorNotFoundError(op_key, _VALID_KEYS, path=path)
            op = FilterOperator(op_key)
            PredicateFactory._validate_operand(op, operand, path=path)
            leaves.append(FieldPredicate(field, op, operand))

        if len(leaves) == 1:
            return leaves[0]
        return AndPredicate(*leaves)

    @staticmethod
    def _validate_operand(op: FilterOperator, operand: Any, *, path: str) -> None:
        if op in _LIST_OPERATORS and not isinstance(operand, list | tuple):
            raise InvalidFilterError(f"'{op.value}' requires a list", path=path)
        if op in _RANGE_OPERATORS and (
            not isinstance(operand, list | tuple) or len(operand) != 2
        ):
            raise InvalidFilterError(
                f"'{op.value}' requires a [low, high] pair", path=path
            )
