"""
Filter predicate tree.

A predicate is one of four node kinds:

- :class:`FieldPredicate`: ``field <op> value``
- :class:`AndPredicate` / :class:`OrPredicate`: combinators over children
- :class:`NotPredicate`: negation of a single child

Nodes are immutable. ``to_dict()`` renders the mongo-style mapping the
query model speaks (``{"name": {"$like": "wil%"}}``), which
:class:`~cqrs_ddd_resources.predicates.factory.PredicateFactory` parses back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .operators import FilterOperator

if TYPE_CHECKING:
    from .evaluator import MemoryOperatorRegistry

_default_registry: MemoryOperatorRegistry | None = None


def _registry_or_default(
    registry: MemoryOperatorRegistry | None,
) -> MemoryOperatorRegistry:
    global _default_registry
    if registry is not None:
        return registry
    if _default_registry is None:
        from .operators_memory import build_default_registry

        _default_registry = build_default_registry()
    return _default_registry


class FilterPredicate:
    """Base class for predicate nodes with logic operator support."""

    __slots__ = ()

    def __and__(self, other: FilterPredicate) -> AndPredicate:
        return AndPredicate(self, other)

    def __or__(self, other: FilterPredicate) -> OrPredicate:
        return OrPredicate(self, other)

    def __invert__(self) -> NotPredicate:
        return NotPredicate(self)

    def is_satisfied_by(
        self,
        candidate: Any,
        registry: MemoryOperatorRegistry | None = None,
    ) -> bool:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def _key(self) -> tuple[Any, ...]:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, repr(self._key())))


class FieldPredicate(FilterPredicate):
    """Leaf node: a single operator applied to a single field."""

    __slots__ = ("field", "op", "value")

    def __init__(self, field: str, op: FilterOperator | str, value: Any) -> None:
        self.field = field
        self.op = FilterOperator(op) if isinstance(op, str) else op
        self.value = value

    def is_satisfied_by(
        self,
        candidate: Any,
        registry: MemoryOperatorRegistry | None = None,
    ) -> bool:
        actual = _resolve_field(candidate, self.field)
        return _registry_or_default(registry).evaluate(self.op, actual, self.value)

    def to_dict(self) -> dict[str, Any]:
        if self.op is FilterOperator.EQ:
            return {self.field: self.value}
        return {self.field: {self.op.value: self.value}}

    def _key(self) -> tuple[Any, ...]:
        return (self.field, self.op, self.value)

    def __repr__(self) -> str:
        return f"FieldPredicate({self.field!r}, {self.op.value!r}, {self.value!r})"


class AndPredicate(FilterPredicate):
    """Logical AND over child predicates."""

    __slots__ = ("children",)

    def __init__(self, *children: FilterPredicate) -> None:
        self.children: tuple[FilterPredicate, ...] = children

    def is_satisfied_by(
        self,
        candidate: Any,
        registry: MemoryOperatorRegistry | None = None,
    ) -> bool:
        return all(c.is_satisfied_by(candidate, registry) for c in self.children)

    def to_dict(self) -> dict[str, Any]:
        return {FilterOperator.AND.value: [c.to_dict() for c in self.children]}

    def _key(self) -> tuple[Any, ...]:
        return self.children

    def __repr__(self) -> str:
        return f"AndPredicate{self.children!r}"


class OrPredicate(FilterPredicate):
    """Logical OR over child predicates."""

    __slots__ = ("children",)

    def __init__(self, *children: FilterPredicate) -> None:
        self.children: tuple[FilterPredicate, ...] = children

    def is_satisfied_by(
        self,
        candidate: Any,
        registry: MemoryOperatorRegistry | None = None,
    ) -> bool:
        return any(c.is_satisfied_by(candidate, registry) for c in self.children)

    def to_dict(self) -> dict[str, Any]:
        return {FilterOperator.OR.value: [c.to_dict() for c in self.children]}

    def _key(self) -> tuple[Any, ...]:
        return self.children

    def __repr__(self) -> str:
        return f"OrPredicate{self.children!r}"


class NotPredicate(FilterPredicate):
    """Logical NOT of a single child predicate."""

    __slots__ = ("child",)

    def __init__(self, child: FilterPredicate) -> None:
        self.child = child

    def is_satisfied_by(
        self,
        candidate: Any,
        registry: MemoryOperatorRegistry | None = None,
    ) -> bool:
        return not self.child.is_satisfied_by(candidate, registry)

    def to_dict(self) -> dict[str, Any]:
        return {FilterOperator.NOT.value: self.child.to_dict()}

    def _key(self) -> tuple[Any, ...]:
        return (self.child,)

    def __repr__(self) -> str:
        return f"NotPredicate({self.child!r})"


def _resolve_field(candidate: Any, field: str) -> Any:
    if isinstance(candidate, dict):
        return candidate.get(field)
    return getattr(candidate, field, None)
