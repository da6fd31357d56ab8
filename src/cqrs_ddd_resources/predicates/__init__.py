from .base import (
    AndPredicate,
    FieldPredicate,
    FilterPredicate,
    NotPredicate,
    OrPredicate,
)
from .evaluator import MemoryOperator, MemoryOperatorRegistry
from .factory import PredicateFactory
from .operators import FilterOperator
from .operators_memory import build_default_registry

__all__ = [
    # Tree
    "FilterPredicate",
    "FieldPredicate",
    "AndPredicate",
    "OrPredicate",
    "NotPredicate",
    "FilterOperator",
    # Parsing
    "PredicateFactory",
    # In-memory evaluation
    "MemoryOperator",
    "MemoryOperatorRegistry",
    "build_default_registry",
]
