"""String operators: $like, $notLike, $ilike."""

from __future__ import annotations

import re
from typing import Any

from ..evaluator import MemoryOperator
from ..operators import FilterOperator


def _sql_pattern_to_regex(pattern: str) -> str:
    """Convert SQL LIKE pattern (``%``, ``_``) to a Python regex."""
    return "".join(
        ".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern
    )


def _like(field_value: Any, pattern: Any, flags: int = 0) -> bool:
    regex = _sql_pattern_to_regex(str(pattern))
    return re.fullmatch(regex, str(field_value), flags | re.DOTALL) is not None


class LikeOperator(MemoryOperator):
    @property
    def name(self) -> FilterOperator:
        return FilterOperator.LIKE

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        if field_value is None:
            return False
        return _like(field_value, condition_value)


class NotLikeOperator(MemoryOperator):
    @property
    def name(self) -> FilterOperator:
        return FilterOperator.NOT_LIKE

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        if field_value is None:
            return False
        return not _like(field_value, condition_value)


class ILikeOperator(MemoryOperator):
    @property
    def name(self) -> FilterOperator:
        return FilterOperator.ILIKE

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        if field_value is None:
            return False
        return _like(field_value, condition_value, re.IGNORECASE)
