from enum import Enum


class FilterOperator(str, Enum):
    """Supported filter operators, spelled the way they appear in queries."""

    # Standard comparison
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"

    # Set / range
    IN = "$in"
    NOT_IN = "$nin"
    BETWEEN = "$between"
    NOT_BETWEEN = "$notBetween"

    # String operations
    LIKE = "$like"
    NOT_LIKE = "$notLike"
    ILIKE = "$ilike"

    # Logical operators
    AND = "$and"
    OR = "$or"
    NOT = "$not"


LOGICAL_OPERATORS: frozenset[str] = frozenset(
    {FilterOperator.AND.value, FilterOperator.OR.value, FilterOperator.NOT.value}
)

FIELD_OPERATORS: frozenset[str] = frozenset(
    m.value for m in FilterOperator if m.value not in LOGICAL_OPERATORS
)
