"""Tests for merging user filters with trusted constraints."""

from __future__ import annotations

import pytest

from cqrs_ddd_resources.exceptions import InvalidFilterError
from cqrs_ddd_resources.predicates import (
    AndPredicate,
    FieldPredicate,
    FilterOperator,
    NotPredicate,
    OrPredicate,
)
from cqrs_ddd_resources.translation import match_id, translate_filter


def test_nothing_to_translate():
    assert translate_filter(None, None) is None
    assert translate_filter({}, None) is None


def test_constraint_only_is_returned_verbatim():
    assert translate_filter(None, {"group_id": 2}) == FieldPredicate(
        "group_id", FilterOperator.EQ, 2
    )


def test_filter_only():
    assert translate_filter({"name": "Wilma"}) == FieldPredicate(
        "name", FilterOperator.EQ, "Wilma"
    )


def test_filter_and_constraint_are_anded_at_top_level():
    result = translate_filter({"name": "Wilma"}, {"group_id": 2})
    assert result == AndPredicate(
        FieldPredicate("name", FilterOperator.EQ, "Wilma"),
        FieldPredicate("group_id", FilterOperator.EQ, 2),
    )


def test_same_field_is_never_merged():
    result = translate_filter({"group_id": 1}, {"group_id": 2})
    assert result == AndPredicate(
        FieldPredicate("group_id", FilterOperator.EQ, 1),
        FieldPredicate("group_id", FilterOperator.EQ, 2),
    )


def test_like_becomes_case_insensitive():
    result = translate_filter({"name": {"$like": "Wil%"}})
    assert result == FieldPredicate("name", FilterOperator.ILIKE, "wil%")


def test_like_rewritten_inside_combinators():
    result = translate_filter(
        {"$or": [{"name": {"$like": "F%"}}, {"$not": {"email": {"$like": "W%"}}}]}
    )
    assert result == OrPredicate(
        FieldPredicate("name", FilterOperator.ILIKE, "f%"),
        NotPredicate(FieldPredicate("email", FilterOperator.ILIKE, "w%")),
    )


def test_constraint_like_is_kept_verbatim():
    result = translate_filter(None, {"name": {"$like": "Fred%"}})
    assert result == FieldPredicate("name", FilterOperator.LIKE, "Fred%")


def test_compound_user_leaf_is_rejected():
    with pytest.raises(InvalidFilterError, match="too complex"):
        translate_filter({"age": {"$gt": 1, "$lt": 5}}, {"group_id": 1})


def test_compound_constraint_leaf_is_allowed():
    result = translate_filter(None, {"age": {"$gt": 1, "$lt": 5}})
    assert isinstance(result, AndPredicate)


# -- constraint isolation -----------------------------------------------------

ROWS = [
    {"id": 1, "name": "Fred", "group_id": 1},
    {"id": 2, "name": "Wilma", "group_id": 2},
    {"id": 3, "name": "Barney", "group_id": 2},
    {"id": 4, "name": "Betty", "group_id": None},
]

CONSTRAINT = {"group_id": 2}


@pytest.mark.parametrize(
    "user_filter",
    [
        None,
        {"name": "Fred"},
        {"group_id": 1},
        {"$or": [{"group_id": 1}, {"group_id": 2}]},
        {"$or": [{"id": {"$gt": 0}}, {"name": "x"}]},
        {"$not": {"group_id": 2}},
        {"$not": {"name": "Nobody"}},
        {"group_id": {"$in": [1, 2, None]}},
        {"$and": [{"$or": [{"group_id": 1}, {"id": 1}]}]},
    ],
)
def test_filter_never_widens_constraint(user_filter, registry):
    allowed = {r["id"] for r in ROWS if r["group_id"] == 2}
    where = translate_filter(user_filter, CONSTRAINT)
    assert where is not None
    matched = {r["id"] for r in ROWS if where.is_satisfied_by(r, registry)}
    assert matched <= allowed


# -- match_id -----------------------------------------------------------------


def test_match_id_without_constraint():
    assert match_id("id", 5) == FieldPredicate("id", FilterOperator.EQ, 5)


def test_match_id_with_constraint():
    assert match_id("id", 5, {"group_id": 1}) == AndPredicate(
        FieldPredicate("id", FilterOperator.EQ, 5),
        FieldPredicate("group_id", FilterOperator.EQ, 1),
    )
