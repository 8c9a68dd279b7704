import json

import pytest

from druidkit import (
    EmptyOperandError,
    FilterDimension,
    FilterOperator,
    FilterOperatorKind,
    MissingValueError,
    NestedExpressionError,
    predicate,
)


def _sel(dimension, value):
    return {"type": "selector", "dimension": dimension, "value": value}


def test_equals_binds_value():
    expr = predicate("device").eq("mobile")
    assert isinstance(expr, FilterDimension)
    assert expr.to_dict() == _sel("device", "mobile")


def test_equals_with_list_delegates_to_in():
    expr = predicate("country").equals(["DE", "US"])
    assert expr.to_dict() == {
        "type": "or",
        "fields": [_sel("country", "DE"), _sel("country", "US")],
    }


def test_in_multiple_values_keeps_input_order():
    values = ["c", "a", "d", "b"]
    expr = predicate("letter").in_(*values)
    assert isinstance(expr, FilterOperator)
    assert expr.kind is FilterOperatorKind.Or
    assert expr.to_dict()["fields"] == [_sel("letter", v) for v in values]


def test_in_flattens_nested_sequences():
    expr = predicate("n").in_(1, [2, (3, [4])])
    assert expr.to_dict()["fields"] == [_sel("n", v) for v in (1, 2, 3, 4)]


def test_in_single_value_is_equals():
    assert predicate("d").in_("x").to_dict() == predicate("d").equals("x").to_dict()
    assert predicate("d").in_(["x"]).to_dict() == predicate("d").equals("x").to_dict()
    assert isinstance(predicate("d").in_(["x"]), FilterDimension)


def test_in_empty_raises():
    with pytest.raises(EmptyOperandError, match="non-empty"):
        predicate("d").in_()
    with pytest.raises(EmptyOperandError):
        predicate("d").in_([], [[]])


def test_in_rejects_nested_expressions():
    with pytest.raises(NestedExpressionError, match="too complex"):
        predicate("d").in_("a", predicate("e").eq("b"))
    # NestedExpressionError is also a TypeError
    with pytest.raises(TypeError):
        predicate("d").in_(["a", predicate("e").eq("b")])


def test_expression_is_not_a_scalar_value():
    with pytest.raises(NestedExpressionError, match="scalar values only"):
        predicate("d").eq(predicate("e").eq("b"))
    with pytest.raises(NestedExpressionError):
        predicate("d").in_(predicate("e").eq("b"))
    with pytest.raises(NestedExpressionError):
        predicate("d").in_([[predicate("e").eq("b")]])
    with pytest.raises(NestedExpressionError):
        predicate("d").neq(predicate("e").eq("b"))


def test_and_chain_is_flattened():
    a = predicate("a").eq("1")
    b = predicate("b").eq("2")
    c = predicate("c").eq("3")
    expr = a.and_(b).and_(c)
    assert expr.to_dict() == {
        "type": "and",
        "fields": [_sel("a", "1"), _sel("b", "2"), _sel("c", "3")],
    }


def test_or_chain_is_flattened():
    expr = predicate("a").eq("1") | predicate("b").eq("2") | predicate("c").eq("3")
    assert expr.kind is FilterOperatorKind.Or
    assert len(expr.children) == 3


def test_flattening_returns_the_same_node():
    root = predicate("a").eq("1").and_(predicate("b").eq("2"))
    assert root.and_(predicate("c").eq("3")) is root


def test_mismatched_kinds_are_not_merged():
    conj = predicate("a").eq("1") & predicate("b").eq("2")
    expr = conj.or_(predicate("c").eq("3"))
    assert expr is not conj
    assert expr.to_dict() == {
        "type": "or",
        "fields": [
            {"type": "and", "fields": [_sel("a", "1"), _sel("b", "2")]},
            _sel("c", "3"),
        ],
    }


def test_in_result_is_wrapped_by_and():
    expr = predicate("country").in_("DE", "US").and_(predicate("device").equals("mobile"))
    assert expr.to_dict() == {
        "type": "and",
        "fields": [
            {"type": "or", "fields": [_sel("country", "DE"), _sel("country", "US")]},
            _sel("device", "mobile"),
        ],
    }


def test_not_wraps_and_double_not_cancels():
    a = predicate("a").eq("1")
    negated = a.not_()
    assert negated.to_dict() == {"type": "not", "field": _sel("a", "1")}
    assert negated.not_() is a
    assert ~~a is a


def test_not_equals_negates_whole_membership():
    expr = predicate("city").not_equals(["Berlin", "Munich"])
    assert expr.to_dict() == {
        "type": "not",
        "field": {
            "type": "or",
            "fields": [_sel("city", "Berlin"), _sel("city", "Munich")],
        },
    }
    assert predicate("city").neq("Berlin").to_dict() == {
        "type": "not",
        "field": _sel("city", "Berlin"),
    }


def test_unbound_predicate_fails_serialization():
    with pytest.raises(MissingValueError, match="No value assigned to dimension 'd'"):
        predicate("d").to_dict()
    with pytest.raises(MissingValueError):
        (predicate("a").eq("1") & predicate("d")).to_dict()


def test_combinators_reject_non_expressions():
    with pytest.raises(TypeError):
        predicate("a").eq("1").and_("b")
    with pytest.raises(TypeError):
        predicate("a").eq("1") | 42


def test_operator_arity_is_enforced():
    a = predicate("a").eq("1")
    with pytest.raises(ValueError, match="at least one child"):
        FilterOperator(FilterOperatorKind.And, [])
    with pytest.raises(ValueError, match="exactly one child"):
        FilterOperator(FilterOperatorKind.Not, [a, a])
    with pytest.raises(ValueError):
        FilterOperator(FilterOperatorKind.Not, [a]).add(a)


def test_single_child_operator_is_not_collapsed():
    expr = FilterOperator(FilterOperatorKind.And, [predicate("a").eq("1")])
    assert expr.to_dict() == {"type": "and", "fields": [_sel("a", "1")]}


def test_serialization_is_deterministic():
    expr = (
        predicate("country").in_("DE", "US", "FR")
        & ~predicate("device").eq("bot")
        & (predicate("age").eq(20) | predicate("age").eq(30))
    )
    assert expr.to_json() == expr.to_json()
    assert json.loads(expr.to_json()) == expr.to_dict()
