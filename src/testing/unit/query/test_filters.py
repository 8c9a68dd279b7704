import pytest

from druidkit import (
    FilterDimension,
    FilterScope,
    InvalidFilterError,
    NestedExpressionError,
    build_filter,
    filter_from_mapping,
    predicate,
)


def _sel(dimension, value):
    return {"type": "selector", "dimension": dimension, "value": value}


def test_mapping_filter_ands_entries_in_order():
    expr = filter_from_mapping({"city": ["Berlin", "Munich"], "country": "DE"})
    assert expr.to_dict() == {
        "type": "and",
        "fields": [
            {"type": "or", "fields": [_sel("city", "Berlin"), _sel("city", "Munich")]},
            _sel("country", "DE"),
        ],
    }


def test_mapping_filter_single_entry():
    assert filter_from_mapping({"country": "DE"}).to_dict() == _sel("country", "DE")


def test_mapping_filter_many_entries_stay_flat():
    expr = filter_from_mapping({"a": "1", "b": "2", "c": ["3", "4"]})
    fields = expr.to_dict()["fields"]
    assert [f["type"] for f in fields] == ["selector", "selector", "or"]


def test_mapping_filter_empty_values_raise():
    with pytest.raises(InvalidFilterError, match="Empty value set for dimension 'city'"):
        filter_from_mapping({"country": "DE", "city": []})


def test_mapping_filter_empty_mapping_raises():
    with pytest.raises(InvalidFilterError):
        filter_from_mapping({})


def test_mapping_filter_rejects_expression_values():
    with pytest.raises(NestedExpressionError, match="dimension 'a'"):
        filter_from_mapping({"a": predicate("b").eq("x")})


def test_scope_synthesizes_predicates():
    scope = FilterScope()
    for dim in (scope.age, scope["age"], scope.dimension("age")):
        assert isinstance(dim, FilterDimension)
        assert dim.dimension == "age"
        assert dim.value is None
    # every access yields a fresh predicate
    assert scope.age is not scope.age


def test_scope_ignores_dunder_lookups():
    with pytest.raises(AttributeError):
        FilterScope().__wrapped__


def test_build_filter_from_function():
    expr = build_filter(lambda f: f.age.in_(20, 30).and_(f.city.equals("Berlin")))
    assert expr.to_dict() == {
        "type": "and",
        "fields": [
            {"type": "or", "fields": [_sel("age", 20), _sel("age", 30)]},
            _sel("city", "Berlin"),
        ],
    }


def test_build_filter_rejects_non_expressions():
    with pytest.raises(InvalidFilterError, match="Not a valid filter"):
        build_filter(lambda f: 42)
    with pytest.raises(InvalidFilterError, match="Not a valid filter"):
        build_filter(lambda f: None)
