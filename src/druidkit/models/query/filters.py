"""
Entry points of the filter DSL.

Three ways lead to a [`FilterExpression`][druidkit.models.query.expressions.FilterExpression]:

* [`predicate()`][druidkit.models.query.filters.predicate]: a single unbound predicate
  to bind with `eq()`, `neq()` or `in_()` and combine explicitly.
* [`filter_from_mapping()`][druidkit.models.query.filters.filter_from_mapping]: equality
  filters over several dimensions, ANDed together.
* [`build_filter()`][druidkit.models.query.filters.build_filter]: a free-form builder
  function receiving a [`FilterScope`][druidkit.models.query.filters.FilterScope].
"""

from typing import Any, Callable, Mapping

from .exceptions import InvalidFilterError
from .expressions import FilterDimension, FilterExpression, _flatten_values


def predicate(dimension: str) -> FilterDimension:
    """Returns an unbound predicate on `dimension`."""
    return FilterDimension(dimension)


class FilterScope:
    """
    The object handed to filter builder functions.

    Its single operation is [`dimension()`][druidkit.models.query.filters.FilterScope.dimension];
    attribute and item access are shortcuts for it, so `f.age`, `f["age"]` and
    `f.dimension("age")` are equivalent. Item access is needed for names that are
    not valid identifiers or clash with `dimension` itself.

    Example:
        ```python
        query.filter(lambda f: f.age.in_(20, 30) & f.city.eq("Berlin"))
        query.filter(lambda f: f["user.country"].neq("DE"))
        ```
    """

    def dimension(self, name: str) -> FilterDimension:
        """Returns a fresh unbound predicate on `name`."""
        return FilterDimension(name)

    def __getattr__(self, name: str) -> FilterDimension:
        # Keep the interpreter protocols (copy, pickle, ...) away from the proxy
        if name.startswith("__"):
            raise AttributeError(name)
        return self.dimension(name)

    def __getitem__(self, name: str) -> FilterDimension:
        return self.dimension(name)


def build_filter(builder: Callable[[FilterScope], Any]) -> FilterExpression:
    """
    Evaluates a builder function against a fresh `FilterScope`.

    Raises:
        InvalidFilterError: If the builder does not return a `FilterExpression`.
    """
    expr = builder(FilterScope())
    if not isinstance(expr, FilterExpression):
        raise InvalidFilterError(
            f"Not a valid filter: the builder returned '{type(expr).__name__}'."
        )
    return expr


def filter_from_mapping(mapping: Mapping[str, Any]) -> FilterExpression:
    """
    Builds equality filters from a `{dimension: value(s)}` mapping.

    Every entry becomes `predicate(dimension).in_(values)`, and entries are
    ANDed in iteration order.

    Example:
        ```python
        filter_from_mapping({"city": ["Berlin", "Munich"], "country": "DE"})
        # AND[ OR[city=Berlin, city=Munich], country=DE ]
        ```

    Raises:
        InvalidFilterError: If the mapping is empty or an entry has no values.
        NestedExpressionError: If a value is a filter expression.
    """
    if not mapping:
        raise InvalidFilterError("Cannot build a filter from an empty mapping.")

    last = None
    for dimension, values in mapping.items():
        if not _flatten_values(values):
            raise InvalidFilterError(
                f"Empty value set for dimension '{dimension}' in filter mapping."
            )
        expr = FilterDimension(dimension).in_(values)
        last = expr if last is None else last.and_(expr)
    return last
