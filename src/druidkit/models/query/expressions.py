import json
from typing import Any, Dict, List, Optional

from druidkit.enum import FilterOperatorKind
from .exceptions import EmptyOperandError, MissingValueError, NestedExpressionError


def _flatten_values(values: Any) -> List[Any]:
    """Flattens arbitrarily nested lists and tuples into a flat, ordered list."""
    if not isinstance(values, (list, tuple)):
        return [values]
    flat = []
    for value in values:
        flat.extend(_flatten_values(value))
    return flat


def _check_operand(other: Any, op: str):
    if not isinstance(other, FilterExpression):
        raise TypeError(
            f"Cannot combine a filter with '{type(other).__name__}' using '{op}': "
            "expected a FilterExpression."
        )


class FilterExpression:
    """
    Base class for every node of the filter expression tree.

    A filter is a tree whose leaves are [`FilterDimension`][druidkit.models.query.expressions.FilterDimension]
    predicates (`dimension == value`) and whose inner nodes are
    [`FilterOperator`][druidkit.models.query.expressions.FilterOperator] instances
    (`and`, `or`, `not`).

    Trees are grown through the combinators defined here. The combinators always
    return the authoritative root of the combined expression: callers must keep
    using the returned value rather than the operand they called the method on.

    | Method | Operator | Result |
    | --- | --- | --- |
    | `a.and_(b)` | `a & b` | `AND(a, b)`, or `a` itself with `b` appended if `a` is an `AND` |
    | `a.or_(b)` | `a \\| b` | `OR(a, b)`, or `a` itself with `b` appended if `a` is an `OR` |
    | `a.not_()` | `~a` | `NOT(a)`, or the negated child if `a` is a `NOT` |

    Example:
        ```python
        from druidkit import predicate

        expr = (
            predicate("country").in_("DE", "US")
            & predicate("device").eq("mobile")
            & ~predicate("browser").eq("ie")
        )
        expr.to_dict()
        ```
    """

    def and_(self, other: "FilterExpression") -> "FilterExpression":
        """
        Combines this expression with `other` in a logical AND.

        Raises:
            TypeError: If `other` is not a `FilterExpression`.
        """
        _check_operand(other, "and")
        return FilterOperator(FilterOperatorKind.And, [self, other])

    def or_(self, other: "FilterExpression") -> "FilterExpression":
        """
        Combines this expression with `other` in a logical OR.

        Raises:
            TypeError: If `other` is not a `FilterExpression`.
        """
        _check_operand(other, "or")
        return FilterOperator(FilterOperatorKind.Or, [self, other])

    def not_(self) -> "FilterExpression":
        """Negates this expression."""
        return FilterOperator(FilterOperatorKind.Not, [self])

    def __and__(self, other: Any) -> "FilterExpression":
        if not isinstance(other, FilterExpression):
            return NotImplemented
        return self.and_(other)

    def __or__(self, other: Any) -> "FilterExpression":
        if not isinstance(other, FilterExpression):
            return NotImplemented
        return self.or_(other)

    def __invert__(self) -> "FilterExpression":
        return self.not_()

    def to_dict(self) -> Dict[str, Any]:
        """Lowers the expression into the broker's filter JSON structure."""
        raise NotImplementedError

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __str__(self) -> str:
        return str(self.to_dict())


class FilterDimension(FilterExpression):
    """
    A predicate asserting that a dimension equals a value.

    A `FilterDimension` starts *unbound* (no value); it becomes usable once
    `eq()` or `in_()` assigns a value. Serializing an unbound predicate raises
    [`MissingValueError`][druidkit.models.query.exceptions.MissingValueError].

    **Wire format:**

    | Call | Output |
    | --- | --- |
    | `predicate("city").eq("Berlin")` | `{"type": "selector", "dimension": "city", "value": "Berlin"}` |
    | `predicate("city").in_("Berlin", "Munich")` | `{"type": "or", "fields": [<selector Berlin>, <selector Munich>]}` |
    | `predicate("city").neq("Berlin")` | `{"type": "not", "field": <selector Berlin>}` |

    Attributes:
        dimension: The name of the dimension the predicate applies to.
        value: The scalar the dimension must be equal to, `None` while unbound.
    """

    def __init__(self, dimension: str, value: Optional[Any] = None):
        self.dimension = dimension
        self.value = value

    def equals(self, value: Any) -> FilterExpression:
        """
        Binds the predicate to `value`.

        Lists and tuples are delegated to [`in_()`][druidkit.models.query.expressions.FilterDimension.in_],
        so the result may be an `OR` operator rather than this predicate.

        Returns:
            This predicate for a scalar value, the result of `in_()` otherwise.

        Raises:
            NestedExpressionError: If `value` is a filter expression.
        """
        if isinstance(value, (list, tuple)):
            return self.in_(value)
        if isinstance(value, FilterExpression):
            raise NestedExpressionError(
                f"Query is too complex: dimension '{self.dimension}' "
                f"accepts scalar values only, got '{type(value).__name__}'."
            )
        self.value = value
        return self

    eq = equals

    def not_equals(self, value: Any) -> FilterExpression:
        """
        Negation of [`equals()`][druidkit.models.query.expressions.FilterDimension.equals].

        Note:
            With several values this negates the whole `OR` produced by `in_()`:
            `neq(["a", "b"])` matches rows whose dimension is *none of* the values.
        """
        return self.equals(value).not_()

    neq = not_equals

    def in_(self, *values: Any) -> FilterExpression:
        """
        Matches any of `values`.

        Nested lists and tuples are flattened first. A single remaining value
        binds this predicate exactly as `equals()` does. Several values produce
        a new `OR` operator holding one fresh predicate per value on the same
        dimension, in input order.

        Raises:
            EmptyOperandError: If no value remains after flattening.
            NestedExpressionError: If one of the values is a filter expression.
        """
        flat = _flatten_values(list(values))
        if not flat:
            raise EmptyOperandError(
                f"Must provide a non-empty list of values to in_() for dimension '{self.dimension}'."
            )

        if len(flat) == 1:
            return self.equals(flat[0])

        for value in flat:
            if isinstance(value, FilterExpression):
                raise NestedExpressionError(
                    f"Query is too complex: in_() on dimension '{self.dimension}' "
                    f"accepts scalar values only, got '{type(value).__name__}'."
                )
        return FilterOperator(
            FilterOperatorKind.Or,
            [FilterDimension(self.dimension, value) for value in flat],
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Raises:
            MissingValueError: If no value has been assigned.
        """
        if self.value is None:
            raise MissingValueError(
                f"No value assigned to dimension '{self.dimension}'."
            )
        return {
            "type": "selector",
            "dimension": self.dimension,
            "value": self.value,
        }

    def __repr__(self) -> str:
        return f"FilterDimension({self.dimension!r}, {self.value!r})"


class FilterOperator(FilterExpression):
    """
    A boolean operator node (`and`, `or`, `not`) owning an ordered list of children.

    Operators are normally produced by the combinators rather than built by hand.
    `and_()` and `or_()` called on an operator of the same kind append to it
    (flattening `a & b & c` into one `AND` with three fields); any other
    combination wraps the operator in a new node.

    **Wire format:** `{"type": "and", "fields": [...]}`, `{"type": "or", "fields": [...]}`,
    `{"type": "not", "field": {...}}`.
    """

    def __init__(self, kind: FilterOperatorKind, children: List[FilterExpression]):
        """
        Args:
            kind: The boolean operator.
            children: The operands, in output order.

        Raises:
            TypeError: If a child is not a `FilterExpression`.
            ValueError: If `and`/`or` receive no children, or `not` does not
                receive exactly one.
        """
        self.kind = FilterOperatorKind(kind)
        children = list(children)
        for child in children:
            _check_operand(child, self.kind.value)

        if self.kind.takes_many and not children:
            raise ValueError(f"The '{self.kind}' operator requires at least one child.")
        if not self.kind.takes_many and len(children) != 1:
            raise ValueError(
                f"The 'not' operator takes exactly one child, got {len(children)}."
            )
        self._children: List[FilterExpression] = children

    @property
    def children(self) -> List[FilterExpression]:
        """A copy of the ordered children list."""
        return list(self._children)

    def add(self, child: FilterExpression):
        """
        Appends a child in place.

        Raises:
            TypeError: If `child` is not a `FilterExpression`.
            ValueError: If the operator is a `not`.
        """
        _check_operand(child, self.kind.value)
        if not self.kind.takes_many:
            raise ValueError("The 'not' operator takes exactly one child.")
        self._children.append(child)

    def and_(self, other: FilterExpression) -> FilterExpression:
        if self.kind is FilterOperatorKind.And:
            self.add(other)
            return self
        return super().and_(other)

    def or_(self, other: FilterExpression) -> FilterExpression:
        if self.kind is FilterOperatorKind.Or:
            self.add(other)
            return self
        return super().or_(other)

    def not_(self) -> FilterExpression:
        # Double negation cancels out
        if self.kind is FilterOperatorKind.Not:
            return self._children[0]
        return super().not_()

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.kind.value}
        if self.kind.takes_many:
            result["fields"] = [child.to_dict() for child in self._children]
        else:
            result["field"] = self._children[0].to_dict()
        return result

    def __repr__(self) -> str:
        return f"FilterOperator({self.kind.value!r}, {self._children!r})"
