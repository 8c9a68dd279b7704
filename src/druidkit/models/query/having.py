"""
Having clauses: filters applied to aggregated rows of a `groupBy` query.

The algebra mirrors the one of filter expressions: comparisons are the leaves,
`and_()`/`or_()` flatten into an operator of the same kind and `not_()` cancels
a double negation.

**Wire format:**

| Call | Output |
| --- | --- |
| `h.clicks.gt(10)` | `{"type": "greaterThan", "aggregation": "clicks", "value": 10}` |
| `h.clicks.lt(10)` | `{"type": "lessThan", "aggregation": "clicks", "value": 10}` |
| `h.clicks.eq(10)` | `{"type": "equalTo", "aggregation": "clicks", "value": 10}` |
| `a & b` | `{"type": "and", "havingSpecs": [a, b]}` |
| `~a` | `{"type": "not", "havingSpec": a}` |
"""

from typing import Any, Dict, List

from druidkit.enum import FilterOperatorKind


def _check_clause(other: Any):
    if not isinstance(other, HavingClause):
        raise TypeError(
            f"Cannot combine a having clause with '{type(other).__name__}'."
        )


class HavingClause:
    """Base class for having comparisons and operators."""

    def and_(self, other: "HavingClause") -> "HavingClause":
        _check_clause(other)
        return HavingOperator(FilterOperatorKind.And, [self, other])

    def or_(self, other: "HavingClause") -> "HavingClause":
        _check_clause(other)
        return HavingOperator(FilterOperatorKind.Or, [self, other])

    def not_(self) -> "HavingClause":
        return HavingOperator(FilterOperatorKind.Not, [self])

    def __and__(self, other: Any) -> "HavingClause":
        if not isinstance(other, HavingClause):
            return NotImplemented
        return self.and_(other)

    def __or__(self, other: Any) -> "HavingClause":
        if not isinstance(other, HavingClause):
            return NotImplemented
        return self.or_(other)

    def __invert__(self) -> "HavingClause":
        return self.not_()

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


class HavingComparison(HavingClause):
    """Compares one aggregation to a numeric value."""

    def __init__(self, comparison: str, aggregation: str, value: Any):
        self.comparison = comparison
        self.aggregation = aggregation
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.comparison,
            "aggregation": self.aggregation,
            "value": self.value,
        }


class HavingOperator(HavingClause):
    def __init__(self, kind: FilterOperatorKind, clauses: List[HavingClause]):
        self.kind = FilterOperatorKind(kind)
        for clause in clauses:
            _check_clause(clause)
        if not self.kind.takes_many and len(clauses) != 1:
            raise ValueError("The 'not' having operator takes exactly one clause.")
        if self.kind.takes_many and not clauses:
            raise ValueError(f"The '{self.kind}' having operator requires a clause.")
        self._clauses = list(clauses)

    @property
    def clauses(self) -> List[HavingClause]:
        return list(self._clauses)

    def and_(self, other: HavingClause) -> HavingClause:
        if self.kind is FilterOperatorKind.And:
            _check_clause(other)
            self._clauses.append(other)
            return self
        return super().and_(other)

    def or_(self, other: HavingClause) -> HavingClause:
        if self.kind is FilterOperatorKind.Or:
            _check_clause(other)
            self._clauses.append(other)
            return self
        return super().or_(other)

    def not_(self) -> HavingClause:
        if self.kind is FilterOperatorKind.Not:
            return self._clauses[0]
        return super().not_()

    def to_dict(self) -> Dict[str, Any]:
        if self.kind.takes_many:
            return {
                "type": self.kind.value,
                "havingSpecs": [clause.to_dict() for clause in self._clauses],
            }
        return {"type": self.kind.value, "havingSpec": self._clauses[0].to_dict()}


class HavingAggregation:
    """Unbound reference to an aggregation, turned into a clause by a comparison."""

    def __init__(self, name: str):
        self.name = name

    def gt(self, value: Any) -> HavingComparison:
        return HavingComparison("greaterThan", self.name, value)

    def lt(self, value: Any) -> HavingComparison:
        return HavingComparison("lessThan", self.name, value)

    def eq(self, value: Any) -> HavingComparison:
        return HavingComparison("equalTo", self.name, value)

    greater_than = gt
    less_than = lt
    equal_to = eq


class HavingScope:
    """
    The object handed to `Query.having()` builder functions.

    `h.aggregation(name)`, `h.<name>` and `h["<name>"]` all return a
    [`HavingAggregation`][druidkit.models.query.having.HavingAggregation].
    """

    def aggregation(self, name: str) -> HavingAggregation:
        return HavingAggregation(name)

    def __getattr__(self, name: str) -> HavingAggregation:
        if name.startswith("__"):
            raise AttributeError(name)
        return self.aggregation(name)

    def __getitem__(self, name: str) -> HavingAggregation:
        return self.aggregation(name)
