"""
Errors raised while building or serializing filter expressions.

All of them derive from `ValueError` (through `FilterError`), so existing
`except ValueError` handlers keep working. They are raised synchronously at
the point of misuse and are never retried.
"""


class FilterError(ValueError):
    """Base class for every filter construction or serialization error."""


class EmptyOperandError(FilterError):
    """An empty list of values was passed to `in_()`."""


class NestedExpressionError(FilterError, TypeError):
    """A filter expression was used where a scalar value was required."""


class InvalidFilterError(FilterError):
    """
    A filter could not be built from the caller's input.

    Raised when a builder function returns something that is not a
    `FilterExpression`, or when a mapping entry has an empty value set.
    """


class MissingValueError(FilterError):
    """A predicate without an assigned value was serialized."""
