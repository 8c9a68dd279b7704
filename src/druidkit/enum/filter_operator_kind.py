from enum import StrEnum


class FilterOperatorKind(StrEnum):
    """
    Boolean operators available when combining filter or having expressions.
    """

    And = "and"  # One or more children, all must match.
    Or = "or"  # One or more children, at least one must match.
    Not = "not"  # Exactly one child, negated.

    @property
    def takes_many(self) -> bool:
        """True for the operators that serialize a list of children."""
        return self is not FilterOperatorKind.Not
