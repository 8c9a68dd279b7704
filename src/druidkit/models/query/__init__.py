from .builders import Query as Query
from .exceptions import (
    EmptyOperandError as EmptyOperandError,
    FilterError as FilterError,
    InvalidFilterError as InvalidFilterError,
    MissingValueError as MissingValueError,
    NestedExpressionError as NestedExpressionError,
)
from .expressions import (
    FilterDimension as FilterDimension,
    FilterExpression as FilterExpression,
    FilterOperator as FilterOperator,
)
from .filters import (
    FilterScope as FilterScope,
    build_filter as build_filter,
    filter_from_mapping as filter_from_mapping,
    predicate as predicate,
)
from .having import HavingClause as HavingClause, HavingScope as HavingScope
from .post_aggregation import (
    PostAggregation as PostAggregation,
    PostAggregationScope as PostAggregationScope,
)
from .response import QueryResponse as QueryResponse, ResponseRow as ResponseRow
