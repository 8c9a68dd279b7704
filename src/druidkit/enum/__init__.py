from .filter_operator_kind import FilterOperatorKind as FilterOperatorKind
from .query_type import QueryType as QueryType
