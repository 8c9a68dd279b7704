"""
druidkit - Python client for Druid-style aggregation brokers.

This module provides the main entry points:

- **DruidClient**: Connects to a broker and dispatches queries.
- **Query**: The fluent query builder.
- **Filter DSL**: `predicate()`, `FilterScope` and the filter combinators.

Example:
    >>> from druidkit import DruidClient, predicate
    >>> with DruidClient.connect("http://broker:8082/druid/v2/") as client:
    ...     rows = (
    ...         client.query("analytics/events")
    ...         .group_by("device")
    ...         .long_sum("clicks")
    ...         .filter(predicate("country").in_("DE", "US"))
    ...         .send()
    ...     )
"""

import logging as _logging

# --- Client ---
from .comm import DruidClient as DruidClient, QueryRequestError as QueryRequestError

# --- Handlers ---
from .handlers import DataSourceHandler as DataSourceHandler

# --- Enums ---
from .enum import FilterOperatorKind as FilterOperatorKind, QueryType as QueryType

# --- Models ---
from .models.platform import DataSourceMetadata as DataSourceMetadata
from .models.query import (
    Query as Query,
    QueryResponse as QueryResponse,
    ResponseRow as ResponseRow,
)

# --- Filter DSL ---
from .models.query import (
    FilterDimension as FilterDimension,
    FilterExpression as FilterExpression,
    FilterOperator as FilterOperator,
    FilterScope as FilterScope,
    build_filter as build_filter,
    filter_from_mapping as filter_from_mapping,
    predicate as predicate,
)

# --- Errors ---
from .models.query import (
    EmptyOperandError as EmptyOperandError,
    FilterError as FilterError,
    InvalidFilterError as InvalidFilterError,
    MissingValueError as MissingValueError,
    NestedExpressionError as NestedExpressionError,
)

# --- Logging ---
from .logging_config import get_logger as get_logger, setup_sdk_logging as setup_sdk_logging

# Stay silent until setup_sdk_logging() is called
_logging.getLogger("druidkit").addHandler(_logging.NullHandler())
