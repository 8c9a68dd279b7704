"""
This module provides the high-level "Fluent" API for constructing broker queries.

A [`Query`][druidkit.models.query.builders.Query] accumulates the properties of a
single request (data source, query type, granularity, intervals, aggregations,
post-aggregations, having clause, one root filter, ...) through method chaining,
and lowers them into the broker's JSON document with `to_dict()` / `to_json()`.

Example:
    ```python
    from druidkit import Query

    query = (
        Query("analytics/events")
        .group_by("country", "device")
        .long_sum("clicks", "impressions")
        .filter({"country": ["DE", "US"]})
        .filter(lambda f: f.device.neq("bot"))
        .interval("2024-01-01", "2024-02-01")
        .granularity("day", "Europe/Berlin")
    )
    payload = query.to_json()
    ```
"""

import datetime
import json
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from druidkit.enum import QueryType
from druidkit.helpers import local_time_zone_name, make_interval, split_source, today

from .exceptions import InvalidFilterError
from .expressions import FilterExpression, _flatten_values
from .filters import build_filter, filter_from_mapping
from .having import HavingClause, HavingScope
from .post_aggregation import PostAggregation, PostAggregationScope


SIMPLE_GRANULARITIES = (
    "none",
    "all",
    "second",
    "minute",
    "fifteen_minute",
    "thirty_minute",
    "hour",
)
"""Granularities the broker accepts as plain strings."""

FilterCriteria = Union[
    FilterExpression, Mapping[str, Any], Callable[[Any], FilterExpression]
]


class Query:
    """
    A single broker query built with a fluent interface.

    Every setter returns the query itself, so calls can be chained. A new query
    is initialized with the given data source, `all` granularity, and an
    interval covering the current day up to now.

    Note: Query type
        Aggregation helpers keep the current query type. When none has been
        selected yet (`group_by()`, `topn()`, `time_series()`, `select()`),
        the query defaults to `groupBy`.

    Attributes:
        properties: The raw, not yet serialized properties of the query.
    """

    def __init__(self, source: str, client: Optional[Any] = None):
        """
        Args:
            source: The data source locator, either `"name"` or `"service/name"`.
            client: The optional [`DruidClient`][druidkit.comm.DruidClient] used by `send()`.
        """
        self.properties: Dict[str, Any] = {}
        self._client = client
        self._service: str = ""

        # set some defaults
        self.data_source(source)
        self.granularity("all")
        self.interval(today())

    # --- Identity --

    def data_source(self, source: str) -> "Query":
        """Sets the data source; for `"service/name"` only `name` is sent to the broker."""
        self._service, self.properties["dataSource"] = split_source(source)
        return self

    @property
    def source(self) -> str:
        """The full `"service/name"` locator of the data source."""
        return f"{self._service}/{self.properties['dataSource']}"

    def query_type(self, query_type: Union[QueryType, str]) -> "Query":
        self.properties["queryType"] = QueryType(query_type)
        return self

    def get_query_type(self) -> QueryType:
        """The current query type, `groupBy` when none was set."""
        return self.properties.get("queryType", QueryType.GroupBy)

    def group_by(self, *dimensions: Union[str, Iterable[str]]) -> "Query":
        self.query_type(QueryType.GroupBy)
        self.properties["dimensions"] = _flatten_values(list(dimensions))
        return self

    def topn(self, dimension: str, metric: str, threshold: int) -> "Query":
        self.query_type(QueryType.TopN)
        self.properties["dimension"] = dimension
        self.properties["metric"] = metric
        self.properties["threshold"] = threshold
        return self

    def time_series(self) -> "Query":
        self.query_type(QueryType.Timeseries)
        return self

    def select(
        self,
        dimensions: Optional[List[str]] = None,
        metrics: Optional[List[str]] = None,
        limit: int = 1000,
        page_token: Optional[Dict[str, int]] = None,
    ) -> "Query":
        """
        Turns the query into a paged `select` of raw rows.

        Args:
            dimensions: Dimensions to return (all when empty).
            metrics: Metrics to return (all when empty).
            limit: Rows per page.
            page_token: The `pagingIdentifiers` returned by the previous page.
        """
        self.query_type(QueryType.Select)
        self.properties["dimensions"] = _flatten_values(dimensions or [])
        self.properties["metrics"] = _flatten_values(metrics or [])
        self.properties["pagingSpec"] = {
            "pagingIdentifiers": page_token or {},
            "threshold": limit,
        }
        return self

    # --- Aggregations --

    def _contains_aggregation(self, metric: str) -> bool:
        return any(
            agg["fieldName"] == metric for agg in self.properties.get("aggregations", [])
        )

    def _add_aggregations(self, agg_type: str, metrics: tuple) -> "Query":
        self.query_type(self.get_query_type())
        aggregations = self.properties.setdefault("aggregations", [])
        for metric in _flatten_values(list(metrics)):
            metric = str(metric)
            if self._contains_aggregation(metric):
                continue
            aggregations.append({"type": agg_type, "name": metric, "fieldName": metric})
        return self

    def long_sum(self, *metrics: Union[str, Iterable[str]]) -> "Query":
        """Adds a `longSum` aggregation per metric, skipping metrics already aggregated."""
        return self._add_aggregations("longSum", metrics)

    sum = long_sum

    def double_sum(self, *metrics: Union[str, Iterable[str]]) -> "Query":
        return self._add_aggregations("doubleSum", metrics)

    def count(self, *metrics: Union[str, Iterable[str]]) -> "Query":
        return self._add_aggregations("count", metrics)

    def min(self, *metrics: Union[str, Iterable[str]]) -> "Query":
        return self._add_aggregations("min", metrics)

    def max(self, *metrics: Union[str, Iterable[str]]) -> "Query":
        return self._add_aggregations("max", metrics)

    def distinct_count(self, *dimensions: Union[str, Iterable[str]]) -> "Query":
        """Adds a `hyperUnique` (approximate distinct count) aggregation per dimension."""
        return self._add_aggregations("hyperUnique", dimensions)

    def postagg(
        self,
        builder: Callable[[PostAggregationScope], PostAggregation],
        field_type: str = "long",
    ) -> "Query":
        """
        Adds an arithmetic post-aggregation.

        The fields referenced by the post-aggregation are summed (`longSum` or
        `doubleSum`, depending on `field_type`) so that they exist in the query.

        Example:
            ```python
            query.postagg(lambda p: (p.clicks / p.impressions).as_("ctr"))
            ```

        Raises:
            TypeError: If the builder does not return a post-aggregation.
            ValueError: If the post-aggregation is unnamed or `field_type` is unknown.
        """
        if field_type not in ("long", "double"):
            raise ValueError(f"Unknown post-aggregation field type '{field_type}'.")

        post_agg = builder(PostAggregationScope())
        if not isinstance(post_agg, PostAggregation):
            raise TypeError(
                f"Not a valid post-aggregation: the builder returned '{type(post_agg).__name__}'."
            )
        if not post_agg.is_named:
            raise ValueError("Post-aggregations must be named with 'as_()'.")

        self.properties.setdefault("postAggregations", []).append(post_agg)

        # make sure the required fields are in the query
        if field_type == "double":
            self.double_sum(post_agg.field_names())
        else:
            self.long_sum(post_agg.field_names())
        return self

    def postagg_double(
        self, builder: Callable[[PostAggregationScope], PostAggregation]
    ) -> "Query":
        return self.postagg(builder, field_type="double")

    # --- Filtering --

    def _merge_filter(self, expr: FilterExpression):
        current = self.properties.get("filter")
        self.properties["filter"] = current.and_(expr) if current is not None else expr

    def filter(
        self,
        criteria: Optional[FilterCriteria] = None,
        builder: Optional[Callable[[Any], FilterExpression]] = None,
    ) -> "Query":
        """
        ANDs a filter into the query's root filter.

        `criteria` may be a ready [`FilterExpression`][druidkit.models.query.expressions.FilterExpression],
        a `{dimension: value(s)}` mapping (see
        [`filter_from_mapping()`][druidkit.models.query.filters.filter_from_mapping]) or a
        builder function receiving a [`FilterScope`][druidkit.models.query.filters.FilterScope].
        `builder` is an additional builder function, applied after `criteria`.

        Example:
            ```python
            query.filter({"city": ["Berlin", "Munich"], "country": "DE"})
            query.filter(lambda f: f.age.in_(20, 30) | f.vip.eq("true"))
            ```

        Raises:
            InvalidFilterError: If a builder does not return a filter expression,
                a mapping entry has no values, or `criteria` has an unsupported type.
            NestedExpressionError: If a mapping value is a filter expression.
        """
        exprs: List[FilterExpression] = []
        if criteria is not None:
            if isinstance(criteria, FilterExpression):
                exprs.append(criteria)
            elif isinstance(criteria, Mapping):
                exprs.append(filter_from_mapping(criteria))
            elif callable(criteria):
                exprs.append(build_filter(criteria))
            else:
                raise InvalidFilterError(
                    f"Not a valid filter: unsupported criteria '{type(criteria).__name__}'."
                )
        if builder is not None:
            exprs.append(build_filter(builder))

        # the query is only changed once every criterion is valid
        for expr in exprs:
            self._merge_filter(expr)
        return self

    def having(self, builder: Callable[[HavingScope], HavingClause]) -> "Query":
        """
        ANDs a having clause into the query.

        Example:
            ```python
            query.having(lambda h: h.clicks.gt(100) & h.impressions.lt(10_000))
            ```

        Raises:
            TypeError: If the builder does not return a having clause.
        """
        clause = builder(HavingScope())
        if not isinstance(clause, HavingClause):
            raise TypeError(
                f"Not a valid having clause: the builder returned '{type(clause).__name__}'."
            )
        current = self.properties.get("having")
        self.properties["having"] = current.and_(clause) if current is not None else clause
        return self

    # --- Time --

    def interval(self, start: Any, end: Any = None) -> "Query":
        """
        Restricts the query to one interval; `end` defaults to now.

        Bounds may be `datetime`/`date` objects, ISO 8601 strings, or integers
        (seconds after today's local midnight). Naive values are read as UTC.
        """
        if end is None:
            end = datetime.datetime.now().astimezone()
        return self.intervals([(start, end)])

    def intervals(self, intervals: Iterable[Iterable[Any]]) -> "Query":
        self.properties["intervals"] = [make_interval(*pair) for pair in intervals]
        return self

    def __getitem__(self, key: Any) -> "Query":
        """`query[start:end]` is a shortcut for `query.interval(start, end)`."""
        if isinstance(key, slice):
            return self.interval(key.start, key.stop)
        return self.interval(key)

    def granularity(self, gran: str, time_zone: Optional[str] = None) -> "Query":
        """
        Sets the time bucketing of the results.

        Simple names (`all`, `none`, `second`, `minute`, `fifteen_minute`,
        `thirty_minute`, `hour`) are sent as is. Everything else is an ISO 8601
        period (`day` is shorthand for `P1D`) sent as a `period` granularity in
        `time_zone`, which defaults to the local time zone.
        """
        gran = str(gran)
        if gran in SIMPLE_GRANULARITIES:
            self.properties["granularity"] = gran
            return self
        if gran == "day":
            gran = "P1D"

        self.properties["granularity"] = {
            "type": "period",
            "period": gran,
            "timeZone": time_zone or local_time_zone_name(),
        }
        return self

    def duration_granularity(
        self, duration_msec: int, time_zone: Optional[str] = None
    ) -> "Query":
        self.properties["granularity"] = {
            "type": "duration",
            "duration": duration_msec,
            "timeZone": time_zone or local_time_zone_name(),
        }
        return self

    # --- Result shaping --

    def limit_spec(self, limit: int, columns: Mapping[str, str]) -> "Query":
        """
        Limits and orders `groupBy` results.

        Args:
            limit: Maximum number of rows.
            columns: `{dimension: direction}` pairs, direction being
                `"ascending"` or `"descending"`.
        """
        self.properties["limitSpec"] = {
            "type": "default",
            "limit": limit,
            "columns": [
                {"dimension": dimension, "direction": direction}
                for dimension, direction in columns.items()
            ],
        }
        return self

    def context(self, **options: Any) -> "Query":
        """Merges options (e.g. `useCache=False`, `timeout=60000`) into the query context."""
        self.properties.setdefault("context", {}).update(options)
        return self

    # --- Dispatch & serialization --

    def send(self):
        """
        Sends the query through the client it was created with.

        Raises:
            RuntimeError: If the query is not bound to a client.
        """
        if self._client is None:
            raise RuntimeError(
                "Query is not bound to a client: use 'DruidClient.query()' or 'DruidClient.send()'."
            )
        return self._client.send(self)

    def to_dict(self) -> Dict[str, Any]:
        """
        Lowers the query into the broker's JSON document.

        Filters, having clauses and post-aggregations are serialized recursively;
        [`MissingValueError`][druidkit.models.query.exceptions.MissingValueError]
        propagates if the filter holds an unbound predicate.
        """
        out: Dict[str, Any] = {}
        for key, value in self.properties.items():
            if key in ("filter", "having"):
                out[key] = value.to_dict()
            elif key == "postAggregations":
                out[key] = [post_agg.to_dict() for post_agg in value]
            elif key == "queryType":
                out[key] = str(value)
            elif isinstance(value, list):
                out[key] = [dict(v) if isinstance(v, dict) else v for v in value]
            elif isinstance(value, dict):
                out[key] = dict(value)
            else:
                out[key] = value
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
