from enum import StrEnum


class QueryType(StrEnum):
    """
    Query types understood by the broker.

    The value is emitted verbatim as the `queryType` field of the query document.
    """

    GroupBy = "groupBy"
    """Aggregates rows grouped by one or more dimensions."""

    TopN = "topN"
    """Returns the top `threshold` values of a single dimension ranked by a metric."""

    Timeseries = "timeseries"
    """Aggregates rows into time buckets without grouping by dimensions."""

    Select = "select"
    """Returns raw rows with paging."""
