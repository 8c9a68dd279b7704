import datetime
from typing import Any, Optional, Tuple
from urllib.parse import urlparse


def today() -> datetime.datetime:
    """Local midnight of the current day, timezone-aware."""
    now = datetime.datetime.now().astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def local_time_zone_name() -> str:
    """
    The local time zone abbreviation (e.g. 'UTC', 'CET').

    The broker does not understand 'CEST', which is replaced by 'Europe/Berlin'.
    """
    tz_name = datetime.datetime.now().astimezone().tzname() or "UTC"
    if tz_name == "CEST":
        return "Europe/Berlin"
    return tz_name


def to_datetime(value: Any) -> datetime.datetime:
    """
    Normalizes an interval bound to an aware datetime.

    * `int`: seconds after today's local midnight.
    * `datetime.datetime`: used as is.
    * `datetime.date`: midnight of that day.
    * anything else: its string form parsed as ISO 8601.

    Naive results are assumed to be UTC.

    Raises:
        ValueError: If a string bound is not valid ISO 8601.
    """
    if isinstance(value, bool):
        raise TypeError("Interval bounds cannot be booleans.")
    if isinstance(value, int):
        dt = today() + datetime.timedelta(seconds=value)
    elif isinstance(value, datetime.datetime):
        dt = value
    elif isinstance(value, datetime.date):
        dt = datetime.datetime.combine(value, datetime.time())
    else:
        dt = datetime.datetime.fromisoformat(str(value))

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def make_interval(start: Any, end: Any) -> str:
    """Renders a `start/end` ISO 8601 interval string."""
    return f"{to_datetime(start).isoformat()}/{to_datetime(end).isoformat()}"


def split_source(source: str) -> Tuple[str, str]:
    """
    Splits a `service/data_source` locator.

    Returns:
        The `(service, data_source)` pair; both are the same string when the
        locator holds no '/'.
    """
    parts = source.split("/")
    return parts[0], parts[-1]


def validate_broker_url(broker_url: Optional[str]) -> str:
    """
    Raises:
        ValueError: If the url is not an absolute http(s) url.
    """
    parsed = urlparse(broker_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid broker url: {broker_url}")
    return broker_url
