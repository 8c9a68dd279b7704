from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import pandas as pd
import pyarrow as pa


@dataclass
class ResponseRow:
    """
    One row returned by the broker.

    The payload of a row lives under `event` for `groupBy` queries and under
    `result` for `timeseries`, `topN` and `select` queries; `ResponseRow` exposes
    it uniformly through `payload` and mapping-style access.

    Attributes:
        timestamp (Optional[str]): The ISO 8601 timestamp of the row bucket.
        version (Optional[str]): The row format version (`groupBy` only).
        payload (Any): The aggregated values: a dict for `groupBy` and
            `timeseries`, a list of dicts for `topN`.
    """

    timestamp: Optional[str]
    version: Optional[str]
    payload: Any

    @classmethod
    def _from_dict(cls, rdict: Dict[str, Any]) -> "ResponseRow":
        if "event" in rdict:
            payload = rdict["event"]
        else:
            payload = rdict.get("result", {})
        return cls(
            timestamp=rdict.get("timestamp"),
            version=rdict.get("version"),
            payload=payload,
        )

    def __getitem__(self, key: str) -> Any:
        if not isinstance(self.payload, dict):
            raise TypeError(
                f"Row payload is a '{type(self.payload).__name__}', not a mapping."
            )
        return self.payload[key]

    def get(self, key: str, default: Any = None) -> Any:
        if not isinstance(self.payload, dict):
            return default
        return self.payload.get(key, default)

    def records(self) -> List[Dict[str, Any]]:
        """
        Flat records of this row, each carrying the row `timestamp`.

        `topN` rows expand into one record per ranked entry.
        """
        entries = self.payload if isinstance(self.payload, list) else [self.payload]
        return [{"timestamp": self.timestamp, **entry} for entry in entries]


@dataclass
class QueryResponse:
    """
    An iterable collection of the rows returned by a query.

    Example:
        ```python
        from druidkit import DruidClient

        with DruidClient.connect("http://broker:8082/druid/v2/") as client:
            response = client.query("analytics/events").group_by("country").long_sum("clicks").send()
            for row in response:
                print(row.timestamp, row["country"], row["clicks"])

            df = response.to_pandas()
        ```

    Attributes:
        rows (List[ResponseRow]): The rows, in broker order.
    """

    rows: List[ResponseRow] = field(default_factory=list)

    @classmethod
    def _from_list(cls, rlist: List[Dict[str, Any]]) -> "QueryResponse":
        if not isinstance(rlist, list):
            raise ValueError(
                f"Expected a list of rows in the response, got '{type(rlist).__name__}'"
            )
        return cls(rows=[ResponseRow._from_dict(rdict) for rdict in rlist])

    def records(self) -> List[Dict[str, Any]]:
        """All rows flattened into records (see `ResponseRow.records()`)."""
        return [record for row in self.rows for record in row.records()]

    def to_pandas(self) -> pd.DataFrame:
        """
        Converts the response into a DataFrame, one record per line.

        The `timestamp` column is parsed into timezone-aware datetimes.
        """
        df = pd.DataFrame.from_records(self.records())
        if "timestamp" in df.columns:
            df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
        return df

    def to_arrow(self) -> pa.Table:
        """Converts the response into an Arrow table, one record per line."""
        return pa.Table.from_pylist(self.records())

    def __len__(self) -> int:
        """Returns the number of rows in the response."""
        return len(self.rows)

    def __iter__(self) -> Iterator[ResponseRow]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> ResponseRow:
        return self.rows[index]

    def is_empty(self) -> bool:
        """Returns True if the response contains no rows."""
        return len(self.rows) == 0
