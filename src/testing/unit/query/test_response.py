import pandas as pd
import pyarrow as pa
import pytest

from druidkit import QueryResponse

GROUP_BY_ROWS = [
    {
        "version": "v1",
        "timestamp": "2024-01-01T00:00:00.000Z",
        "event": {"country": "DE", "clicks": 10},
    },
    {
        "version": "v1",
        "timestamp": "2024-01-01T00:00:00.000Z",
        "event": {"country": "US", "clicks": 7},
    },
]

TOPN_ROWS = [
    {
        "timestamp": "2024-01-01T00:00:00.000Z",
        "result": [{"country": "DE", "clicks": 10}, {"country": "US", "clicks": 7}],
    }
]


def test_group_by_rows():
    response = QueryResponse._from_list(GROUP_BY_ROWS)
    assert len(response) == 2
    assert not response.is_empty()
    row = response[0]
    assert row.version == "v1"
    assert row["country"] == "DE"
    assert row.get("missing", 0) == 0
    assert [r["clicks"] for r in response] == [10, 7]


def test_timeseries_rows():
    response = QueryResponse._from_list(
        [{"timestamp": "2024-01-01T00:00:00.000Z", "result": {"clicks": 3}}]
    )
    assert response[0]["clicks"] == 3
    assert response[0].version is None


def test_topn_rows_expand_into_records():
    response = QueryResponse._from_list(TOPN_ROWS)
    assert len(response) == 1
    with pytest.raises(TypeError):
        response[0]["country"]
    assert response.records() == [
        {"timestamp": "2024-01-01T00:00:00.000Z", "country": "DE", "clicks": 10},
        {"timestamp": "2024-01-01T00:00:00.000Z", "country": "US", "clicks": 7},
    ]


def test_empty_response():
    response = QueryResponse._from_list([])
    assert response.is_empty()
    assert response.to_pandas().empty


def test_invalid_body():
    with pytest.raises(ValueError, match="Expected a list of rows"):
        QueryResponse._from_list({"error": "boom"})


def test_to_pandas():
    df = QueryResponse._from_list(GROUP_BY_ROWS).to_pandas()
    assert list(df.columns) == ["timestamp", "country", "clicks"]
    assert df["clicks"].sum() == 17
    assert df["timestamp"].iloc[0] == pd.Timestamp("2024-01-01", tz="UTC")


def test_to_arrow():
    table = QueryResponse._from_list(TOPN_ROWS).to_arrow()
    assert isinstance(table, pa.Table)
    assert table.num_rows == 2
    assert table.column("country").to_pylist() == ["DE", "US"]
