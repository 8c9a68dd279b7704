import json

import httpx
import pytest

from druidkit import DruidClient, QueryRequestError

BROKER_URL = "http://www.example.com/druid/v2/"
META = {"dimensions": ["d1", "d2"], "metrics": ["m1"], "name": "ignored"}


def _client(handler) -> DruidClient:
    return DruidClient.connect(BROKER_URL, transport=httpx.MockTransport(handler))


def test_metadata_is_fetched_once():
    calls = []

    def broker(request):
        calls.append(request)
        return httpx.Response(200, json=META)

    with _client(broker) as client:
        handler = client.data_source_handler("madvertise/mock")
        assert handler.name == "mock"
        assert handler.dimensions == ["d1", "d2"]
        assert handler.metrics == ["m1"]
        assert handler.metadata.name == "mock"
    assert len(calls) == 1
    assert str(calls[0].url) == "http://www.example.com/druid/v2/datasources/mock"


def test_refresh_fetches_again():
    metas = [META, {"dimensions": ["d1", "d2", "d3"], "metrics": []}]

    def broker(request):
        return httpx.Response(200, json=metas.pop(0))

    with _client(broker) as client:
        handler = client.data_source_handler("mock")
        assert len(handler.dimensions) == 2
        handler.refresh()
        assert len(handler.dimensions) == 3


def test_metadata_failure_propagates():
    with _client(lambda request: httpx.Response(500, text="boom")) as client:
        handler = client.data_source_handler("mock")
        with pytest.raises(QueryRequestError, match="Request failed: 500: boom"):
            handler.dimensions


def test_handler_queries_target_its_data_source():
    payloads = []

    def broker(request):
        payloads.append(json.loads(request.content))
        if len(payloads) == 1:
            return httpx.Response(500, text="Cannot have a null result!")
        return httpx.Response(200, json=[{"timestamp": "t", "event": {"d1": "x"}}])

    with _client(broker) as client:
        handler = client.data_source_handler("madvertise/mock")
        response = handler.query().group_by("d1").send()

    assert response[0]["d1"] == "x"
    assert [p["dataSource"] for p in payloads] == ["mock", "mock"]
    assert payloads[1]["context"] == {"useCache": False}
