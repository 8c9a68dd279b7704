"""
Broker connection primitives.

`_BrokerConnection` wraps one `httpx.Client` bound to a broker endpoint and
exposes the two request shapes the package needs: POSTing a query document
and GETting metadata below the endpoint path.
"""

from enum import Enum
from typing import Any, Dict, Optional

import httpx

from ..helpers import validate_broker_url
from ..logging_config import get_logger
from .exceptions import QueryRequestError

# Set the hierarchical logger
logger = get_logger(__name__)


class _ConnectionStatus(Enum):
    Open = "open"
    Closed = "closed"


class _BrokerConnection:
    def __init__(self, broker_url: str, http_client: httpx.Client):
        self.broker_url = broker_url
        self._http_client = http_client

    def _check_response(self, response: httpx.Response) -> Any:
        if response.status_code != 200:
            logger.error(
                f"Broker request '{response.request.method} {response.request.url}' "
                f"failed with status {response.status_code}"
            )
            raise QueryRequestError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                f"Broker request '{response.request.method} {response.request.url}' "
                "returned a body that is not JSON"
            )
            raise QueryRequestError(
                response.status_code,
                response.text,
                f"Invalid broker response: expected JSON, got '{response.text[:200]}'",
            ) from e

    def post_json(self, payload: Dict[str, Any]) -> Any:
        """
        POSTs a JSON document to the broker endpoint.

        Raises:
            QueryRequestError: If the broker does not answer with 200 and a JSON body.
            ConnectionError: If the broker cannot be reached.
        """
        try:
            response = self._http_client.post(
                self.broker_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            raise ConnectionError(
                f"Broker at '{self.broker_url}' is unreachable.\nInner err: '{e}'"
            ) from e
        return self._check_response(response)

    def get_json(self, *segments: str) -> Any:
        """
        GETs a resource below the broker endpoint path, e.g. `("datasources", "events")`.

        Raises:
            QueryRequestError: If the broker does not answer with 200 and a JSON body.
            ConnectionError: If the broker cannot be reached.
        """
        url = "/".join([self.broker_url.rstrip("/"), *segments])
        try:
            response = self._http_client.get(url)
        except httpx.TransportError as e:
            raise ConnectionError(
                f"Broker at '{self.broker_url}' is unreachable.\nInner err: '{e}'"
            ) from e
        return self._check_response(response)

    def close(self):
        self._http_client.close()


def _get_connection(
    broker_url: str,
    timeout: float,
    transport: Optional[httpx.BaseTransport] = None,
) -> _BrokerConnection:
    """
    Builds a connection to `broker_url`.

    Raises:
        ValueError: If `broker_url` is not an absolute http(s) url.
    """
    validate_broker_url(broker_url)
    http_client = httpx.Client(timeout=timeout, transport=transport)
    return _BrokerConnection(broker_url=broker_url, http_client=http_client)
