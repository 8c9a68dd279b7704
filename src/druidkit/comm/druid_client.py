"""
Druid Client Entry Point.

This module provides the `DruidClient`, the primary interface for users to
interact with a query broker. It manages the connection lifecycle, serves as a
factory for queries and data source handlers, and dispatches queries.
"""

from typing import Any, Callable, Dict, List, Optional, Type

import httpx

from ..handlers import DataSourceHandler
from ..helpers import split_source
from ..logging_config import get_logger
from ..models.platform import DataSourceMetadata
from ..models.query import Query, QueryResponse
from .config import DEFAULT_HTTP_TIMEOUT_SEC, ClientConfig
from .connection import _BrokerConnection, _ConnectionStatus, _get_connection
from .do_query import _do_query

# Set the hierarchical logger
logger = get_logger(__name__)


class DruidClient:
    """
    The gateway to the query broker.

    Tip: Context Manager Usage
        The `DruidClient` is best used as a context manager to ensure the
        underlying HTTP connection pool is closed.

        ```python
        from druidkit import DruidClient

        with DruidClient.connect("http://broker:8082/druid/v2/") as client:
            print(f"Available data sources: {client.data_sources()}")
        ```
    """

    # --- Private Sentinel Value ---
    # Used to ensure the constructor is only called via the `connect()` factory.
    _CONNECT_SENTINEL = object()

    def __init__(
        self,
        *,
        config: ClientConfig,
        connection: _BrokerConnection,
        sentinel: object,
    ):
        """
        **Internal Constructor** (do not call this directly): please use the
        [`connect()`][druidkit.comm.DruidClient.connect] method instead.

        Args:
            config: The client configuration.
            connection: The broker connection.
            sentinel: Private object used to verify factory-based instantiation.
        """
        if sentinel is not DruidClient._CONNECT_SENTINEL:
            raise RuntimeError(
                "DruidClient must be instantiated using the classmethod DruidClient.connect()."
            )

        self._config = config
        self._connection = connection
        self._status: _ConnectionStatus = _ConnectionStatus.Open
        self._data_source_handlers_cache: Dict[str, DataSourceHandler] = {}
        """Cache for DataSourceHandler instances, keyed by data source name."""

    @classmethod
    def connect(
        cls,
        broker_url: str,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
        retry_on_cache_error: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "DruidClient":
        """
        The primary entry point to the broker.

        No request is issued: the url is only validated, and the HTTP connection
        pool is created lazily by the first request.

        Args:
            broker_url (str): The broker query endpoint (e.g. "http://broker:8082/druid/v2/").
            timeout (float): Request timeout in seconds. Defaults to 120.
            retry_on_cache_error (bool): Send a query again without cache when the
                broker reports a cache failure. Defaults to True.
            transport (Optional[httpx.BaseTransport]): A custom httpx transport
                (proxies, mocking).

        Returns:
            DruidClient: An initialized client.

        Raises:
            ValueError: If `broker_url` is not an absolute http(s) url.
        """
        config = ClientConfig(
            broker_url=broker_url,
            http_timeout=timeout,
            retry_on_cache_error=retry_on_cache_error,
        )
        logger.debug(f"Opening a connection to '{broker_url}'")
        connection = _get_connection(
            broker_url=config.broker_url,
            timeout=config.http_timeout,
            transport=transport,
        )
        return cls(config=config, connection=connection, sentinel=cls._CONNECT_SENTINEL)

    # --- Context Manager Protocol ---

    def __enter__(self) -> "DruidClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        """
        Context manager exit point. Ensures resources are closed.

        Exceptions raised within the `with` block are propagated.
        """
        try:
            self.close()
        except Exception as e:
            logger.error(
                f"Error releasing resources allocated from DruidClient.\nInner err: '{e}'"
            )

    @property
    def broker_url(self) -> str:
        return self._config.broker_url

    # --- Factory Methods ---

    def query(
        self,
        source: str,
        configure: Optional[Callable[[Query], Any]] = None,
    ):
        """
        Creates a query bound to this client.

        Args:
            source: The data source locator (`"name"` or `"service/name"`).
            configure: Optional function receiving the new query. When given,
                the configured query is sent immediately.

        Returns:
            The new [`Query`][druidkit.models.query.Query], or the
            [`QueryResponse`][druidkit.models.query.QueryResponse] when `configure` is given.

        Example:
            ```python
            with DruidClient.connect("http://broker:8082/druid/v2/") as client:
                response = client.query(
                    "analytics/events",
                    lambda q: q.group_by("country").long_sum("clicks"),
                )
            ```
        """
        query = Query(source, client=self)
        if configure is None:
            return query
        configure(query)
        return self.send(query)

    def data_source_handler(self, source: str) -> DataSourceHandler:
        """
        Retrieves a [`DataSourceHandler`][druidkit.handlers.DataSourceHandler] for `source`.

        Handlers are cached per data source name.
        """
        _, name = split_source(source)
        handler = self._data_source_handlers_cache.get(name)
        if handler is None:
            handler = DataSourceHandler(
                source,
                connection=self._connection,
                retry_on_cache_error=self._config.retry_on_cache_error,
            )
            self._data_source_handlers_cache[name] = handler
        return handler

    # --- Main API Methods ---

    def send(self, query: Query) -> QueryResponse:
        """
        Sends one query to the broker.

        Returns:
            QueryResponse: The rows returned by the broker.

        Raises:
            QueryRequestError: If the broker answers with a non-200 status.
            ConnectionError: If the broker cannot be reached.
            MissingValueError: If the query filter holds an unbound predicate.
        """
        self._check_open()
        return _do_query(
            self._connection,
            query,
            retry_on_cache_error=self._config.retry_on_cache_error,
        )

    def data_sources(self) -> List[str]:
        """
        Retrieves the names of all data sources known to the broker.

        Raises:
            QueryRequestError: If the broker answers with a non-200 status.
        """
        self._check_open()
        return self._connection.get_json("datasources")

    def data_source(self, source: str) -> DataSourceMetadata:
        """
        Fetches the dimensions and metrics of a data source, bypassing the handler cache.

        Raises:
            QueryRequestError: If the broker answers with a non-200 status.
        """
        self._check_open()
        _, name = split_source(source)
        meta = self._connection.get_json("datasources", name)
        return DataSourceMetadata.model_validate({**meta, "name": name})

    def clear_data_source_handlers_cache(self):
        self._data_source_handlers_cache = {}

    def _check_open(self):
        if self._status is _ConnectionStatus.Closed:
            raise RuntimeError("DruidClient is closed.")

    def close(self):
        """
        Closes the cached handlers and the HTTP connection pool.

        Invoked automatically when the client is used as a context manager.
        """
        if self._status == _ConnectionStatus.Open:
            for handler in self._data_source_handlers_cache.values():
                handler.close()
            self.clear_data_source_handlers_cache()
            self._connection.close()

        self._status = _ConnectionStatus.Closed
