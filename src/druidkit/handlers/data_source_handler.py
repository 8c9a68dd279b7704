"""
Data Source Handling Module.

This module provides the `DataSourceHandler`, a client-side handle for an
*existing* data source. It caches the data source metadata and creates queries
pre-bound to the data source.
"""

from typing import List, Optional

from ..comm.connection import _BrokerConnection
from ..comm.do_query import _do_query
from ..helpers import split_source
from ..logging_config import get_logger
from ..models.platform import DataSourceMetadata
from ..models.query import Query, QueryResponse

# Set the hierarchical logger
logger = get_logger(__name__)


def _fetch_metadata(connection: _BrokerConnection, name: str) -> DataSourceMetadata:
    """
    Raises:
        QueryRequestError: If the broker does not answer with 200.
    """
    meta = connection.get_json("datasources", name)
    return DataSourceMetadata.model_validate({**meta, "name": name})


class DataSourceHandler:
    """
    Represents an existing data source on the broker.

    Metadata is fetched lazily on first access and cached; use
    [`refresh()`][druidkit.handlers.DataSourceHandler.refresh] to fetch it again.

    User intending getting an instance of this class, must use the
    'DruidClient.data_source_handler()' factory.

    Example:
        ```python
        from druidkit import DruidClient

        with DruidClient.connect("http://broker:8082/druid/v2/") as client:
            events = client.data_source_handler("analytics/events")
            print(events.dimensions, events.metrics)
            response = events.query().group_by(events.dimensions[0]).send()
        ```
    """

    def __init__(
        self,
        source: str,
        connection: _BrokerConnection,
        retry_on_cache_error: bool = True,
    ):
        """
        Internal constructor.
        Users can retrieve an instance by using 'DruidClient.data_source_handler()' instead.
        """
        self._source = source
        _, self._name = split_source(source)
        self._connection = connection
        self._retry_on_cache_error = retry_on_cache_error
        self._metadata: Optional[DataSourceMetadata] = None

    @property
    def name(self) -> str:
        """The data source name, without service prefix."""
        return self._name

    @property
    def metadata(self) -> DataSourceMetadata:
        if self._metadata is None:
            self._metadata = self.refresh()
        return self._metadata

    @property
    def dimensions(self) -> List[str]:
        return self.metadata.dimensions

    @property
    def metrics(self) -> List[str]:
        return self.metadata.metrics

    def refresh(self) -> DataSourceMetadata:
        """Fetches the metadata from the broker, replacing the cached copy."""
        logger.debug(f"Fetching metadata of data source '{self._name}'")
        self._metadata = _fetch_metadata(self._connection, self._name)
        return self._metadata

    def query(self) -> Query:
        """Returns a new query on this data source, sent through `DataSourceHandler.send()`."""
        return Query(self._source, client=self)

    def send(self, query: Query) -> QueryResponse:
        """
        Sends `query` against this data source, whatever source it was built for.

        Raises:
            QueryRequestError: If the broker answers with a non-200 status.
        """
        query.data_source(self._source)
        return _do_query(
            self._connection, query, retry_on_cache_error=self._retry_on_cache_error
        )

    def close(self):
        """Drops the cached metadata; the connection is owned by the client."""
        self._metadata = None
