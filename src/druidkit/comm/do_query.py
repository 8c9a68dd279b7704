from ..logging_config import get_logger
from ..models.query import Query, QueryResponse
from .connection import _BrokerConnection
from .exceptions import QueryRequestError

# Set the hierarchical logger
logger = get_logger(__name__)

NULL_RESULT_CACHE_ERROR = "Cannot have a null result!"
"""Body fragment of the broker's groupBy cache failure."""


def _is_cache_error(err: QueryRequestError) -> bool:
    return err.status_code == 500 and NULL_RESULT_CACHE_ERROR in err.body


def _do_query(
    connection: _BrokerConnection,
    query: Query,
    retry_on_cache_error: bool = True,
) -> QueryResponse:
    """
    Sends one query and parses the returned rows.

    A broker cache failure is retried once with `useCache` disabled in the query
    context, unless the caller disabled the cache already.

    Raises:
        QueryRequestError: If the broker answers with a non-200 status.
    """
    payload = query.to_dict()
    logger.debug(f"Sending query on data source '{payload['dataSource']}'")
    try:
        rows = connection.post_json(payload)
    except QueryRequestError as e:
        use_cache = payload.get("context", {}).get("useCache")
        if retry_on_cache_error and use_cache is not False and _is_cache_error(e):
            logger.warning(
                "Broker cache error, sending the query again with 'useCache' disabled"
            )
            query.context(useCache=False)
            return _do_query(connection, query, retry_on_cache_error=False)
        raise

    return QueryResponse._from_list(rows)
