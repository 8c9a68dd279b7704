from .platform import DataSourceMetadata as DataSourceMetadata
from .query import Query as Query, QueryResponse as QueryResponse
