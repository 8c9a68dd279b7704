from .druid_client import DruidClient as DruidClient
from .exceptions import QueryRequestError as QueryRequestError
