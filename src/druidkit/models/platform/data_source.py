"""
Data Source Metadata Module.

Read-only view of the metadata the broker exposes for a data source.
"""

from typing import List

import pydantic


class DataSourceMetadata(pydantic.BaseModel):
    """
    The dimensions and metrics of a data source, as reported by the broker.

    Note: Read-Only Entities
        Instances are built from broker responses by
        [`DruidClient.data_source()`][druidkit.comm.DruidClient.data_source] and
        [`DataSourceHandler`][druidkit.handlers.DataSourceHandler].

    Attributes:
        name: The data source name (without service prefix).
        dimensions: The queryable dimensions.
        metrics: The aggregatable metrics.
    """

    model_config = pydantic.ConfigDict(frozen=True, extra="ignore")

    name: str
    dimensions: List[str] = pydantic.Field(default_factory=list)
    metrics: List[str] = pydantic.Field(default_factory=list)
