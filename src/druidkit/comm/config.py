"""
Configuration Module.

This module defines the configuration used by the broker client.
"""

from dataclasses import dataclass

DEFAULT_HTTP_TIMEOUT_SEC = 2 * 60
"""Default read timeout for broker requests, in seconds."""


@dataclass
class ClientConfig:
    """
    Configuration settings for a [`DruidClient`][druidkit.comm.DruidClient].

    Note: Internal Usage
        This is currently **not a user-facing class**. It is automatically
        instantiated by [`DruidClient.connect()`][druidkit.comm.DruidClient.connect].
    """

    broker_url: str
    """The broker query endpoint, e.g. `http://broker:8082/druid/v2/`."""

    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SEC
    """Timeout in seconds applied to every request sent to the broker."""

    retry_on_cache_error: bool = True
    """
    Whether a query failing with the broker's `Cannot have a null result!`
    cache error is sent again once with `useCache` disabled.
    """
