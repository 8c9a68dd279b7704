"""
Logging for the `druidkit` namespace.

The package logs through the `druidkit` logger hierarchy (one child per module,
e.g. `druidkit.comm.connection` for broker traffic) and stays silent until an
application calls [`setup_sdk_logging()`][druidkit.logging_config.setup_sdk_logging].
"""

import logging as root_logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "druidkit"

_PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _rich_handler(level, console: Optional[Console]) -> root_logging.Handler:
    handler = RichHandler(
        level=level,
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    handler.setFormatter(root_logging.Formatter("[dim]%(name)s[/dim]: %(message)s"))
    return handler


def _stream_handler() -> root_logging.Handler:
    handler = root_logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        root_logging.Formatter(fmt=_PLAIN_FORMAT, datefmt=_PLAIN_DATE_FORMAT)
    )
    return handler


def setup_sdk_logging(
    level="INFO",
    pretty: bool = False,
    console: Optional[Console] = None,
    propagate: bool = False,
):
    """
    Routes the `druidkit` logs to stderr.

    Calling it again replaces the previous handler, so the broker requests,
    cache retries and failures are never logged twice.

    Args:
        level: The threshold, e.g. `"DEBUG"` to see every query sent to the broker.
        pretty: Render through Rich (colors, rich tracebacks) instead of plain lines.
        console: The Rich console used when `pretty` is set.
        propagate: Also hand the records to the root logger.
    """
    logger = root_logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()

    handler = _rich_handler(level, console) if pretty else _stream_handler()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate

    logger.debug(f"druidkit logging set to {level}")


def get_logger(name: Optional[str] = None) -> root_logging.Logger:
    """Returns the `name` logger, or the package's root logger when `name` is None."""
    return root_logging.getLogger(name or ROOT_LOGGER_NAME)
