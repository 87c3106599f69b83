"""
Logging manager for the EventStore monitor.

All modules obtain their logger through `get_logger(prefix=...)`. Every logger
shares one `eventstore_monitor` handler writing to **stderr**: stdout belongs to
the check verdict and the metric lines that Sensu parses.
"""

import logging
import sys
from typing import Optional

from eventstore_monitor.config import settings

ROOT_LOGGER_NAME = "eventstore_monitor"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"

_configured = False


class PrefixedLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that prepends a fixed component prefix to every message."""

    def __init__(self, logger: logging.Logger, prefix: str = ""):
        super().__init__(logger, {})
        self.prefix = prefix

    def process(self, msg, kwargs):
        if self.prefix:
            return f"{self.prefix} {msg}", kwargs
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach the stderr handler to the package logger and set its level.

    Safe to call repeatedly; the handler is only attached once. Passing `level`
    overrides `settings.LOG_LEVEL` (the CLIs do this for `--verbose`).

    Returns:
        The configured package logger.
    """
    global _configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True

    resolved = (level or settings.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, resolved, logging.WARNING))
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME, prefix: str = "") -> PrefixedLoggerAdapter:
    """
    Get a logger for a module.

    Args:
        name: Logger name, a child of `eventstore_monitor` by convention.
        prefix: Component tag such as `"[GossipValidator]"`.

    Returns:
        A logger adapter that prefixes its messages.
    """
    configure_logging()
    return PrefixedLoggerAdapter(logging.getLogger(name), prefix)
