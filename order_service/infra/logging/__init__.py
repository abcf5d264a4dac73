"""Structured logging for the service.

Example:
    from order_service.infra.logging import setup_logging

    setup_logging()  # reads LoggingSettings (LOG_ env prefix)
"""

from .config import configure_logging, setup_logging, shutdown
from .formatters import JSONFormatter

__all__ = ["JSONFormatter", "configure_logging", "setup_logging", "shutdown"]
