"""
Logging configuration for correlator.

Every log line carries the correlation ID of the logical flow that emitted
it, read from the context store at record time.
"""

import logging

from correlator.core.config import get_settings
from correlator.services.correlation_id import correlation_id_service

NO_CORRELATION_ID = "-"


class CorrelationIdFilter(logging.Filter):
    """Logging filter that injects the current correlation ID into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation_id attribute to the log record from context."""
        record.correlation_id = correlation_id_service.get_id() or NO_CORRELATION_ID  # type: ignore[attr-defined]
        return True


def configure_logging(level: str | None = None) -> None:
    """Configure root logging with correlation ID injection.

    Sets up a console handler whose format includes the correlation ID on
    every line. Safe to call repeatedly.
    """
    log_format = "[%(asctime)s] [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s"
    level = level or get_settings().log_level

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates on repeated calls
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    console_handler.addFilter(CorrelationIdFilter())

    root_logger.addHandler(console_handler)
