"""
Structured logging for correlation scope events.

Logs identifiers and request metadata only, never payloads.
"""

import logging
from typing import Any

import structlog

from correlator.core.config import get_settings
from correlator.services.correlation_id import correlation_id_service


def add_correlation_id(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor adding the current correlation ID, if any."""
    cid = correlation_id_service.get_id()
    if cid is not None:
        event_dict.setdefault("correlation_id", cid)
    return event_dict


# Leave a host application's own structlog setup alone.
if not structlog.is_configured():
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            add_correlation_id,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(get_settings().log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )

def get_logger(name: str) -> Any:
    """Return a structlog logger carrying the correlation ID processor."""
    return structlog.get_logger(name)


logger = get_logger("correlator.telemetry")


def log_correlation_id_received(path: str, cid: str) -> None:
    logger.debug("correlation_id_received", path=path, correlation_id=cid)


def log_correlation_id_generated(path: str, cid: str) -> None:
    logger.debug("correlation_id_generated", path=path, correlation_id=cid)


def log_correlation_scope_skipped(path: str) -> None:
    """Request rejected by the middleware filter; no scope managed."""
    logger.debug("correlation_scope_skipped", path=path)
