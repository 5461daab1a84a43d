"""Correlation ID propagation for logical request flows."""

from correlator.core.config import init, is_inited, setup_testing
from correlator.domain.exceptions import BindError, ConfigurationError, CorrelatorError
from correlator.domain.models import CidInfo, CorrelationId
from correlator.events import EventEmitter
from correlator.services.correlation_id import CorrelationIdService, correlation_id_service

__all__ = [
    "BindError",
    "CidInfo",
    "ConfigurationError",
    "CorrelationId",
    "CorrelationIdService",
    "CorrelatorError",
    "EventEmitter",
    "correlation_id_service",
    "init",
    "is_inited",
    "setup_testing",
]
