"""Correlator Domain Layer."""

from correlator.domain.models import (
    CidInfo,
    CorrelationId,
)

from correlator.domain.exceptions import (
    CorrelatorError,
    ConfigurationError,
    BindError,
)

__all__ = [
    # Models
    "CidInfo",
    "CorrelationId",
    # Exceptions
    "CorrelatorError",
    "ConfigurationError",
    "BindError",
]
