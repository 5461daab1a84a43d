import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from correlator.domain.exceptions import ConfigurationError

LoggerFactory = Callable[[str], logging.Logger]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CORRELATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    header_name: str = "X-Correlation-ID"
    backend: str = "contextvars"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class Configs:
    """Runtime configuration that has to be provided by the host application."""

    def __init__(self) -> None:
        self._logger_factory: LoggerFactory | None = None

    def set_logger_factory(self, logger_factory: LoggerFactory) -> None:
        self._logger_factory = logger_factory

    @property
    def logger_factory(self) -> LoggerFactory:
        if self._logger_factory is None:
            raise ConfigurationError(
                "The logger factory has to be set as a configuration. "
                "Call correlator.init(...) first."
            )
        return self._logger_factory


configs = Configs()

_inited = False


def init(logger_factory: LoggerFactory | None) -> None:
    """Initialize the library. Must run before the middleware handles requests."""
    global _inited
    if logger_factory is None:
        raise ConfigurationError("The logger factory is required.")
    configs.set_logger_factory(logger_factory)

    # Flag last, once everything above succeeded.
    _inited = True


def is_inited() -> bool:
    """Whether init() has completed."""
    return _inited


def get_testing_logger_factory() -> LoggerFactory:
    def factory(name: str) -> logging.Logger:
        return logging.getLogger(f"correlator.testing.{name}")

    return factory


def setup_testing() -> None:
    """Initialize with testing configurations, without host application wiring."""
    init(get_testing_logger_factory())
