"""
Library-level exceptions.

Application errors raised inside a correlation scope are never wrapped;
only the library's own failures use this hierarchy.
"""


class CorrelatorError(Exception):
    """Base exception for all correlator errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "message": self.message,
            "details": self.details,
            "type": type(self).__name__,
        }


class ConfigurationError(CorrelatorError):
    """
    Required initialization missing or invalid settings.

    Fatal: raised immediately on first use, never retried.
    """
    pass


class BindError(CorrelatorError):
    """A target looked bindable but could not be patched."""

    def __init__(self, message: str, target_type: str, details: dict | None = None):
        super().__init__(message, details)
        self.target_type = target_type

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["target_type"] = self.target_type
        return result
