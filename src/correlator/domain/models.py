"""
Correlation domain models.

No external dependencies - only Python standard library.
"""

from dataclasses import dataclass

# A correlation ID is an opaque token; nothing parses it.
CorrelationId = str


@dataclass(frozen=True)
class CidInfo:
    """
    Correlation ID details for one inbound request.

    Exactly one of ``received_in_request`` / ``generated`` is set when the
    request went through the middleware; ``current`` equals that one.
    """
    current: CorrelationId | None
    received_in_request: CorrelationId | None = None
    generated: CorrelationId | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "current": self.current,
            "receivedInRequest": self.received_in_request,
            "generated": self.generated,
        }
