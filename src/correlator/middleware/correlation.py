"""
Correlation ID middleware.

Opens a correlation scope for every admitted request. The ID comes from the
X-Correlation-ID request header when the caller sent one, otherwise a new one
is generated. The ID flows through the entire async call chain of the request
and is echoed back on the response.
"""

from collections.abc import Callable

from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from correlator.core.config import configs, get_settings
from correlator.core.telemetry import (
    log_correlation_id_generated,
    log_correlation_id_received,
    log_correlation_scope_skipped,
)
from correlator.domain.models import CidInfo
from correlator.services.correlation_id import (
    CID_GENERATED,
    CID_RECEIVED_IN_REQUEST,
    correlation_id_service,
)

RequestFilter = Callable[[Request], bool]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware that manages the correlation scope of each request.

    On every incoming request accepted by ``filter`` (all requests when no
    filter is given):
    - Reuses the correlation ID header verbatim, or generates a new ID.
    - Records which of the two happened on ``request.state``.
    - Runs the rest of the request inside a scope bound to that ID.
    - Adds the ID to the response headers.

    Requests rejected by the filter are passed through untouched: no header
    is read or written and no scope is entered.
    """

    def __init__(
        self,
        app: ASGIApp,
        filter: RequestFilter | None = None,
        header_name: str | None = None,
    ) -> None:
        super().__init__(app)
        self.filter = filter
        self.header_name = header_name or get_settings().header_name
        # Raises ConfigurationError when correlator.init() was never called.
        self.logger = configs.logger_factory(__name__)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process each request inside its correlation scope."""
        path = request.url.path
        if self.filter is not None and not self.filter(request):
            log_correlation_scope_skipped(path)
            return await call_next(request)

        cid = request.headers.get(self.header_name)
        if not cid:
            cid = correlation_id_service.create_new_id()
            setattr(request.state, CID_GENERATED, cid)
            log_correlation_id_generated(path, cid)
        else:
            setattr(request.state, CID_RECEIVED_IN_REQUEST, cid)
            log_correlation_id_received(path, cid)

        # Application errors propagate unchanged once the scope is restored.
        with correlation_id_service.store.scope(cid):
            response = await call_next(request)

        response.headers.setdefault(self.header_name, cid)

        self.logger.debug(
            "%s %s -> %d [%s]",
            request.method,
            path,
            response.status_code,
            cid,
        )
        return response


def create_correlation_id_middleware(
    filter: RequestFilter | None = None,
    header_name: str | None = None,
) -> Middleware:
    """Middleware entry for ``FastAPI(middleware=[...])`` / ``Starlette(middleware=[...])``."""
    return Middleware(CorrelationIdMiddleware, filter=filter, header_name=header_name)


def get_cid_info(request: Request) -> CidInfo:
    """Correlation ID details of ``request``."""
    return correlation_id_service.get_cid_info(request)
