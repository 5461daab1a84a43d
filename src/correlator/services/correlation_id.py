"""
Correlation ID service.

Single entry point for application code: run work under a correlation ID,
read the current one from anywhere in the logical flow, and bind callbacks
or emitters to the current scope.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from starlette.requests import Request

from correlator.core.binding import Binder
from correlator.core.config import get_settings
from correlator.core.context import ContextStore, create_store
from correlator.core.ids import create_new_id
from correlator.core.propagation import ContinuationPropagator
from correlator.domain.models import CidInfo, CorrelationId

T = TypeVar("T")

# Keys set on request.state by the correlation middleware.
CID_RECEIVED_IN_REQUEST = "cid_received_in_request"
CID_GENERATED = "cid_generated"


class CorrelationIdService:
    def __init__(self, store: ContextStore) -> None:
        self.store = store
        self.binder = Binder(store)
        self.propagator = ContinuationPropagator(store)

    def create_new_id(self) -> CorrelationId:
        """Create a new correlation ID that can be passed to with_id()."""
        return create_new_id()

    def with_id(self, work: Callable[[], T], cid: CorrelationId | None = None) -> T:
        """Run ``work`` in a scope where get_id() returns ``cid`` (or a new ID).

        If ``work`` is asynchronous it stays scoped and may be awaited outside
        of with_id(); it does not have to be awaited at all.
        """
        return self.store.enter(work, cid)

    async def with_id_async(
        self, work: Callable[[], Awaitable[T]], cid: CorrelationId | None = None
    ) -> T:
        """Awaitable version of with_id()."""
        return await self.store.enter_async(work, cid)

    def bind(self, target: T) -> T:
        """Bind the current correlation scope to a callable or an emitter."""
        return self.binder.bind(target)

    def get_id(self) -> CorrelationId | None:
        """Correlation ID of the current scope, None outside any scope."""
        return self.store.get()

    def get_cid_info(self, request: Request) -> CidInfo:
        return CidInfo(
            current=self.get_id(),
            received_in_request=getattr(request.state, CID_RECEIVED_IN_REQUEST, None),
            generated=getattr(request.state, CID_GENERATED, None),
        )


# Store implementation is selected once, at import time.
correlation_id_service = CorrelationIdService(create_store(get_settings().backend))
