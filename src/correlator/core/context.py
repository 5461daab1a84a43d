"""
Scoped correlation ID storage.

Uses Python's contextvars so the active correlation ID follows the logical
flow (asyncio tasks, scheduled callbacks, copied contexts) rather than the
thread. Every asyncio task runs in its own copy of the context, which is what
keeps concurrently handled requests isolated on a single event loop.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Coroutine, Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import Context, ContextVar, copy_context
from typing import Any, TypeVar

from correlator.core.ids import create_new_id
from correlator.domain.exceptions import ConfigurationError
from correlator.domain.models import CorrelationId

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContextStore(ABC):
    """Per-logical-flow stack of correlation IDs."""

    @abstractmethod
    def get(self) -> CorrelationId | None:
        """Return the innermost active correlation ID, or None outside any scope."""

    @abstractmethod
    def scope(self, cid: CorrelationId | None) -> AbstractContextManager[CorrelationId | None]:
        """Enter a scope bound to ``cid`` and restore the previous one on exit.

        ``None`` is a valid value: it runs the block with no correlation ID.
        """

    @abstractmethod
    def snapshot(self) -> Any:
        """Capture the ambient context of the current flow."""

    @abstractmethod
    def run_in_snapshot(self, snapshot: Any, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` inside a previously captured snapshot."""

    def enter(self, work: Callable[[], T], cid: CorrelationId | None = None) -> T:
        """Run ``work`` inside a new scope and return whatever it returns.

        A missing or empty ``cid`` gets a freshly generated one. When ``work``
        returns a coroutine, the coroutine is driven inside the scope too:
        scheduled as a task if an event loop is running (the caller may await
        it or leave it floating), otherwise wrapped so that whoever runs it
        runs it scoped.
        """
        cid = cid or create_new_id()
        with self.scope(cid):
            result = work()
            if inspect.iscoroutine(result):
                try:
                    asyncio.get_running_loop()
                except RuntimeError:
                    return self.scoped_coroutine(result, cid)  # type: ignore[return-value]
                # The task copies the current context, scope included.
                return asyncio.ensure_future(result)  # type: ignore[return-value]
            return result

    async def enter_async(
        self, work: Callable[[], Awaitable[T]], cid: CorrelationId | None = None
    ) -> T:
        """Awaitable form of enter(); errors surface through the returned coroutine."""
        with self.scope(cid or create_new_id()):
            return await work()

    async def scoped_coroutine(self, coro: Coroutine[Any, Any, T], cid: CorrelationId | None) -> T:
        """Await ``coro`` inside a scope bound to ``cid``."""
        with self.scope(cid):
            return await coro


class ContextVarStore(ContextStore):
    """Context store backed by a single ContextVar."""

    def __init__(self, name: str = "correlation_id") -> None:
        self._var: ContextVar[CorrelationId | None] = ContextVar(name, default=None)

    def get(self) -> CorrelationId | None:
        return self._var.get()

    @contextmanager
    def scope(self, cid: CorrelationId | None) -> Iterator[CorrelationId | None]:
        token = self._var.set(cid)
        try:
            yield cid
        finally:
            self._var.reset(token)

    def snapshot(self) -> Context:
        return copy_context()

    def run_in_snapshot(self, snapshot: Context, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        # A Context can only be entered once at a time; run a fresh copy so the
        # same snapshot can serve concurrent or re-entrant callers.
        return snapshot.copy().run(fn, *args, **kwargs)


_BACKENDS: dict[str, type[ContextStore]] = {
    "contextvars": ContextVarStore,
}


def create_store(backend: str) -> ContextStore:
    """Build the context store for ``backend``. Called once at start-up."""
    try:
        store_cls = _BACKENDS[backend]
    except KeyError:
        raise ConfigurationError(
            f"Unknown context store backend: {backend!r}",
            details={"available": sorted(_BACKENDS)},
        ) from None
    logger.debug("Using %s context store", backend)
    return store_cls()
