"""
Carry the active correlation scope into deferred continuations.

asyncio already copies the current context whenever it schedules something:
``create_task``/``ensure_future``, ``call_soon``, ``call_later``, ``call_at``,
``Future.add_done_callback`` and ``asyncio.to_thread`` all run their callback
in the scheduling flow's context. Thread-based primitives do not, so this
module provides context-carrying counterparts for them.
"""

import asyncio
import functools
import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, TypeVar

from correlator.core.context import ContextStore

T = TypeVar("T")


class ContinuationPropagator:
    """Wraps callables so they resume in the flow that scheduled them."""

    def __init__(self, store: ContextStore) -> None:
        self.store = store

    def wrap(self, fn: Callable[..., T]) -> Callable[..., T]:
        """Capture the current context now; run ``fn`` inside it on every call."""
        snapshot = self.store.snapshot()

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return self.store.run_in_snapshot(snapshot, fn, *args, **kwargs)

        return wrapper

    def run_in_executor(
        self,
        executor: Executor | None,
        fn: Callable[..., T],
        *args: Any,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> "asyncio.Future[T]":
        """``loop.run_in_executor`` that keeps the caller's scope in the worker."""
        loop = loop or asyncio.get_running_loop()
        return loop.run_in_executor(executor, self.wrap(fn), *args)

    def thread(self, target: Callable[..., Any], *args: Any, **kwargs: Any) -> "ContextThread":
        return ContextThread(self, target=target, args=args, kwargs=kwargs)

    def timer(self, interval: float, function: Callable[..., Any], *args: Any, **kwargs: Any) -> "ContextTimer":
        return ContextTimer(self, interval, function, args=args, kwargs=kwargs)

    def executor(self, max_workers: int | None = None, **kwargs: Any) -> "ContextThreadPoolExecutor":
        return ContextThreadPoolExecutor(self, max_workers=max_workers, **kwargs)


class ContextThread(threading.Thread):
    """Thread whose target runs in the scope active when the thread was created."""

    def __init__(
        self,
        propagator: ContinuationPropagator,
        target: Callable[..., Any] | None = None,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        **thread_kwargs: Any,
    ) -> None:
        if target is not None:
            target = propagator.wrap(target)
        super().__init__(target=target, args=args, kwargs=kwargs, **thread_kwargs)


class ContextTimer(threading.Timer):
    """threading.Timer whose callback runs in the scope active at creation."""

    def __init__(
        self,
        propagator: ContinuationPropagator,
        interval: float,
        function: Callable[..., Any],
        args: tuple | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(interval, propagator.wrap(function), args=args, kwargs=kwargs)


class ContextThreadPoolExecutor(ThreadPoolExecutor):
    """ThreadPoolExecutor whose jobs run in the submitting flow's scope.

    ``map`` goes through ``submit`` and is covered as well.
    """

    def __init__(self, propagator: ContinuationPropagator, max_workers: int | None = None, **kwargs: Any) -> None:
        super().__init__(max_workers=max_workers, **kwargs)
        self._propagator = propagator

    def submit(self, fn: Callable[..., T], /, *args: Any, **kwargs: Any) -> Future[T]:
        return super().submit(self._propagator.wrap(fn), *args, **kwargs)
