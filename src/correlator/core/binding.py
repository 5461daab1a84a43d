"""
Rebind callables and emitters to the correlation scope active at bind time.

A bound target runs inside the captured scope whenever it is invoked later,
no matter which scope (if any) is active at invocation time. Binding the same
object again replaces the captured value; it never stacks a second binding.
"""

import functools
import inspect
import logging
import weakref
from collections.abc import Callable
from typing import Any, TypeVar

from correlator.core.context import ContextStore
from correlator.domain.exceptions import BindError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Hidden attributes set on bound emitters.
ORIGINAL_EMIT_ATTR = "_correlator_original_emit"
BOUND_CID_ATTR = "_correlator_bound_cid"


def is_emitter(target: Any) -> bool:
    """Duck-typed check for a publish/subscribe object (``on`` + ``emit``)."""
    if isinstance(target, type):
        return False
    return callable(getattr(target, "emit", None)) and callable(getattr(target, "on", None))


class Binder:
    """Captures the current scope and attaches it to callback-style objects."""

    def __init__(self, store: ContextStore) -> None:
        self.store = store
        # Wrappers made by this binder, keyed by identity, with their snapshot.
        self._snapshots: weakref.WeakKeyDictionary[Callable[..., Any], Any] = weakref.WeakKeyDictionary()

    def bind(self, target: T) -> T:
        """Bind ``target`` to the current scope.

        Emitters are patched in place and returned as is, callables are
        wrapped, anything else is returned unchanged.
        """
        if is_emitter(target):
            return self._bind_emitter(target)
        if callable(target):
            return self._bind_function(target)  # type: ignore[return-value]
        return target

    def _bind_emitter(self, emitter: T) -> T:
        cid = self.store.get()
        try:
            # Update the captured value first so a freshly patched emit
            # always finds one.
            setattr(emitter, BOUND_CID_ATTR, cid)
            # Patch emit only once.
            if getattr(emitter, ORIGINAL_EMIT_ATTR, None) is None:
                original_emit = emitter.emit  # type: ignore[attr-defined]
                store = self.store

                @functools.wraps(original_emit)
                def emit(*args: Any, **kwargs: Any) -> Any:
                    with store.scope(getattr(emitter, BOUND_CID_ATTR, None)):
                        return original_emit(*args, **kwargs)

                setattr(emitter, ORIGINAL_EMIT_ATTR, original_emit)
                setattr(emitter, "emit", emit)
                logger.debug("Patched emit of %s", type(emitter).__name__)
        except AttributeError as e:
            raise BindError(
                "Emitter does not accept new attributes and cannot be bound",
                target_type=type(emitter).__name__,
            ) from e
        return emitter

    def _find_wrapper(self, fn: Any) -> Callable[..., Any] | None:
        """Return the wrapper made by this binder that ``fn`` is or decorates."""
        seen: set[int] = set()
        while fn is not None and id(fn) not in seen:
            try:
                if fn in self._snapshots:
                    return fn
            except TypeError:
                # Unhashable callables are never wrappers of ours.
                pass
            seen.add(id(fn))
            fn = getattr(fn, "__wrapped__", None)
        return None

    def _bind_function(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        cid = self.store.get()
        existing = self._find_wrapper(fn)
        if existing is not None:
            # Re-binding replaces the snapshot in place, also through
            # decorators applied on top of a bound wrapper.
            self._snapshots[existing] = cid
            return fn

        store = self.store
        snapshots = self._snapshots

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with store.scope(snapshots.get(async_wrapper)):
                    return await fn(*args, **kwargs)

            snapshots[async_wrapper] = cid
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound_cid = snapshots.get(wrapper)
            with store.scope(bound_cid):
                result = fn(*args, **kwargs)
            # Async callables not detectable up front (async __call__,
            # decorated coroutine functions, lambdas returning a coroutine).
            if inspect.iscoroutine(result):
                return store.scoped_coroutine(result, bound_cid)
            return result

        snapshots[wrapper] = cid
        return wrapper
