"""
Minimal synchronous publish/subscribe emitter.

Any object exposing the same ``on``/``emit`` pair can be bound to a
correlation scope; this one is provided for code that has no emitter type.
"""

from collections import defaultdict
from collections.abc import Callable
from typing import Any

Listener = Callable[..., Any]


class EventEmitter:
    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> "EventEmitter":
        self._listeners[event].append(listener)
        return self

    def once(self, event: str, listener: Listener) -> "EventEmitter":
        def _once(*args: Any, **kwargs: Any) -> Any:
            self.off(event, _once)
            return listener(*args, **kwargs)

        return self.on(event, _once)

    def off(self, event: str, listener: Listener) -> "EventEmitter":
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)
        return self

    def emit(self, event: str, *args: Any, **kwargs: Any) -> bool:
        """Call every listener of ``event`` in registration order.

        Returns True if the event had listeners.
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            listener(*args, **kwargs)
        return bool(listeners)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))
