"""Minimal synchronous event fan-out used by ``TailStream``.

Listeners run in registration order on the event loop thread. Exceptions raised
by a listener propagate to whoever emitted the event.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

Listener = Callable[..., Any]


class EventEmitter:
    def __init__(self) -> None:
        # (listener, once) pairs per event name
        self._listeners: Dict[str, List[Tuple[Listener, bool]]] = {}

    def on(self, event: str, listener: Listener) -> "EventEmitter":
        self._listeners.setdefault(event, []).append((listener, False))
        self._listener_added(event)
        return self

    def once(self, event: str, listener: Listener) -> "EventEmitter":
        self._listeners.setdefault(event, []).append((listener, True))
        self._listener_added(event)
        return self

    def off(self, event: str, listener: Listener) -> "EventEmitter":
        entries = self._listeners.get(event, [])
        for i, (fn, _) in enumerate(entries):
            if fn == listener:
                del entries[i]
                break
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        entries = self._listeners.get(event)
        if not entries:
            return False
        snapshot = list(entries)
        entries[:] = [entry for entry in entries if not entry[1]]
        for fn, _ in snapshot:
            fn(*args)
        return True

    def _listener_added(self, event: str) -> None:
        """Hook for subclasses that react to new listeners."""


__all__ = ["EventEmitter", "Listener"]
