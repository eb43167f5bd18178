"""Synchronous subscriber lists for monitor notifications."""

import threading
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")


class Event(Generic[T]):
    """
    Ordered list of handlers called on the emitting thread.

    Handlers run in subscription order. Exceptions raised by a handler
    propagate to the emitter and skip the remaining handlers.
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: List[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Callable[[T], None]) -> Callable[[T], None]:
        with self._lock:
            self._handlers.append(handler)
        return handler

    def unsubscribe(self, handler: Callable[[T], None]) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def emit(self, value: T) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(value)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"Event({self.name!r}, handlers={len(self._handlers)})"
