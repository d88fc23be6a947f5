"""
Event hooks - Named, typed notifications between components.

Producers expose one EventHook per event (e.g. GatewayTracker.gateway_changed).
Consumers connect once at construction and disconnect at teardown.
Hooks carry facts only; policy lives in the StatusCoordinator.
"""

import threading
from typing import Callable, List

from loguru import logger


class EventHook:
    """
    A list of handlers invoked synchronously on emit().

    Handlers run on the emitting thread, outside any lock held by the hook.
    A failing handler is logged and does not prevent delivery to the others.
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: List[Callable] = []
        self._lock = threading.Lock()

    def connect(self, handler: Callable) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def disconnect(self, handler: Callable) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def emit(self, *args) -> None:
        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(*args)
            except Exception as e:
                logger.opt(exception=e).error(f"[EventHook] Handler for {self.name} failed: {e}")

    def __repr__(self):
        return f"EventHook({self.name!r}, handlers={self.handler_count})"
