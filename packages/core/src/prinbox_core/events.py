from __future__ import annotations

import logging
import threading
from typing import Callable

from prinbox_core.models import InboxState

logger = logging.getLogger(__name__)

StateListener = Callable[[InboxState], None]
ErrorListener = Callable[[str], None]


class EventBus:
    """Push notifications for "state updated" and "soft error occurred".

    A listener that raises is logged and skipped; it never affects the
    publisher or the other listeners.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state_listeners: list[StateListener] = []
        self._error_listeners: list[ErrorListener] = []

    def on_state(self, listener: StateListener) -> Callable[[], None]:
        with self._lock:
            self._state_listeners.append(listener)
        return lambda: self._remove(self._state_listeners, listener)

    def on_error(self, listener: ErrorListener) -> Callable[[], None]:
        with self._lock:
            self._error_listeners.append(listener)
        return lambda: self._remove(self._error_listeners, listener)

    def emit_state(self, state: InboxState) -> None:
        self._dispatch(self._state_listeners, state)

    def emit_error(self, message: str) -> None:
        self._dispatch(self._error_listeners, message)

    def _remove(self, listeners: list, listener) -> None:
        with self._lock:
            if listener in listeners:
                listeners.remove(listener)

    def _dispatch(self, listeners: list, payload) -> None:
        with self._lock:
            snapshot = list(listeners)
        for listener in snapshot:
            try:
                listener(payload)
            except Exception as e:
                logger.warning("Event listener %r failed: %s", listener, e)
