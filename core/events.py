"""
In-process event bus connecting the frame pipeline to the application shell.

The pipeline announces debounced hand transitions, shape morphs and camera
trouble. The shell (logging, session log, window title) subscribes without
the pipeline holding a reference to it.

Usage:
    bus = EventBus()
    bus.subscribe(Events.HAND_LOST, on_lost)
    bus.emit(Events.HAND_LOST, params=params)
"""

import time
import logging
import itertools
import threading
from collections import Counter, deque
from typing import Callable, Dict, List, NamedTuple

logger = logging.getLogger(__name__)


class _Listener(NamedTuple):
    priority: int
    order: int
    callback: Callable


def _callback_name(callback) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Process-wide publish/subscribe bus.

    Listeners run synchronously on the emitting thread, highest priority
    first and in subscription order within a priority. A listener that
    raises is logged and does not stop the remaining listeners.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern: one bus per application."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, history_size: int = 100):
        if self._initialized:
            return
        self._listeners: Dict[str, List[_Listener]] = {}
        self._lock = threading.Lock()
        self._order = itertools.count()
        self._history = deque(maxlen=history_size)
        self._counts = Counter()
        self._enabled = True
        self._initialized = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register ``callback(**kwargs)`` for ``event_name``.

        Higher ``priority`` runs earlier.
        """
        entry = _Listener(priority, next(self._order), callback)
        with self._lock:
            listeners = self._listeners.setdefault(event_name, [])
            listeners.append(entry)
            listeners.sort(key=lambda item: (-item.priority, item.order))
        logger.debug("Subscribed %s to '%s' (priority=%d)",
                     _callback_name(callback), event_name, priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        with self._lock:
            remaining = [entry for entry in self._listeners.get(event_name, [])
                         if entry.callback is not callback]
            if remaining:
                self._listeners[event_name] = remaining
            else:
                self._listeners.pop(event_name, None)

    def emit(self, event_name: str, **kwargs) -> int:
        """Deliver an event to its listeners.

        Returns:
            How many listeners completed without raising
        """
        if not self._enabled:
            return 0

        with self._lock:
            snapshot = tuple(self._listeners.get(event_name, ()))
            self._counts[event_name] += 1
            self._history.append({
                "event": event_name,
                "time": time.time(),
                "data_keys": sorted(kwargs),
            })

        handled = 0
        for entry in snapshot:
            try:
                entry.callback(**kwargs)
            except Exception:
                logger.exception("Listener %s failed on '%s'",
                                 _callback_name(entry.callback), event_name)
                continue
            handled += 1
        return handled

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    def clear(self, event_name: str = None):
        """Drop listeners for one event, or for every event."""
        with self._lock:
            if event_name is None:
                self._listeners.clear()
            else:
                self._listeners.pop(event_name, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._listeners.values())

    def emit_counts(self) -> dict:
        """How many times each event has been emitted since the last reset."""
        with self._lock:
            return dict(self._counts)

    def get_history(self, last_n: int = 10) -> list:
        with self._lock:
            return list(self._history)[-last_n:]

    def reset(self):
        """Forget listeners, history and counters (tests, restarts)."""
        with self._lock:
            self._listeners.clear()
            self._history.clear()
            self._counts.clear()
        self._enabled = True


# =============================================================================
# Event Names
# =============================================================================

class Events:
    """Event names emitted by the pipeline and the application shell."""

    # Hand presence (debounced)
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"

    # Cloud
    SHAPE_CHANGED = "shape_changed"

    # Application
    CAMERA_ERROR = "camera_error"
    SYSTEM_STARTED = "system_started"
    SYSTEM_SHUTDOWN = "system_shutdown"
    MODE_CHANGED = "mode_changed"
