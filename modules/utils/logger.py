"""
Logging setup for the application and a session log of hand/shape events.
"""

import logging
import logging.handlers
import time
from collections import Counter
from functools import wraps
from pathlib import Path

CONSOLE_FORMAT = "%(asctime)s  %(levelname)-5s  %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)-28s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Route all loggers to the console and, optionally, a rotating file.

    The file always receives DEBUG records; the console follows ``level``.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=int(max_size_mb * 1024 * 1024),
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    return root_logger


class SessionLogger:
    """Keeps a history of hand acquisitions/losses and shape switches."""

    def __init__(self, max_history: int = 500):
        self.logger = logging.getLogger("session_events")
        self._history = []
        self._max_history = max_history
        self._hand_since = None
        self._hand_time_total = 0.0
        self._shape_counts = Counter()

    def _record(self, event: str, **data):
        self._history.append({"timestamp": time.time(), "event": event, **data})
        if len(self._history) > self._max_history:
            del self._history[0]

    def log_hand(self, present: bool, openness: float = 0.0):
        if present:
            self._hand_since = time.time()
            self._record("hand", present=True)
            self.logger.info("Hand acquired | openness: %.2f", openness)
            return

        held = 0.0
        if self._hand_since is not None:
            held = time.time() - self._hand_since
            self._hand_time_total += held
            self._hand_since = None
        self._record("hand", present=False, held=held)
        self.logger.info("Hand lost     | tracked for %.1fs", held)

    def log_shape(self, shape_name: str, count: int):
        self._shape_counts[shape_name] += 1
        self._record("shape", shape=shape_name)
        self.logger.info("Shape: %-10s | particles: %d", shape_name, count)

    def get_history(self, last_n=None):
        if last_n:
            return self._history[-last_n:]
        return list(self._history)

    @property
    def hand_time_total(self) -> float:
        """Seconds of completed hand stints (the current one is not included)."""
        return self._hand_time_total

    @property
    def shape_counts(self) -> dict:
        return dict(self._shape_counts)


def log_timing(func):
    """Log how long each call to ``func`` takes, at DEBUG level."""
    func_logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            func_logger.debug("%s took %.2fms", func.__qualname__,
                              (time.perf_counter() - start) * 1000)

    return wrapper
