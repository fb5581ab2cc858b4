"""
Scripted stand-in for the webcam + hand model.

Used by ``--mode demo`` and by tests: it produces blank frames and a
HandState that breathes open and closed while drifting on a Lissajous
path, with a short hand-absent gap every cycle so the lost-hand
behaviour is visible too.
"""

import math
import time
import logging
import numpy as np

from core.types import HandState

logger = logging.getLogger(__name__)


class SyntheticHandSource:
    """Frame source that also reports a scripted hand state."""

    def __init__(self, config: dict = None, clock=time.time):
        config = config or {}
        self._width = config.get("width", 1280)
        self._height = config.get("height", 720)
        self._period = config.get("period_sec", 8.0)
        self._absent_fraction = config.get("absent_fraction", 0.15)
        self._clock = clock

        self._frame = np.zeros((self._height, self._width, 3), dtype=np.uint8)
        self._frame_id = 0
        self._start = None

    def open(self) -> bool:
        self._start = self._clock()
        logger.info("Synthetic hand source started (%dx%d, period=%.1fs)",
                    self._width, self._height, self._period)
        return True

    def start_async(self):
        pass

    def read(self):
        """Return (frame_id, blank frame)."""
        if self._start is None:
            self.open()
        self._frame_id += 1
        return self._frame_id, self._frame.copy()

    read_sync = read

    def current_hand_state(self, now: float = None) -> HandState:
        """Scripted hand state at time ``now``."""
        if self._start is None:
            self.open()
        now = self._clock() if now is None else now
        phase = ((now - self._start) % self._period) / self._period

        if phase >= 1.0 - self._absent_fraction:
            return HandState.absent(now)

        t = 2.0 * math.pi * phase
        openness = 0.5 - 0.5 * math.cos(2.0 * t)
        cx = 0.5 + 0.25 * math.sin(t)
        cy = 0.5 + 0.15 * math.sin(2.0 * t)
        return HandState(
            detected=True,
            openness=openness,
            center=(cx, cy),
            pinch_distance=openness * 0.2,
            hand_size=0.2,
            timestamp=now,
        )

    @property
    def resolution(self) -> tuple:
        return (self._width, self._height)

    @property
    def is_open(self) -> bool:
        return self._start is not None

    def stop(self):
        logger.info("Synthetic hand source stopped")
        self._start = None
