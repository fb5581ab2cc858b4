"""
MediaPipe Hands in video mode, configured for a single low-latency hand.
"""

import logging
import numpy as np
import mediapipe as mp

from core.errors import DetectorError

logger = logging.getLogger(__name__)

_hands = mp.solutions.hands
_drawing = mp.solutions.drawing_utils
_styles = mp.solutions.drawing_styles


class HandDetector:
    """Lazily created ``mp.solutions.hands.Hands`` with drawing helpers."""

    def __init__(self, config: dict):
        self._options = {
            "static_image_mode": False,
            "model_complexity": config.get("model_complexity", 0),
            "max_num_hands": config.get("max_num_hands", 1),
            "min_detection_confidence": config.get("min_detection_confidence", 0.7),
            "min_tracking_confidence": config.get("min_tracking_confidence", 0.6),
        }
        self._hands = None

    def initialize(self):
        """Create the landmark model (idempotent).

        Raises:
            DetectorError: MediaPipe rejected the options or could not load
        """
        if self._hands is not None:
            return
        try:
            self._hands = _hands.Hands(**self._options)
        except (RuntimeError, ValueError, TypeError) as e:
            raise DetectorError(f"MediaPipe Hands failed to initialize: {e}") from e
        logger.info("MediaPipe Hands ready (%s)",
                    ", ".join(f"{k}={v}" for k, v in self._options.items()))

    def detect(self, rgb_frame: np.ndarray):
        """Run the model on an RGB frame and return the raw MediaPipe results."""
        self.initialize()
        # Read-only input lets MediaPipe avoid a copy
        rgb_frame.flags.writeable = False
        try:
            return self._hands.process(rgb_frame)
        finally:
            rgb_frame.flags.writeable = True

    def draw_landmarks(self, frame: np.ndarray, results):
        """Overlay the hand skeleton on a BGR frame in place."""
        for hand_landmarks in getattr(results, "multi_hand_landmarks", None) or ():
            _drawing.draw_landmarks(
                frame,
                hand_landmarks,
                _hands.HAND_CONNECTIONS,
                _styles.get_default_hand_landmarks_style(),
                _styles.get_default_hand_connections_style(),
            )
        return frame

    @property
    def is_initialized(self) -> bool:
        return self._hands is not None

    def close(self):
        if self._hands is None:
            return
        self._hands.close()
        self._hands = None
        logger.info("MediaPipe Hands closed")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.close()
