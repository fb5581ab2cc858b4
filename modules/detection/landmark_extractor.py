"""
21-point hand landmark extraction and the two measurements that drive
the particle cloud: pinch openness and hand center.

    - Pinch distance is thumb tip to index tip in normalized x/y
    - Openness divides pinch distance by hand size so it does not change
      when the hand moves toward or away from the camera
    - Hand center is the palm centroid (wrist + four finger MCPs), which
      stays put while the fingers pinch
"""

import logging
import numpy as np

from core.types import HandState

logger = logging.getLogger(__name__)

# MediaPipe hand landmark indices
WRIST = 0
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_TIP = 8
MIDDLE_MCP = 9
RING_MCP = 13
PINKY_MCP = 17

NUM_LANDMARKS = 21
PALM_POINTS = [WRIST, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP]

# Below this hand size (normalized) a detection is treated as noise
_MIN_HAND_SIZE = 0.02


class LandmarkExtractor:
    """Derives pinch openness and hand center from MediaPipe landmarks."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._pinch_min = config.get("pinch_min_ratio", 0.15)
        self._pinch_max = config.get("pinch_max_ratio", 1.2)
        if self._pinch_max <= self._pinch_min:
            logger.warning(
                "pinch_max_ratio (%.2f) <= pinch_min_ratio (%.2f), using defaults",
                self._pinch_max, self._pinch_min,
            )
            self._pinch_min, self._pinch_max = 0.15, 1.2
        self._frame_width = 640
        self._frame_height = 480

    def set_frame_size(self, width: int, height: int):
        """Set frame dimensions for pixel coordinate conversion."""
        self._frame_width = width
        self._frame_height = height

    def extract_landmarks(self, hand_landmarks) -> np.ndarray:
        """Convert MediaPipe landmarks to an array of (x, y, z).

        Returns:
            np.ndarray of shape (21, 3) with normalized coordinates
        """
        landmarks = np.zeros((NUM_LANDMARKS, 3), dtype=np.float32)
        for i, lm in enumerate(hand_landmarks.landmark):
            if i >= NUM_LANDMARKS:
                break
            landmarks[i] = [lm.x, lm.y, lm.z]
        return landmarks

    def to_pixel_coords(self, landmarks: np.ndarray) -> np.ndarray:
        """Convert normalized landmarks to (21, 2) pixel coordinates."""
        pixels = np.zeros((len(landmarks), 2), dtype=np.int32)
        pixels[:, 0] = (landmarks[:, 0] * self._frame_width).astype(np.int32)
        pixels[:, 1] = (landmarks[:, 1] * self._frame_height).astype(np.int32)
        return pixels

    # =========================================================================
    # Measurements
    # =========================================================================

    @staticmethod
    def pinch_distance(landmarks: np.ndarray) -> float:
        """Thumb tip to index tip distance in normalized image units."""
        return float(np.linalg.norm(landmarks[THUMB_TIP, :2] - landmarks[INDEX_TIP, :2]))

    @staticmethod
    def hand_size(landmarks: np.ndarray) -> float:
        """Wrist to middle MCP distance; stable whatever the fingers do."""
        return float(np.linalg.norm(landmarks[WRIST, :2] - landmarks[MIDDLE_MCP, :2]))

    @staticmethod
    def hand_center(landmarks: np.ndarray) -> tuple:
        """Palm centroid (x, y) in normalized image coordinates."""
        center = landmarks[PALM_POINTS, :2].mean(axis=0)
        return float(center[0]), float(center[1])

    def openness(self, pinch: float, size: float) -> float:
        """Map pinch/size ratio linearly onto 0 (pinched) .. 1 (wide open)."""
        if size < _MIN_HAND_SIZE:
            return 0.0
        ratio = pinch / size
        value = (ratio - self._pinch_min) / (self._pinch_max - self._pinch_min)
        return float(np.clip(value, 0.0, 1.0))

    def measure(self, landmarks: np.ndarray, handedness: str = "unknown",
                timestamp: float = None) -> HandState:
        """Build a HandState from a (21, 3) landmark array."""
        size = self.hand_size(landmarks)
        if size < _MIN_HAND_SIZE:
            logger.debug("Rejected degenerate hand (size=%.4f)", size)
            return HandState.absent(timestamp)
        pinch = self.pinch_distance(landmarks)
        return HandState(
            detected=True,
            openness=self.openness(pinch, size),
            center=self.hand_center(landmarks),
            pinch_distance=pinch,
            hand_size=size,
            landmarks=landmarks,
            handedness=handedness,
            timestamp=timestamp,
        )

    def build_hand_state(self, results, timestamp: float = None) -> HandState:
        """Turn MediaPipe results into a HandState for the first hand found."""
        if not results or not results.multi_hand_landmarks:
            return HandState.absent(timestamp)

        hand_lm = results.multi_hand_landmarks[0]
        handedness = "unknown"
        multi_handedness = getattr(results, "multi_handedness", None)
        if multi_handedness:
            handedness = multi_handedness[0].classification[0].label.lower()

        return self.measure(self.extract_landmarks(hand_lm), handedness, timestamp)

    def get_bounding_box(self, landmarks: np.ndarray, padding: float = 0.1) -> tuple:
        """Get bounding box around hand landmarks.

        Returns:
            (x, y, w, h) in pixel coordinates
        """
        pixels = self.to_pixel_coords(landmarks)
        x_min, y_min = pixels.min(axis=0)
        x_max, y_max = pixels.max(axis=0)

        w = x_max - x_min
        h = y_max - y_min
        pad_x = int(w * padding)
        pad_y = int(h * padding)

        return (
            int(max(0, x_min - pad_x)),
            int(max(0, y_min - pad_y)),
            int(w + 2 * pad_x),
            int(h + 2 * pad_y),
        )
