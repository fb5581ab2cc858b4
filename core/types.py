"""
Shared domain types for the hand-driven particle cloud.

Centralizes enums and data containers used across modules to avoid
circular imports between detection, control, particles and rendering.
"""

import time
from enum import Enum
from typing import Optional, Tuple
import numpy as np


# =============================================================================
# Shape Names
# =============================================================================

class ShapeName(Enum):
    """Built-in shape templates. Plug-in shapes are addressed by string."""
    SATURN = "saturn"
    SPHERE = "sphere"
    RING = "ring"
    HEART = "heart"
    GALAXY = "galaxy"


DEFAULT_SHAPE = ShapeName.SATURN.value


# =============================================================================
# Data Containers
# =============================================================================

class HandState:
    """Per-frame hand measurements derived from the landmark model.

    Coordinates are normalized image coordinates (0..1, y pointing down),
    taken from an already mirrored frame.
    """

    __slots__ = (
        "detected", "openness", "center", "pinch_distance",
        "hand_size", "landmarks", "handedness", "timestamp",
    )

    def __init__(self, detected: bool = False, openness: float = 0.0,
                 center: Tuple[float, float] = (0.5, 0.5),
                 pinch_distance: float = 0.0, hand_size: float = 0.0,
                 landmarks: Optional[np.ndarray] = None,
                 handedness: str = "unknown",
                 timestamp: Optional[float] = None):
        self.detected = detected
        self.openness = openness
        self.center = center
        self.pinch_distance = pinch_distance
        self.hand_size = hand_size
        self.landmarks = landmarks          # (21, 3) normalized, or None
        self.handedness = handedness
        self.timestamp = timestamp if timestamp is not None else time.time()

    @classmethod
    def absent(cls, timestamp: Optional[float] = None) -> 'HandState':
        return cls(detected=False, timestamp=timestamp)

    def __repr__(self):
        if not self.detected:
            return "HandState(absent)"
        return (f"HandState(open={self.openness:.2f}, "
                f"center=({self.center[0]:.2f}, {self.center[1]:.2f}))")


class CloudParams:
    """Parameters handed to the particle system every frame."""

    __slots__ = ("openness", "offset", "scale", "hand_present")

    def __init__(self, openness: float = 0.0,
                 offset: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                 scale: float = 1.0, hand_present: bool = False):
        self.openness = openness
        self.offset = offset
        self.scale = scale
        self.hand_present = hand_present

    def __repr__(self):
        return (f"CloudParams(open={self.openness:.2f}, scale={self.scale:.2f}, "
                f"offset=({self.offset[0]:.2f}, {self.offset[1]:.2f}, {self.offset[2]:.2f}))")


class FrameResult:
    """Result of a single pipeline iteration."""

    __slots__ = (
        "frame", "hand_state", "params", "shape",
        "latency_ms", "frame_id", "timestamp",
    )

    def __init__(self):
        self.frame: Optional[np.ndarray] = None
        self.hand_state: Optional[HandState] = None
        self.params: Optional[CloudParams] = None
        self.shape: str = DEFAULT_SHAPE
        self.latency_ms = 0.0
        self.frame_id = 0
        self.timestamp = time.time()

    @property
    def hand_detected(self) -> bool:
        return self.hand_state is not None and self.hand_state.detected
