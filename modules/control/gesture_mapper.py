"""
Gesture-to-parameter mapping with smoothing and hand-lost debouncing.

Turns the raw per-frame HandState into CloudParams:

    openness (0..1)   -> cloud scale between min_scale and max_scale
    hand center (0..1) -> world offset, image y flipped so up is up

Lifecycle:
    hand visible     - values pass through One Euro filters
    hand just lost   - last values held for lost_grace_ms (detector
                       dropouts of a few frames do not jolt the cloud)
    hand gone        - openness and offset ease back to the rest pose,
                       filters are cleared so re-acquisition starts fresh
"""

import time
import logging

from core.types import CloudParams, HandState
from modules.control.one_euro_filter import OneEuroFilter

logger = logging.getLogger(__name__)


class GestureMapper:
    """Maps hand measurements onto particle cloud parameters."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._range_x = config.get("range_x", 3.0)
        self._range_y = config.get("range_y", 2.0)
        self._min_scale = config.get("min_scale", 0.5)
        self._max_scale = config.get("max_scale", 1.6)
        if self._max_scale < self._min_scale:
            logger.warning("max_scale < min_scale, swapping")
            self._min_scale, self._max_scale = self._max_scale, self._min_scale
        self._invert = config.get("invert", False)
        self._lost_grace_ms = config.get("lost_grace_ms", 300)
        self._rest_openness = min(max(config.get("rest_openness", 0.5), 0.0), 1.0)
        self._rest_decay = config.get("rest_decay", 2.0)

        smoothing = config.get("smoothing", {})
        filter_args = {
            "min_cutoff": smoothing.get("min_cutoff", 1.2),
            "beta": smoothing.get("beta", 0.05),
            "d_cutoff": smoothing.get("d_cutoff", 1.0),
        }
        self._smoothing_enabled = smoothing.get("enabled", True)
        self._open_filter = OneEuroFilter(**filter_args)
        self._x_filter = OneEuroFilter(**filter_args)
        self._y_filter = OneEuroFilter(**filter_args)

        self._openness = self._rest_openness
        self._offset_x = 0.0
        self._offset_y = 0.0
        self._lost_since = None
        self._last_update = None
        self._present = False

    def update(self, hand_state: HandState, now: float = None) -> CloudParams:
        """Advance the mapping by one frame and return the cloud parameters."""
        now = time.time() if now is None else now
        dt = 0.0 if self._last_update is None else max(0.0, now - self._last_update)
        self._last_update = now

        if hand_state is not None and hand_state.detected:
            self._track(hand_state, now)
        else:
            self._release(now, dt)

        return self.current_params()

    def _track(self, hand_state: HandState, now: float):
        if self._lost_since is not None:
            logger.debug("Hand re-acquired after %.0fms",
                         (now - self._lost_since) * 1000)
        self._lost_since = None
        self._present = True

        raw_open = 1.0 - hand_state.openness if self._invert else hand_state.openness
        cx, cy = hand_state.center
        target_x = (cx - 0.5) * self._range_x
        target_y = (0.5 - cy) * self._range_y

        if self._smoothing_enabled:
            raw_open = self._open_filter.filter(raw_open, now)
            target_x = self._x_filter.filter(target_x, now)
            target_y = self._y_filter.filter(target_y, now)

        self._openness = min(max(raw_open, 0.0), 1.0)
        self._offset_x = target_x
        self._offset_y = target_y

    def _release(self, now: float, dt: float):
        if self._lost_since is None:
            self._lost_since = now

        if (now - self._lost_since) * 1000 <= self._lost_grace_ms:
            return

        if self._present:
            self._present = False
            self._open_filter.reset()
            self._x_filter.reset()
            self._y_filter.reset()

        k = min(1.0, self._rest_decay * dt)
        self._openness += (self._rest_openness - self._openness) * k
        self._offset_x -= self._offset_x * k
        self._offset_y -= self._offset_y * k

    def current_params(self) -> CloudParams:
        scale = self._min_scale + (self._max_scale - self._min_scale) * self._openness
        return CloudParams(
            openness=self._openness,
            offset=(self._offset_x, self._offset_y, 0.0),
            scale=scale,
            hand_present=self._present,
        )

    @property
    def hand_present(self) -> bool:
        """Debounced presence: stays True through the grace period."""
        return self._present

    def reset(self):
        self._open_filter.reset()
        self._x_filter.reset()
        self._y_filter.reset()
        self._openness = self._rest_openness
        self._offset_x = 0.0
        self._offset_y = 0.0
        self._lost_since = None
        self._last_update = None
        self._present = False
