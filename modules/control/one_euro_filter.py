"""
One Euro Filter for smoothing noisy hand measurements.

Slow movement gets heavy smoothing (no jitter while the hand rests),
fast movement gets light smoothing (no lag while it sweeps).

Reference: Casiez et al. "1€ Filter: A Simple Speed-based Low-pass
Filter for Noisy Input in Interactive Systems" (CHI 2012)
"""

import math
import time
from typing import Optional


class OneEuroFilter:
    """Adaptive low-pass filter for a single scalar signal."""

    def __init__(self, min_cutoff: float = 1.0, beta: float = 0.007,
                 d_cutoff: float = 1.0):
        """
        Args:
            min_cutoff: Minimum cutoff frequency (Hz). Lower = smoother, more lag.
            beta: Speed coefficient. Higher = more responsive to fast movement.
            d_cutoff: Cutoff frequency for the derivative estimate.
        """
        if min_cutoff <= 0 or d_cutoff <= 0:
            raise ValueError("cutoff frequencies must be positive")
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.d_cutoff = d_cutoff

        self._x_prev: Optional[float] = None
        self._dx_prev: float = 0.0
        self._t_prev: Optional[float] = None

    @staticmethod
    def _alpha(te: float, cutoff: float) -> float:
        tau = 1.0 / (2.0 * math.pi * cutoff)
        return 1.0 / (1.0 + tau / te)

    def filter(self, x: float, t: Optional[float] = None) -> float:
        """Filter one sample taken at time t (seconds)."""
        if t is None:
            t = time.perf_counter()

        if self._x_prev is None:
            self._x_prev = x
            self._t_prev = t
            return x

        te = t - self._t_prev
        if te <= 0:
            return self._x_prev

        dx = (x - self._x_prev) / te
        a_d = self._alpha(te, self.d_cutoff)
        dx_smooth = a_d * dx + (1.0 - a_d) * self._dx_prev

        cutoff = self.min_cutoff + self.beta * abs(dx_smooth)
        a = self._alpha(te, cutoff)
        x_filtered = a * x + (1.0 - a) * self._x_prev

        self._x_prev = x_filtered
        self._dx_prev = dx_smooth
        self._t_prev = t
        return x_filtered

    @property
    def value(self) -> Optional[float]:
        """Last filtered value, or None before the first sample."""
        return self._x_prev

    def reset(self):
        self._x_prev = None
        self._dx_prev = 0.0
        self._t_prev = None
