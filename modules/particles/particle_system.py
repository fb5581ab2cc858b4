"""
Fixed-size particle cloud that eases toward a gesture-driven target.

Each frame:
    target = template * scale + dispersion * openness * spread + offset
    position += (target - position) * alpha

``template`` and ``dispersion`` are cached arrays, so a frame costs a few
vectorized numpy operations regardless of the shape. Switching shapes
only swaps the template; the current positions morph into the new
layout through the same lerp.
"""

import logging
import numpy as np

from core.types import CloudParams, DEFAULT_SHAPE
from modules.particles.shapes import build_shape

logger = logging.getLogger(__name__)

# Lerp factors are specified per frame at this rate
_REFERENCE_FPS = 60.0


class ParticleSystem:
    """Point cloud with cached shape template and lerped positions."""

    def __init__(self, count: int, shape: str = DEFAULT_SHAPE, config: dict = None):
        if count < 1:
            raise ValueError(f"particle count must be >= 1, got {count}")
        config = config or {}
        self._count = int(count)
        self._seed = config.get("seed", 7)
        self._lerp = float(np.clip(config.get("lerp", 0.08), 0.0, 1.0))
        self._spread = config.get("spread", 0.8)
        self._shape_options = config.get("shapes", {})

        rng = np.random.default_rng(self._seed)
        directions = rng.normal(size=(self._count, 3))
        directions /= np.maximum(np.linalg.norm(directions, axis=1, keepdims=True), 1e-9)
        magnitudes = rng.uniform(0.2, 1.0, (self._count, 1))
        self._dispersion = (directions * magnitudes).astype(np.float32)

        self._template = None
        self.set_shape(shape)
        self._positions = self._template.positions.copy()
        self._targets = self._positions.copy()

    def set_shape(self, name: str):
        """Swap the resting layout. Raises ShapeError for unknown names."""
        options = self._shape_options.get(name.lower(), {}) or {}
        self._template = build_shape(name, self._count, seed=self._seed, **options)
        logger.info("Particle shape set to '%s' (%d points)", self._template.name, self._count)

    def compute_targets(self, params: CloudParams) -> np.ndarray:
        """Target positions for the given parameters, shape (N, 3)."""
        offset = np.asarray(params.offset, dtype=np.float32)
        targets = self._template.positions * np.float32(params.scale)
        if self._spread and params.openness > 0:
            targets += self._dispersion * np.float32(params.openness * self._spread)
        targets += offset
        return targets

    def lerp_alpha(self, dt: float) -> float:
        """Frame-rate independent lerp factor for a step of dt seconds."""
        if dt <= 0:
            return 0.0
        return float(np.clip(1.0 - (1.0 - self._lerp) ** (dt * _REFERENCE_FPS), 0.0, 1.0))

    def update(self, params: CloudParams, dt: float) -> np.ndarray:
        """Ease current positions toward the targets for ``params``."""
        alpha = self.lerp_alpha(dt)
        if alpha == 0.0:
            return self._positions
        self._targets = self.compute_targets(params)
        self._positions += (self._targets - self._positions) * np.float32(alpha)
        return self._positions

    def snap(self, params: CloudParams):
        """Jump straight to the targets (no easing)."""
        self._targets = self.compute_targets(params)
        self._positions[:] = self._targets

    @property
    def positions(self) -> np.ndarray:
        return self._positions

    @property
    def colors(self) -> np.ndarray:
        return self._template.colors

    @property
    def shape_name(self) -> str:
        return self._template.name

    @property
    def count(self) -> int:
        return self._count
