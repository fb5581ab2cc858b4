"""
Shape templates for the particle cloud.

A template is the cloud's resting layout: ``count`` points around the
origin in world units (roughly radius 1-2) plus a BGR color per point.
Templates are built once per shape change and cached by the particle
system; the per-frame work is only scale + offset + lerp.

New shapes plug in with the ``register_shape`` decorator:

    @register_shape("cube")
    def _cube(count, rng, size=1.0):
        positions = rng.uniform(-size, size, (count, 3))
        colors = np.full((count, 3), 255)
        return positions, colors
"""

import logging
from typing import Callable, Dict, List, Optional
import numpy as np

from core.errors import ShapeError
from core.types import DEFAULT_SHAPE
from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

_REGISTRY: Dict[str, Callable] = {}


class ShapeTemplate:
    """Cached resting layout of the cloud."""

    __slots__ = ("name", "positions", "colors")

    def __init__(self, name: str, positions: np.ndarray, colors: np.ndarray):
        self.name = name
        self.positions = positions
        self.colors = colors

    @property
    def count(self) -> int:
        return len(self.positions)

    def __repr__(self):
        return f"ShapeTemplate({self.name}, n={self.count})"


def register_shape(name: str):
    """Decorator registering a builder ``fn(count, rng, **options)``.

    The builder returns ``(positions, colors)`` with shapes (count, 3).
    """
    def decorator(fn):
        key = name.lower()
        if key in _REGISTRY:
            logger.warning("Shape '%s' re-registered by %s", key, fn.__name__)
        _REGISTRY[key] = fn
        return fn
    return decorator


def get_shape(name: str) -> Callable:
    """Look up a registered shape builder."""
    try:
        return _REGISTRY[name.lower()]
    except KeyError:
        raise ShapeError(
            f"Unknown shape '{name}'. Available: {', '.join(available_shapes())}"
        ) from None


def available_shapes() -> List[str]:
    """Registered shape names, default first, rest alphabetical."""
    names = sorted(_REGISTRY)
    if DEFAULT_SHAPE in names:
        names.remove(DEFAULT_SHAPE)
        names.insert(0, DEFAULT_SHAPE)
    return names


@log_timing
def build_shape(name: str, count: int, seed: Optional[int] = None,
                **options) -> ShapeTemplate:
    """Build a template. Same (name, count, seed, options) -> same points."""
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")
    builder = get_shape(name)
    rng = np.random.default_rng(seed)
    positions, colors = builder(count, rng, **options)

    positions = np.asarray(positions, dtype=np.float32).reshape(count, 3)
    colors = np.clip(np.asarray(colors), 0, 255).astype(np.uint8).reshape(count, 3)
    logger.debug("Built shape '%s' with %d points", name, count)
    return ShapeTemplate(name.lower(), positions, colors)


# =============================================================================
# Helpers
# =============================================================================

def _unit_vectors(rng, n: int) -> np.ndarray:
    """Uniform random directions on the unit sphere."""
    v = rng.normal(size=(n, 3))
    norms = np.linalg.norm(v, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return v / norms


def _annulus(rng, n: int, inner: float, outer: float, thickness: float) -> np.ndarray:
    """Flat ring in the x/z plane, area-uniform in radius."""
    theta = rng.uniform(0.0, 2.0 * np.pi, n)
    r = np.sqrt(rng.uniform(inner ** 2, outer ** 2, n))
    y = rng.normal(0.0, thickness, n)
    return np.stack([r * np.cos(theta), y, r * np.sin(theta)], axis=1)


def _tilt_x(points: np.ndarray, angle: float) -> np.ndarray:
    """Rotate points about the x axis."""
    c, s = np.cos(angle), np.sin(angle)
    rot = np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])
    return points @ rot.T


def _blend(c1, c2, t: np.ndarray) -> np.ndarray:
    """Per-point blend between two BGR colors, t in 0..1."""
    t = np.clip(t, 0.0, 1.0)[:, None]
    return np.asarray(c1, dtype=np.float32) * (1.0 - t) + np.asarray(c2, dtype=np.float32) * t


# =============================================================================
# Built-in Shapes
# =============================================================================

@register_shape("saturn")
def _saturn(count, rng, sphere_fraction=0.6, sphere_radius=1.0, ring_inner=1.4,
            ring_outer=2.3, ring_thickness=0.04, ring_tilt=0.45):
    """Planet sphere plus a tilted ring."""
    n_sphere = int(round(count * min(max(sphere_fraction, 0.0), 1.0)))
    n_ring = count - n_sphere

    dirs = _unit_vectors(rng, n_sphere)
    radii = sphere_radius * (1.0 + rng.normal(0.0, 0.015, n_sphere))
    planet = dirs * radii[:, None]
    # Latitude bands like a gas giant
    bands = 0.5 + 0.5 * np.sin(dirs[:, 1] * 9.0)
    planet_colors = _blend((40, 150, 235), (120, 210, 250), bands)

    ring = _annulus(rng, n_ring, ring_inner, ring_outer, ring_thickness)
    ring_r = np.linalg.norm(ring[:, [0, 2]], axis=1)
    lanes = 0.5 + 0.5 * np.cos((ring_r - ring_inner) * 14.0)
    ring_colors = _blend((150, 180, 200), (215, 235, 245), lanes)

    positions = np.concatenate([planet, ring], axis=0)
    colors = np.concatenate([planet_colors, ring_colors], axis=0)
    return _tilt_x(positions, ring_tilt), colors


@register_shape("sphere")
def _sphere(count, rng, radius=1.3, shell=0.03):
    dirs = _unit_vectors(rng, count)
    radii = radius * (1.0 + rng.normal(0.0, shell, count))
    colors = _blend((255, 160, 60), (255, 230, 180), 0.5 + 0.5 * dirs[:, 1])
    return dirs * radii[:, None], colors


@register_shape("ring")
def _ring(count, rng, inner=1.0, outer=2.2, thickness=0.05, tilt=0.45):
    points = _annulus(rng, count, inner, outer, thickness)
    r = np.linalg.norm(points[:, [0, 2]], axis=1)
    colors = _blend((230, 200, 120), (250, 240, 220), (r - inner) / max(outer - inner, 1e-6))
    return _tilt_x(points, tilt), colors


@register_shape("heart")
def _heart(count, rng, size=1.5, depth=0.35):
    """Classic parametric heart curve, filled toward its center."""
    t = rng.uniform(0.0, 2.0 * np.pi, count)
    x = 16.0 * np.sin(t) ** 3
    y = 13.0 * np.cos(t) - 5.0 * np.cos(2 * t) - 2.0 * np.cos(3 * t) - np.cos(4 * t)
    fill = np.sqrt(rng.uniform(0.0, 1.0, count))
    x = x / 16.0 * size * fill
    y = (y + 2.5) / 16.0 * size * fill
    z = rng.normal(0.0, depth, count) * (1.0 - 0.7 * fill)
    colors = _blend((90, 40, 235), (200, 170, 255), 1.0 - fill)
    return np.stack([x, y, z], axis=1), colors


@register_shape("galaxy")
def _galaxy(count, rng, arms=3, radius=2.4, twist=2.6, thickness=0.06, scatter=0.22):
    """Logarithmic-looking spiral with a dense bright core."""
    arms = max(int(arms), 1)
    r = radius * rng.uniform(0.0, 1.0, count) ** 1.6
    arm = rng.integers(0, arms, count)
    angle = arm * (2.0 * np.pi / arms) + r * twist + rng.normal(0.0, scatter, count)
    y = rng.normal(0.0, thickness, count) * (1.0 + 2.0 * (1.0 - r / radius))
    positions = np.stack([r * np.cos(angle), y, r * np.sin(angle)], axis=1)
    colors = _blend((200, 240, 255), (255, 120, 80), r / radius)
    return _tilt_x(positions, 0.6), colors
