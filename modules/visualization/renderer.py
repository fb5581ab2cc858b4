"""
Point-cloud renderer: perspective projection and additive splatting with
OpenCV on top of the (dimmed) webcam frame.

The cloud spins slowly around its own center, so moving the hand moves
the cloud without swinging it around the world origin.
"""

import logging
import math
import cv2
import numpy as np

logger = logging.getLogger(__name__)

_NEAR_PLANE = 0.1


class ParticleRenderer:
    """Projects and draws the particle cloud onto a BGR canvas."""

    def __init__(self, config: dict = None, size: tuple = (1280, 720)):
        config = config or {}
        self._camera_distance = config.get("camera_distance", 6.0)
        self._fov_deg = config.get("fov_deg", 55.0)
        self._spin_speed = config.get("spin_speed", 0.35)
        self._tilt = config.get("tilt", 0.25)
        self._point_size = max(1, int(config.get("point_size", 2)))
        self._glow = config.get("glow", True)
        self._glow_sigma = config.get("glow_sigma", 3.0)
        self._glow_strength = config.get("glow_strength", 0.8)
        self._depth_shading = config.get("depth_shading", True)
        self._show_video = config.get("background", "video") == "video"
        self._background_color = tuple(config.get("background_color", [8, 6, 12]))
        self._video_dim = config.get("video_dim", 0.35)

        self._width, self._height = size
        self._angle = 0.0
        self._kernel = None
        if self._point_size > 1:
            self._kernel = cv2.getStructuringElement(
                cv2.MORPH_ELLIPSE, (self._point_size, self._point_size)
            )

    def advance(self, dt: float):
        """Advance the auto-rotation by dt seconds."""
        if dt > 0:
            self._angle = (self._angle + self._spin_speed * dt) % (2.0 * math.pi)

    def toggle_video(self) -> bool:
        self._show_video = not self._show_video
        logger.info("Video background %s", "on" if self._show_video else "off")
        return self._show_video

    # =========================================================================
    # Geometry
    # =========================================================================

    def view_transform(self, positions: np.ndarray, pivot=(0.0, 0.0, 0.0)) -> np.ndarray:
        """Spin about y and tilt about x, both around ``pivot``."""
        pivot = np.asarray(pivot, dtype=np.float32)
        cy, sy = math.cos(self._angle), math.sin(self._angle)
        cx, sx = math.cos(self._tilt), math.sin(self._tilt)
        rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]], dtype=np.float32)
        rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]], dtype=np.float32)
        rot = rot_x @ rot_y
        return (positions - pivot) @ rot.T + pivot

    def focal_length(self, height: int) -> float:
        return (height / 2.0) / math.tan(math.radians(self._fov_deg) / 2.0)

    def project(self, points: np.ndarray, width: int, height: int):
        """Perspective-project world points onto a width x height canvas.

        The camera sits at z = camera_distance looking toward -z.

        Returns:
            (px, py, depth, visible) with integer pixel coords and a mask
            of points in front of the camera and inside the canvas
        """
        depth = self._camera_distance - points[:, 2]
        visible = depth > _NEAR_PLANE
        safe_depth = np.where(visible, depth, 1.0)

        f = self.focal_length(height)
        px = np.round(width / 2.0 + points[:, 0] * f / safe_depth).astype(np.int32)
        py = np.round(height / 2.0 - points[:, 1] * f / safe_depth).astype(np.int32)

        visible &= (px >= 0) & (px < width) & (py >= 0) & (py < height)
        return px, py, depth, visible

    # =========================================================================
    # Drawing
    # =========================================================================

    def make_background(self, frame: np.ndarray = None) -> np.ndarray:
        """Dimmed copy of the camera frame, or a solid canvas."""
        if frame is not None and self._show_video:
            if frame.shape[1] != self._width or frame.shape[0] != self._height:
                self._width, self._height = frame.shape[1], frame.shape[0]
            return cv2.convertScaleAbs(frame, alpha=self._video_dim)
        if frame is not None:
            self._width, self._height = frame.shape[1], frame.shape[0]
        canvas = np.empty((self._height, self._width, 3), dtype=np.uint8)
        canvas[:] = self._background_color
        return canvas

    def draw_points(self, canvas: np.ndarray, positions: np.ndarray,
                    colors: np.ndarray, pivot=(0.0, 0.0, 0.0)) -> int:
        """Additively splat the cloud onto ``canvas`` in place.

        Returns:
            Number of visible points
        """
        h, w = canvas.shape[:2]
        view = self.view_transform(positions, pivot)
        px, py, depth, visible = self.project(view, w, h)
        if not visible.any():
            return 0

        idx = np.nonzero(visible)[0]
        # Far to near so nearer points overwrite on shared pixels
        idx = idx[np.argsort(-depth[idx], kind="stable")]

        point_colors = colors[idx].astype(np.float32)
        if self._depth_shading:
            near = self._camera_distance - 3.0
            far = self._camera_distance + 3.0
            fade = np.clip((depth[idx] - near) / (far - near), 0.0, 1.0)
            point_colors *= (1.0 - 0.6 * fade)[:, None]

        layer = np.zeros_like(canvas)
        layer[py[idx], px[idx]] = point_colors.astype(np.uint8)

        if self._kernel is not None:
            layer = cv2.dilate(layer, self._kernel)
        if self._glow and self._glow_strength > 0:
            blurred = cv2.GaussianBlur(layer, (0, 0), self._glow_sigma)
            layer = cv2.addWeighted(layer, 1.0, blurred, self._glow_strength, 0)

        cv2.add(canvas, layer, dst=canvas)
        return len(idx)

    def render(self, frame: np.ndarray, positions: np.ndarray, colors: np.ndarray,
               pivot=(0.0, 0.0, 0.0)) -> np.ndarray:
        """Compose background and cloud into a new BGR image."""
        canvas = self.make_background(frame)
        self.draw_points(canvas, positions, colors, pivot)
        return canvas

    @property
    def show_video(self) -> bool:
        return self._show_video

    @property
    def angle(self) -> float:
        return self._angle
