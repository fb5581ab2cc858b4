"""
HUD overlay: FPS, latency, active shape, openness meter, hand status and
key legend.
"""

import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)

_FONT = cv2.FONT_HERSHEY_SIMPLEX


class Dashboard:
    """Renders the heads-up display on top of the particle frame."""

    def __init__(self, config: dict):
        self._enabled = config.get("show_hud", True)
        self._show_fps = config.get("show_fps", True)
        self._show_legend = config.get("show_legend", True)

        colors = config.get("colors", {})
        self._color_text = tuple(colors.get("text", [255, 255, 255]))
        self._color_fps_good = tuple(colors.get("fps_good", [0, 255, 0]))
        self._color_fps_warn = tuple(colors.get("fps_warn", [0, 255, 255]))
        self._color_fps_bad = tuple(colors.get("fps_bad", [0, 0, 255]))
        self._color_openness = tuple(colors.get("openness", [255, 200, 0]))
        self._color_hint = tuple(colors.get("hint", [0, 150, 255]))
        self._color_bbox = tuple(colors.get("bbox", [0, 255, 0]))

        self._legend = [
            ("S", "Shape"),
            ("V", "Video"),
            ("L", "Landmarks"),
            ("H", "HUD"),
            ("P", "Stats"),
            ("Q", "Quit"),
        ]

    def toggle(self) -> bool:
        self._enabled = not self._enabled
        return self._enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def render(self, frame: np.ndarray, state: dict) -> np.ndarray:
        """Draw the HUD in place.

        Args:
            frame: BGR frame to draw on
            state: dict with fps, latency_ms, shape, openness,
                   hand_detected, mode, particle_count and
                   optionally hand_bbox (x, y, w, h)

        Returns:
            The same frame
        """
        if not self._enabled:
            return frame

        h, w = frame.shape[:2]
        bbox = state.get("hand_bbox")
        if bbox is not None:
            x, y, bw, bh = bbox
            cv2.rectangle(frame, (x, y), (x + bw, y + bh), self._color_bbox, 1)
        self._draw_top_bar(frame, w, state)
        self._draw_openness_meter(frame, h, state.get("openness", 0.0),
                                  state.get("hand_detected", False))
        if self._show_legend:
            self._draw_legend(frame, h)
        if not state.get("hand_detected", False):
            self._draw_hint(frame, w, h)
        return frame

    def _draw_top_bar(self, frame, w, state):
        if self._show_fps:
            fps = state.get("fps", 0.0)
            if fps >= 25:
                fps_color = self._color_fps_good
            elif fps >= 15:
                fps_color = self._color_fps_warn
            else:
                fps_color = self._color_fps_bad
            cv2.putText(frame, f"FPS: {fps:.1f}", (15, 30), _FONT, 0.7, fps_color, 2)
            cv2.putText(frame, f"{state.get('latency_ms', 0.0):.1f} ms", (15, 55),
                        _FONT, 0.5, self._color_text, 1)

        shape = str(state.get("shape", "")).upper()
        count = state.get("particle_count", 0)
        cv2.putText(frame, f"{shape}  x{count}", (w - 260, 30), _FONT, 0.7, self._color_text, 2)
        cv2.putText(frame, f"Mode: {state.get('mode', 'interactive')}", (w - 260, 55),
                    _FONT, 0.5, self._color_text, 1)

    def _draw_openness_meter(self, frame, h, openness, active):
        """Vertical meter on the left edge."""
        bar_x, bar_w, bar_h = 15, 14, 180
        bar_y = h - bar_h - 50

        cv2.rectangle(frame, (bar_x, bar_y), (bar_x + bar_w, bar_y + bar_h), (50, 50, 50), -1)
        fill_h = int(max(0.0, min(1.0, openness)) * bar_h)
        color = self._color_openness if active else (120, 120, 120)
        cv2.rectangle(frame, (bar_x, bar_y + bar_h - fill_h),
                      (bar_x + bar_w, bar_y + bar_h), color, -1)
        cv2.rectangle(frame, (bar_x, bar_y), (bar_x + bar_w, bar_y + bar_h), (200, 200, 200), 1)
        cv2.putText(frame, "OPEN", (bar_x - 4, bar_y - 8), _FONT, 0.4, self._color_text, 1)

    def _draw_legend(self, frame, h):
        x, y = 45, h - 15
        for key, label in self._legend:
            cv2.putText(frame, f"[{key}] {label}", (x, y), _FONT, 0.4, (180, 180, 180), 1)
            x += 105

    def _draw_hint(self, frame, w, h):
        text = "Show your hand - pinch to shrink, open to expand"
        size = cv2.getTextSize(text, _FONT, 0.6, 2)[0]
        cv2.putText(frame, text, ((w - size[0]) // 2, h - 45), _FONT, 0.6, self._color_hint, 2)
