"""
Tests for the Particle Renderer and HUD
========================================
"""

import math
import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.visualization.renderer import ParticleRenderer
from modules.visualization.dashboard import Dashboard

W, H = 320, 240


@pytest.fixture
def renderer():
    return ParticleRenderer({
        "camera_distance": 6.0,
        "fov_deg": 60.0,
        "spin_speed": 1.0,
        "tilt": 0.0,
        "point_size": 1,
        "glow": False,
        "depth_shading": False,
        "background": "solid",
        "background_color": [0, 0, 0],
    }, size=(W, H))


class TestProjection:
    """Perspective projection and culling."""

    def test_origin_projects_to_center(self, renderer):
        px, py, depth, visible = renderer.project(np.zeros((1, 3), dtype=np.float32), W, H)

        assert (px[0], py[0]) == (W // 2, H // 2)
        assert depth[0] == pytest.approx(6.0)
        assert visible[0]

    def test_axes_orientation(self, renderer):
        points = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], dtype=np.float32)
        px, py, _, _ = renderer.project(points, W, H)

        assert px[0] > W // 2        # +x is right
        assert py[1] < H // 2        # +y is up

    def test_nearer_points_spread_more(self, renderer):
        points = np.array([[1.0, 0.0, 0.0], [1.0, 0.0, 2.0]], dtype=np.float32)
        px, _, _, _ = renderer.project(points, W, H)
        assert px[1] > px[0]

    def test_behind_camera_culled(self, renderer):
        points = np.array([[0.0, 0.0, 7.0], [0.0, 0.0, 6.0]], dtype=np.float32)
        _, _, _, visible = renderer.project(points, W, H)
        assert not visible.any()

    def test_off_canvas_culled(self, renderer):
        points = np.array([[100.0, 0.0, 0.0]], dtype=np.float32)
        _, _, _, visible = renderer.project(points, W, H)
        assert not visible[0]

    def test_focal_length(self, renderer):
        assert renderer.focal_length(H) == pytest.approx((H / 2) / math.tan(math.radians(30)))


class TestViewTransform:
    """Spin and tilt around the cloud pivot."""

    def test_pivot_is_fixed_point(self, renderer):
        renderer.advance(1.3)
        pivot = (1.0, -0.5, 0.2)
        out = renderer.view_transform(np.array([pivot], dtype=np.float32), pivot)
        np.testing.assert_allclose(out[0], pivot, atol=1e-6)

    def test_quarter_turn(self, renderer):
        renderer.advance(math.pi / 2)    # spin_speed 1 rad/s
        out = renderer.view_transform(np.array([[1.0, 0.0, 0.0]], dtype=np.float32))
        np.testing.assert_allclose(out[0], [0.0, 0.0, -1.0], atol=1e-6)

    def test_advance_ignores_non_positive(self, renderer):
        renderer.advance(0.0)
        renderer.advance(-1.0)
        assert renderer.angle == 0.0


class TestDrawing:
    """Background and splatting."""

    def test_single_point_drawn(self, renderer):
        positions = np.zeros((1, 3), dtype=np.float32)
        colors = np.array([[0, 0, 200]], dtype=np.uint8)

        image = renderer.render(None, positions, colors)

        assert image.shape == (H, W, 3)
        assert tuple(image[H // 2, W // 2]) == (0, 0, 200)
        assert image.sum() == 200

    def test_additive_over_background(self):
        renderer = ParticleRenderer({
            "glow": False, "depth_shading": False, "point_size": 1, "tilt": 0.0,
            "background": "solid", "background_color": [100, 100, 100],
        }, size=(W, H))
        image = renderer.render(None, np.zeros((1, 3), dtype=np.float32),
                                np.array([[200, 10, 0]], dtype=np.uint8))
        assert tuple(image[H // 2, W // 2]) == (255, 110, 100)

    def test_nearest_point_wins(self, renderer):
        positions = np.array([[0.0, 0.0, -1.0], [0.0, 0.0, 1.0]], dtype=np.float32)
        colors = np.array([[255, 0, 0], [0, 255, 0]], dtype=np.uint8)

        image = renderer.render(None, positions, colors)

        assert tuple(image[H // 2, W // 2]) == (0, 255, 0)

    def test_visible_count(self, renderer):
        positions = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 9.0], [50.0, 0.0, 0.0]],
                             dtype=np.float32)
        canvas = np.zeros((H, W, 3), dtype=np.uint8)
        colors = np.full((3, 3), 255, dtype=np.uint8)

        assert renderer.draw_points(canvas, positions, colors) == 1

    def test_glow_spreads_light(self):
        renderer = ParticleRenderer({
            "glow": True, "glow_sigma": 2.0, "glow_strength": 1.0,
            "depth_shading": False, "point_size": 1, "tilt": 0.0,
            "background": "solid", "background_color": [0, 0, 0],
        }, size=(W, H))
        image = renderer.render(None, np.zeros((1, 3), dtype=np.float32),
                                np.array([[255, 255, 255]], dtype=np.uint8))
        assert image[H // 2, W // 2 + 1].max() > 0

    def test_video_background_dimmed(self):
        renderer = ParticleRenderer({"background": "video", "video_dim": 0.5}, size=(W, H))
        frame = np.full((H, W, 3), 200, dtype=np.uint8)

        background = renderer.make_background(frame)

        assert background[0, 0, 0] == 100
        assert frame[0, 0, 0] == 200

    def test_toggle_video(self, renderer):
        frame = np.full((H, W, 3), 200, dtype=np.uint8)
        assert renderer.make_background(frame).max() == 0

        assert renderer.toggle_video() is True
        assert renderer.make_background(frame).max() > 0

    def test_canvas_follows_frame_size(self, renderer):
        frame = np.zeros((100, 150, 3), dtype=np.uint8)
        image = renderer.render(frame, np.zeros((1, 3), dtype=np.float32),
                                np.full((1, 3), 255, dtype=np.uint8))
        assert image.shape == (100, 150, 3)


class TestDashboard:
    """HUD overlay."""

    @pytest.fixture
    def state(self):
        return {
            "fps": 30.0, "latency_ms": 12.0, "shape": "saturn",
            "particle_count": 6000, "openness": 0.7,
            "hand_detected": True, "mode": "demo",
        }

    def test_draws_on_frame(self, state):
        frame = np.zeros((H, W, 3), dtype=np.uint8)
        out = Dashboard({}).render(frame, state)

        assert out is frame
        assert frame.sum() > 0

    def test_disabled_draws_nothing(self, state):
        dashboard = Dashboard({"show_hud": False})
        frame = np.zeros((H, W, 3), dtype=np.uint8)

        dashboard.render(frame, state)

        assert frame.sum() == 0
        assert dashboard.toggle() is True

    def test_hint_when_no_hand(self, state):
        with_hand = Dashboard({"show_legend": False}).render(
            np.zeros((H, W, 3), dtype=np.uint8), state)
        state["hand_detected"] = False
        without_hand = Dashboard({"show_legend": False}).render(
            np.zeros((H, W, 3), dtype=np.uint8), state)

        assert not np.array_equal(with_hand, without_hand)

    def test_hand_bbox_drawn(self, state):
        dashboard = Dashboard({"show_legend": False})
        plain = dashboard.render(np.zeros((H, W, 3), dtype=np.uint8), dict(state))
        state["hand_bbox"] = (100, 100, 50, 40)
        boxed = dashboard.render(np.zeros((H, W, 3), dtype=np.uint8), state)

        assert not np.array_equal(plain, boxed)
        assert boxed[100, 120].any()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
