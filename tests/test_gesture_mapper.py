"""
Tests for Gesture Mapping and Smoothing
========================================
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.types import HandState
from modules.control.gesture_mapper import GestureMapper
from modules.control.one_euro_filter import OneEuroFilter


def hand(openness=0.5, center=(0.5, 0.5)):
    return HandState(detected=True, openness=openness, center=center)


class TestOneEuroFilter:
    """Test suite for the adaptive low-pass filter."""

    def test_first_sample_passes_through(self):
        f = OneEuroFilter()
        assert f.filter(3.5, t=0.0) == 3.5
        assert f.value == 3.5

    def test_constant_signal_unchanged(self):
        f = OneEuroFilter()
        for i in range(20):
            out = f.filter(2.0, t=i / 30.0)
        assert out == pytest.approx(2.0)

    def test_non_increasing_time_returns_previous(self):
        f = OneEuroFilter()
        f.filter(1.0, t=1.0)
        assert f.filter(5.0, t=1.0) == 1.0
        assert f.filter(5.0, t=0.5) == 1.0

    def test_step_is_smoothed(self):
        f = OneEuroFilter(min_cutoff=1.0, beta=0.0)
        f.filter(0.0, t=0.0)
        out = f.filter(1.0, t=1.0 / 30.0)
        assert 0.0 < out < 1.0

    def test_reduces_jitter(self):
        f = OneEuroFilter(min_cutoff=1.0, beta=0.0)
        raw = [0.5 + (0.1 if i % 2 else -0.1) for i in range(60)]
        out = [f.filter(x, t=i / 30.0) for i, x in enumerate(raw)]
        assert np.std(out[10:]) < np.std(raw[10:]) / 2

    def test_reset(self):
        f = OneEuroFilter()
        f.filter(1.0, t=0.0)
        f.reset()
        assert f.value is None
        assert f.filter(7.0, t=5.0) == 7.0

    def test_invalid_cutoff(self):
        with pytest.raises(ValueError):
            OneEuroFilter(min_cutoff=0.0)


class TestGestureMapper:
    """Test suite for openness/center -> cloud parameters."""

    @pytest.fixture
    def mapper(self):
        return GestureMapper({
            "range_x": 3.0,
            "range_y": 2.0,
            "min_scale": 0.5,
            "max_scale": 1.5,
            "lost_grace_ms": 300,
            "rest_openness": 0.5,
            "rest_decay": 2.0,
            "smoothing": {"enabled": False},
        })

    def test_initial_params_at_rest(self, mapper):
        params = mapper.current_params()

        assert params.openness == 0.5
        assert params.offset == (0.0, 0.0, 0.0)
        assert params.scale == pytest.approx(1.0)
        assert not params.hand_present

    def test_openness_to_scale(self, mapper):
        assert mapper.update(hand(openness=0.0), now=0.0).scale == pytest.approx(0.5)
        assert mapper.update(hand(openness=1.0), now=0.1).scale == pytest.approx(1.5)
        assert mapper.update(hand(openness=0.25), now=0.2).scale == pytest.approx(0.75)

    def test_center_to_offset(self, mapper):
        params = mapper.update(hand(center=(1.0, 0.0)), now=0.0)

        assert params.offset[0] == pytest.approx(1.5)
        assert params.offset[1] == pytest.approx(1.0)   # image top -> world up
        assert params.offset[2] == 0.0
        assert params.hand_present

    def test_center_of_frame_is_origin(self, mapper):
        params = mapper.update(hand(center=(0.5, 0.5)), now=0.0)
        assert params.offset[:2] == pytest.approx((0.0, 0.0))

    def test_invert(self):
        mapper = GestureMapper({"invert": True, "smoothing": {"enabled": False}})
        assert mapper.update(hand(openness=0.2), now=0.0).openness == pytest.approx(0.8)

    def test_openness_clipped(self, mapper):
        params = mapper.update(hand(openness=1.7), now=0.0)
        assert params.openness == 1.0
        assert params.scale == pytest.approx(1.5)

    def test_grace_period_holds_values(self, mapper):
        mapper.update(hand(openness=1.0, center=(1.0, 0.5)), now=0.0)

        params = mapper.update(HandState.absent(), now=0.1)

        assert params.hand_present
        assert params.openness == 1.0
        assert params.offset[0] == pytest.approx(1.5)

    def test_decay_after_grace(self, mapper):
        mapper.update(hand(openness=1.0, center=(1.0, 0.5)), now=0.0)
        mapper.update(HandState.absent(), now=0.1)   # grace starts here

        params = mapper.update(HandState.absent(), now=0.5)

        # dt = 0.4s, k = min(1, 2.0 * 0.4) = 0.8
        assert not params.hand_present
        assert params.openness == pytest.approx(0.6)
        assert params.offset[0] == pytest.approx(0.3)

    def test_settles_at_rest(self, mapper):
        mapper.update(hand(openness=0.0, center=(0.0, 1.0)), now=0.0)
        t = 0.0
        for _ in range(100):
            t += 0.1
            params = mapper.update(None, now=t)

        assert params.openness == pytest.approx(0.5, abs=1e-6)
        assert params.offset[:2] == pytest.approx((0.0, 0.0), abs=1e-6)

    def test_reacquire_after_loss(self, mapper):
        mapper.update(hand(openness=1.0), now=0.0)
        mapper.update(HandState.absent(), now=0.1)
        mapper.update(HandState.absent(), now=1.0)
        assert not mapper.hand_present

        params = mapper.update(hand(openness=0.1, center=(0.0, 0.5)), now=1.1)

        assert params.hand_present
        assert params.openness == pytest.approx(0.1)
        assert params.offset[0] == pytest.approx(-1.5)

    def test_swapped_scales_are_fixed(self):
        mapper = GestureMapper({"min_scale": 2.0, "max_scale": 1.0,
                                "smoothing": {"enabled": False}})
        assert mapper.update(hand(openness=0.0), now=0.0).scale == pytest.approx(1.0)

    def test_smoothing_bounds(self):
        mapper = GestureMapper({"min_scale": 0.5, "max_scale": 1.5})
        rng = np.random.default_rng(0)
        for i in range(200):
            state = hand(openness=float(rng.uniform(0, 1)),
                         center=(float(rng.uniform(0, 1)), float(rng.uniform(0, 1))))
            params = mapper.update(state, now=i / 30.0)
            assert 0.0 <= params.openness <= 1.0
            assert 0.5 <= params.scale <= 1.5

    def test_smoothing_damps_jitter(self):
        smooth = GestureMapper({"smoothing": {"min_cutoff": 1.0, "beta": 0.0}})
        values = []
        for i in range(60):
            raw = 0.5 + (0.2 if i % 2 else -0.2)
            values.append(smooth.update(hand(openness=raw), now=i / 30.0).openness)
        assert max(values[20:]) - min(values[20:]) < 0.2

    def test_reset(self, mapper):
        mapper.update(hand(openness=1.0, center=(0.0, 0.0)), now=0.0)
        mapper.reset()
        params = mapper.current_params()
        assert params.openness == 0.5
        assert params.offset == (0.0, 0.0, 0.0)
        assert not params.hand_present


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
