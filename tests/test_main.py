"""
Tests for the Application Shell
================================
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from core.events import EventBus, Events
from modules.utils.config import Config


@pytest.fixture
def config():
    Config.reset()
    EventBus().reset()
    cfg = Config().load_dict({
        "camera": {"width": 160, "height": 120},
        "particles": {"count": 300, "shape": "saturn"},
        "render": {"glow": False},
        "performance": {"enable_threading": False, "benchmark_frames": 5},
        "visualization": {"enabled": False},
    })
    yield cfg
    Config.reset()
    EventBus().reset()


class TestArgs:
    """CLI parsing and config overrides."""

    def test_defaults(self):
        args = main.parse_args([])

        assert args.mode == "interactive"
        assert args.shape is None
        assert args.particles is None

    def test_overrides_applied(self, config):
        args = main.parse_args(["--mode", "demo", "--shape", "heart",
                                "--particles", "50", "--camera", "2"])
        main.apply_overrides(config, args)

        assert config.get("particles.shape") == "heart"
        assert config.get("particles.count") == 50
        assert config.get("camera.device_id") == 2

    def test_invalid_particle_count(self, config):
        with pytest.raises(SystemExit):
            main.apply_overrides(config, main.parse_args(["--particles", "0"]))

    def test_invalid_mode(self):
        with pytest.raises(SystemExit):
            main.parse_args(["--mode", "party"])


class TestApp:
    """End-to-end runs without a webcam."""

    def test_demo_benchmark_runs(self, config):
        app = main.HandParticlesApp(config, mode="demo")
        with patch.object(main.cv2, "destroyAllWindows"):
            app._mode = "benchmark"
            assert app.start() is True

        assert app._pipeline.frame_count == 5

    def test_unknown_shape_falls_back(self, config):
        config.set("particles.shape", "dodecahedron")
        app = main.HandParticlesApp(config, mode="demo")
        assert app._particles.shape_name == "saturn"

    def test_invalid_particle_count_uses_default(self, config):
        config.load_dict({
            "particles": {"count": 0, "shape": "saturn"},
            "render": {"glow": False, "fov_deg": 200.0},
        })

        app = main.HandParticlesApp(config, mode="demo")

        assert app._particles.count == 6000

    def test_camera_failure_aborts(self, config):
        app = main.HandParticlesApp(config, mode="interactive")
        errors = []
        EventBus().subscribe(Events.CAMERA_ERROR, lambda **kw: errors.append(kw))
        with patch.object(main.CameraManager, "open", return_value=False):
            assert app.start() is False
        assert app._pipeline is None
        assert len(errors) == 1

    def test_key_handling(self, config):
        app = main.HandParticlesApp(config, mode="demo")
        with patch.object(main.cv2, "destroyAllWindows"):
            app._mode = "benchmark"
            app.start()

        app._running = True
        app._handle_key(ord("s"))
        assert app._particles.shape_name != "saturn"
        app._handle_key(ord("q"))
        assert app._running is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
