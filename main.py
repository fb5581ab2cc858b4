#!/usr/bin/env python3
"""
Hand Particles - a webcam-driven particle cloud.
Main application entry point.

Pinch thumb and index together to shrink the cloud, open the hand to
expand it, move the hand to move it.

Usage:
    python main.py                      # Webcam + MediaPipe hand tracking
    python main.py --mode demo          # Scripted hand, no webcam needed
    python main.py --mode benchmark     # Fixed frame count, then report
    python main.py --shape galaxy       # Start with another shape
"""

import os
import sys
import time
import signal
import argparse
import logging

import cv2

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging, SessionLogger
from modules.utils.performance_monitor import PerformanceMonitor
from modules.capture.camera_manager import CameraManager
from modules.capture.synthetic_source import SyntheticHandSource
from modules.detection.landmark_extractor import LandmarkExtractor
from modules.control.gesture_mapper import GestureMapper
from modules.particles.particle_system import ParticleSystem
from modules.particles.shapes import available_shapes
from modules.visualization.renderer import ParticleRenderer
from modules.visualization.dashboard import Dashboard

from core.errors import DetectorError, ShapeError
from core.events import EventBus, Events
from core.pipeline import Pipeline
from core.types import DEFAULT_SHAPE

logger = logging.getLogger(__name__)

MODES = ("interactive", "demo", "benchmark")


class HandParticlesApp:
    """Wires capture, tracking, mapping, particles and rendering together."""

    def __init__(self, config: Config, mode: str = "interactive"):
        self._config = config
        self._mode = mode
        self._running = False

        self._bus = EventBus()
        self._session = SessionLogger()
        self._perf = PerformanceMonitor(
            window_size=config.get("performance.metrics_window", 100),
            target_fps=config.get("camera.fps", 30),
        )

        # Source: real camera, or the scripted hand for demo runs
        self._detector = None
        self._extractor = None
        if mode == "demo":
            self._source = SyntheticHandSource(config.camera)
        else:
            self._source = CameraManager(config.camera)
            self._extractor = LandmarkExtractor(config.gesture)

        self._mapper = GestureMapper(config.gesture)
        shape = config.get("particles.shape", DEFAULT_SHAPE)
        count = config.get("particles.count", 6000)
        try:
            self._particles = ParticleSystem(count, shape, config.particles)
        except ShapeError as e:
            logger.warning("%s - falling back to '%s'", e, DEFAULT_SHAPE)
            self._particles = ParticleSystem(count, DEFAULT_SHAPE, config.particles)

        self._renderer = ParticleRenderer(
            config.render,
            size=(config.get("camera.width", 1280), config.get("camera.height", 720)),
        )
        self._dashboard = Dashboard(config.visualization)
        self._pipeline = None

        self._bus.subscribe(Events.HAND_DETECTED, self._on_hand_detected)
        self._bus.subscribe(Events.HAND_LOST, self._on_hand_lost)
        self._bus.subscribe(Events.SHAPE_CHANGED, self._on_shape_changed)
        self._bus.subscribe(Events.CAMERA_ERROR, self._on_camera_error)

        logger.info("HandParticlesApp initialized (mode=%s, shape=%s, particles=%d)",
                    mode, self._particles.shape_name, self._particles.count)

    # =========================================================================
    # Event handlers
    # =========================================================================

    def _on_hand_detected(self, **kwargs):
        params = kwargs.get("params")
        self._session.log_hand(True, params.openness if params else 0.0)

    def _on_hand_lost(self, **kwargs):
        self._session.log_hand(False)

    def _on_shape_changed(self, **kwargs):
        self._session.log_shape(kwargs.get("shape", "?"), self._particles.count)

    def _on_camera_error(self, **kwargs):
        logger.error("Camera error (failed reads: %s). Check the connection.",
                     kwargs.get("failed_reads", "?"))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _start_tracking(self) -> bool:
        """Open the source and load the hand model. False on failure."""
        if not self._source.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            self._bus.emit(Events.CAMERA_ERROR, failed_reads=0)
            return False

        if self._config.get("performance.enable_threading", True):
            self._source.start_async()

        w, h = self._source.resolution
        if self._extractor is not None:
            self._extractor.set_frame_size(w, h)
            # Imported here so demo runs do not need the model runtime
            from modules.detection.hand_detector import HandDetector
            self._detector = HandDetector(self._config.mediapipe)
            try:
                self._detector.initialize()
            except DetectorError as e:
                logger.error("%s", e)
                self._source.stop()
                return False
        return True

    def start(self) -> bool:
        """Start the main application loop. Returns False if startup failed."""
        if not self._start_tracking():
            return False

        self._pipeline = Pipeline(
            source=self._source,
            particles=self._particles,
            mapper=self._mapper,
            renderer=self._renderer,
            performance_monitor=self._perf,
            detector=self._detector,
            extractor=self._extractor,
            event_bus=self._bus,
            config={
                "enable_threading": self._config.get("performance.enable_threading", True),
                "show_landmarks": self._config.get("visualization.show_landmarks", False),
                "mode": self._mode,
            },
        )

        self._running = True
        self._bus.emit(Events.SYSTEM_STARTED, mode=self._mode)
        logger.info("Starting main loop (mode=%s)", self._mode)

        if self._mode == "benchmark":
            self._run_benchmark_mode()
        else:
            self._run_main_loop()
        return True

    def _run_main_loop(self):
        window_name = self._config.get("visualization.window_name", "Hand Particles")
        show = self._config.get("visualization.enabled", True)

        while self._running:
            with self._perf.measure("total"):
                result = self._pipeline.tick()
                if result.frame is None:
                    time.sleep(0.001)
                    continue
                if show:
                    frame = self._dashboard.render(result.frame, self._pipeline.build_state())
                    cv2.imshow(window_name, frame)

            self._handle_key(cv2.waitKey(1) & 0xFF)

        self._shutdown()

    def _handle_key(self, key: int):
        if key in (ord("q"), 27):
            self._running = False
        elif key == ord("s"):
            self._pipeline.next_shape()
        elif key == ord("v"):
            self._pipeline.toggle_video()
        elif key == ord("h"):
            self._dashboard.toggle()
        elif key == ord("l"):
            self._pipeline.toggle_landmarks()
        elif key == ord("p"):
            self._perf.print_report()

    def _run_benchmark_mode(self):
        frames = self._config.get("performance.benchmark_frames", 300)
        logger.info("=== BENCHMARK MODE ===")
        logger.info("Running %d-frame benchmark...", frames)

        done = 0
        while self._running and done < frames:
            with self._perf.measure("total"):
                result = self._pipeline.tick()
            if result.frame is None:
                time.sleep(0.001)
                continue
            done += 1
            if done % 50 == 0:
                logger.info("Benchmark progress: %d/%d (FPS: %.1f)",
                            done, frames, self._perf.fps)

        self._shutdown()

    def _shutdown(self):
        """Clean shutdown of all modules."""
        logger.info("Shutting down...")
        self._running = False
        self._source.stop()
        if self._detector is not None:
            self._detector.close()
        cv2.destroyAllWindows()

        self._bus.emit(Events.SYSTEM_SHUTDOWN)
        self._perf.print_report()
        logger.info("Hand tracked for %.1fs in total", self._session.hand_time_total)
        logger.info("Shapes shown: %s", self._session.shape_counts)
        logger.info("Events: %s", self._bus.emit_counts())
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Hand Particles - webcam-driven particle cloud"
    )
    parser.add_argument(
        "--mode", choices=MODES, default="interactive", help="Operating mode"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--override", type=str, default=None,
                        help="YAML file merged over the base config")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--shape", type=str, default=None,
                        help=f"Initial shape ({', '.join(available_shapes())})")
    parser.add_argument("--particles", type=int, default=None, help="Particle count")
    parser.add_argument("--log-level", type=str, default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def apply_overrides(config: Config, args) -> Config:
    """Apply CLI flags on top of the loaded config."""
    if args.camera is not None:
        config.set("camera.device_id", args.camera)
    if args.shape is not None:
        config.set("particles.shape", args.shape)
    if args.particles is not None:
        if args.particles < 1:
            raise SystemExit("--particles must be at least 1")
        config.set("particles.count", args.particles)
    if args.log_level is not None:
        config.set("logging.level", args.log_level)
    return config


def main(argv=None) -> int:
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config, override_path=args.override)
    apply_overrides(config, args)

    log_cfg = config.get_section("logging")
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 50)
    logger.info("  HAND PARTICLES")
    logger.info("  Version: %s", config.get("system.version", "1.0.0"))
    logger.info("  Mode: %s", args.mode)
    logger.info("=" * 50)

    app = HandParticlesApp(config, mode=args.mode)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    return 0 if app.start() else 1


if __name__ == "__main__":
    sys.exit(main())
