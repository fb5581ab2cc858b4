"""
Per-frame pipeline for the hand-driven particle cloud.

    Source -> HandDetector -> LandmarkExtractor -> GestureMapper
    -> ParticleSystem -> ParticleRenderer

One ``tick()`` reads the newest frame, measures the hand, maps the
measurements to cloud parameters, eases the particles toward their
targets and renders the result. A synthetic source can stand in for
camera + detector; it then provides the HandState itself.
"""

import time
import logging
import cv2

from core.types import FrameResult, HandState
from core.events import EventBus, Events
from modules.particles.shapes import available_shapes

logger = logging.getLogger(__name__)

# Frame step used for the very first tick and as an upper bound, so a
# stall (window drag, debugger) does not teleport the particles
_DEFAULT_DT = 1.0 / 60.0
_MAX_DT = 0.1


class Pipeline:
    """Hand tracking -> particle update -> render, one frame at a time."""

    def __init__(
        self,
        source,
        particles,
        mapper,
        renderer,
        performance_monitor,
        detector=None,
        extractor=None,
        event_bus=None,
        config=None,
        clock=time.time,
    ):
        if detector is not None and extractor is None:
            raise ValueError("a detector needs a LandmarkExtractor")
        if detector is None and not hasattr(source, "current_hand_state"):
            raise ValueError("without a detector the source must provide hand states")

        self._source = source
        self._particles = particles
        self._mapper = mapper
        self._renderer = renderer
        self._perf = performance_monitor
        self._detector = detector
        self._extractor = extractor
        self._bus = event_bus or EventBus()
        self._clock = clock

        config = config or {}
        self._use_threading = config.get("enable_threading", True)
        self._show_landmarks = config.get("show_landmarks", False)
        self._max_failed_reads = config.get("max_failed_reads", 30)
        self._mode = config.get("mode", "interactive")

        self._frame_count = 0
        self._last_tick = None
        self._hand_present = False
        self._camera_error_reported = False
        self._last_hand_state = HandState.absent()
        self._last_params = mapper.current_params()

    def tick(self) -> FrameResult:
        """Execute one full iteration and return what was produced."""
        result = FrameResult()
        result.shape = self._particles.shape_name
        now = self._clock()
        result.timestamp = now

        # --- 1. Frame ---
        with self._perf.measure("capture"):
            if self._use_threading:
                frame_id, frame = self._source.read()
            else:
                frame_id, frame = self._source.read_sync()

        # The async slot keeps serving its last frame after the device dies
        self._check_source_health()
        if frame is None:
            self._perf.record_empty()
            return result

        result.frame_id = frame_id
        self._frame_count += 1
        dt = _DEFAULT_DT if self._last_tick is None else min(max(now - self._last_tick, 0.0), _MAX_DT)
        self._last_tick = now

        # --- 2. Hand measurement ---
        detection_results = None
        with self._perf.measure("detection"):
            if self._detector is not None:
                rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                detection_results = self._detector.detect(rgb_frame)
                hand_state = self._extractor.build_hand_state(detection_results, now)
            else:
                hand_state = self._source.current_hand_state(now)

        # --- 3. Gesture -> parameters ---
        with self._perf.measure("mapping"):
            params = self._mapper.update(hand_state, now)
        self._emit_transitions(params, hand_state)

        # --- 4. Particles ---
        with self._perf.measure("particles"):
            positions = self._particles.update(params, dt)

        # --- 5. Render ---
        with self._perf.measure("render"):
            self._renderer.advance(dt)
            image = self._renderer.render(
                frame, positions, self._particles.colors, pivot=params.offset
            )
            if self._show_landmarks and self._detector is not None:
                self._detector.draw_landmarks(image, detection_results)

        self._perf.tick()

        self._last_hand_state = hand_state
        self._last_params = params
        result.frame = image
        result.hand_state = hand_state
        result.params = params
        result.latency_ms = self._perf.total_latency_ms
        return result

    def _emit_transitions(self, params, hand_state):
        """Fire hand events on debounced presence changes only."""
        if params.hand_present == self._hand_present:
            return
        self._hand_present = params.hand_present
        if params.hand_present:
            logger.info("Hand detected (openness=%.2f)", params.openness)
            self._bus.emit(Events.HAND_DETECTED, hand=hand_state, params=params)
        else:
            logger.info("Hand lost")
            self._bus.emit(Events.HAND_LOST, params=params)

    def _check_source_health(self):
        failed = getattr(self._source, "failed_reads", 0)
        if failed >= self._max_failed_reads and not self._camera_error_reported:
            self._camera_error_reported = True
            logger.error("Camera delivered no frames for %d reads", failed)
            self._bus.emit(Events.CAMERA_ERROR, failed_reads=failed)
        elif failed == 0:
            self._camera_error_reported = False

    # =========================================================================
    # Controls
    # =========================================================================

    def set_shape(self, name: str):
        """Morph the cloud into another registered shape."""
        previous = self._particles.shape_name
        self._particles.set_shape(name)
        self._bus.emit(Events.SHAPE_CHANGED, shape=self._particles.shape_name,
                       previous=previous)

    def next_shape(self) -> str:
        """Cycle to the next registered shape and return its name."""
        shapes = available_shapes()
        current = self._particles.shape_name
        index = shapes.index(current) if current in shapes else -1
        self.set_shape(shapes[(index + 1) % len(shapes)])
        return self._particles.shape_name

    def toggle_video(self) -> bool:
        return self._renderer.toggle_video()

    def toggle_landmarks(self) -> bool:
        self._show_landmarks = not self._show_landmarks
        return self._show_landmarks

    def set_mode(self, mode: str):
        self._mode = mode
        logger.info("Pipeline mode set to: %s", mode)
        self._bus.emit(Events.MODE_CHANGED, mode=mode)

    def build_state(self) -> dict:
        """State dict for the HUD."""
        return {
            "fps": self._perf.fps,
            "latency_ms": self._perf.total_latency_ms,
            "shape": self._particles.shape_name,
            "particle_count": self._particles.count,
            "openness": self._last_params.openness,
            "scale": self._last_params.scale,
            "hand_detected": self._hand_present,
            "mode": self._mode,
            "hand_bbox": self._hand_bbox(),
        }

    def _hand_bbox(self):
        hand = self._last_hand_state
        if self._extractor is None or not hand.detected or hand.landmarks is None:
            return None
        return self._extractor.get_bounding_box(hand.landmarks)

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def hand_present(self) -> bool:
        return self._hand_present
