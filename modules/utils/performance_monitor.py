"""
Frame-rate and per-stage latency tracking for the render loop.

Stage timings live in fixed-size rolling windows, so the HUD shows how
the loop behaves now rather than since start-up.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager

import numpy as np

logger = logging.getLogger(__name__)

STAGES = ("capture", "detection", "mapping", "particles", "render", "total")


class PerformanceMonitor:
    """Rolling FPS plus mean / p95 / max latency per pipeline stage."""

    def __init__(self, window_size=100, target_fps: float = 30.0):
        self._window_size = window_size
        self._frame_budget_ms = 1000.0 / target_fps if target_fps > 0 else 0.0
        self._lock = threading.Lock()

        self._intervals = deque(maxlen=window_size)
        self._last_tick = None
        self._stage_times = {name: deque(maxlen=window_size) for name in STAGES}

        self._frame_count = 0
        self._empty_frames = 0
        self._over_budget = 0
        self._start_time = time.time()

    @contextmanager
    def measure(self, stage_name: str):
        """Time the enclosed block under ``stage_name``; recorded even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            with self._lock:
                window = self._stage_times.setdefault(
                    stage_name, deque(maxlen=self._window_size))
                window.append(elapsed_ms)
                if stage_name == "total" and self._frame_budget_ms \
                        and elapsed_ms > self._frame_budget_ms:
                    self._over_budget += 1

    def tick(self):
        """Mark a rendered frame."""
        now = time.perf_counter()
        with self._lock:
            if self._last_tick is not None:
                self._intervals.append(now - self._last_tick)
            self._last_tick = now
            self._frame_count += 1

    def record_empty(self):
        """Mark a loop iteration where the source had no frame yet."""
        with self._lock:
            self._empty_frames += 1

    @property
    def fps(self) -> float:
        with self._lock:
            if len(self._intervals) < 2:
                return 0.0
            mean_interval = float(np.mean(self._intervals))
        return 1.0 / mean_interval if mean_interval > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def total_latency_ms(self) -> float:
        return self.get_stage_latency("total")

    def get_stage_latency(self, stage_name: str) -> float:
        """Mean latency of a stage in ms (0.0 when never measured)."""
        return self.get_stage_stats(stage_name)["mean"]

    def get_stage_stats(self, stage_name: str) -> dict:
        with self._lock:
            samples = np.array(self._stage_times.get(stage_name, ()), dtype=np.float64)
        if samples.size == 0:
            return {"mean": 0.0, "p95": 0.0, "max": 0.0}
        return {
            "mean": float(samples.mean()),
            "p95": float(np.percentile(samples, 95)),
            "max": float(samples.max()),
        }

    def get_all_latencies(self) -> dict:
        with self._lock:
            names = list(self._stage_times)
        return {name: self.get_stage_latency(name) for name in names}

    def get_report(self) -> dict:
        with self._lock:
            names = list(self._stage_times)
        stats = {name: self.get_stage_stats(name) for name in names}
        return {
            "fps": round(self.fps, 1),
            "total_frames": self._frame_count,
            "empty_frames": self._empty_frames,
            "over_budget_frames": self._over_budget,
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "latencies_ms": {name: round(s["mean"], 2) for name, s in stats.items()},
            "p95_ms": {name: round(s["p95"], 2) for name, s in stats.items()},
            "max_ms": {name: round(s["max"], 2) for name, s in stats.items()},
        }

    def print_report(self):
        report = self.get_report()
        logger.info("=" * 50)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 50)
        logger.info("FPS:          %.1f", report["fps"])
        logger.info("Frames:       %d (empty: %d, over budget: %d)",
                    report["total_frames"], report["empty_frames"],
                    report["over_budget_frames"])
        logger.info("Uptime:       %.1fs", report["uptime_seconds"])
        logger.info("-" * 40)
        logger.info("  %-12s %9s %9s %9s", "stage", "mean", "p95", "max")
        for stage, mean in report["latencies_ms"].items():
            logger.info("  %-12s %6.2f ms %6.2f ms %6.2f ms", stage, mean,
                        report["p95_ms"][stage], report["max_ms"][stage])
        logger.info("=" * 50)

    def reset(self):
        with self._lock:
            self._intervals.clear()
            self._last_tick = None
            for window in self._stage_times.values():
                window.clear()
            self._frame_count = 0
            self._empty_frames = 0
            self._over_budget = 0
            self._start_time = time.time()
