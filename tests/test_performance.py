"""
Tests for Performance Monitoring and Logging Helpers
=====================================================
"""

import logging
import pytest
import time
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.utils.performance_monitor import PerformanceMonitor, STAGES
from modules.utils.logger import setup_logging, SessionLogger, log_timing


class TestPerformanceMonitor:
    """Test suite for PerformanceMonitor."""

    @pytest.fixture
    def monitor(self):
        return PerformanceMonitor(window_size=10)

    def test_initial_state(self, monitor):
        assert monitor.fps == 0.0
        assert monitor.total_latency_ms == 0.0
        assert set(monitor.get_all_latencies()) == set(STAGES)

    def test_measure_records_stage(self, monitor):
        with monitor.measure("render"):
            time.sleep(0.01)

        assert monitor.get_stage_latency("render") >= 9

    def test_measure_records_on_exception(self, monitor):
        with pytest.raises(RuntimeError):
            with monitor.measure("particles"):
                raise RuntimeError("fail")

        assert monitor.get_stage_latency("particles") >= 0.0
        assert len(monitor._stage_times["particles"]) == 1

    def test_custom_stage(self, monitor):
        with monitor.measure("custom"):
            pass
        assert "custom" in monitor.get_all_latencies()

    def test_fps(self, monitor):
        for _ in range(5):
            monitor.tick()
            time.sleep(0.02)

        assert 10 < monitor.fps < 60
        assert monitor.frame_count == 5

    def test_report(self, monitor):
        monitor.tick()
        monitor.record_empty()
        report = monitor.get_report()

        assert report["total_frames"] == 1
        assert report["empty_frames"] == 1
        assert "render" in report["latencies_ms"]
        assert set(report["max_ms"]) == set(report["p95_ms"]) == set(report["latencies_ms"])

    def test_report_includes_stage_max(self, monitor):
        for value in (2.0, 4.0, 12.0):
            monitor._stage_times["render"].append(value)

        report = monitor.get_report()

        assert report["max_ms"]["render"] == 12.0
        assert report["latencies_ms"]["render"] == 6.0

    def test_stage_stats(self, monitor):
        for value in range(1, 11):
            monitor._stage_times["render"].append(float(value))

        stats = monitor.get_stage_stats("render")

        assert stats["mean"] == pytest.approx(5.5)
        assert stats["max"] == 10.0
        assert 9.0 <= stats["p95"] <= 10.0
        assert monitor.get_stage_stats("unknown") == {"mean": 0.0, "p95": 0.0, "max": 0.0}

    def test_over_budget_frames_counted(self):
        monitor = PerformanceMonitor(window_size=10, target_fps=1000.0)
        with monitor.measure("total"):
            time.sleep(0.005)

        assert monitor.get_report()["over_budget_frames"] == 1

    def test_print_report_logs(self, monitor, caplog):
        with caplog.at_level(logging.INFO):
            monitor.print_report()
        assert "PERFORMANCE REPORT" in caplog.text

    def test_reset(self, monitor):
        monitor.tick()
        with monitor.measure("render"):
            pass
        monitor.reset()

        assert monitor.frame_count == 0
        assert monitor.get_stage_latency("render") == 0.0


class TestLoggingHelpers:
    """Test suite for logging setup and session log."""

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        root = setup_logging(level="DEBUG", log_file=str(log_file))
        try:
            logging.getLogger("test").debug("hello file")
            for handler in root.handlers:
                handler.flush()

            assert log_file.exists()
            assert "hello file" in log_file.read_text()
        finally:
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
            root.setLevel(logging.WARNING)

    def test_session_logger_tracks_hand_time(self):
        session = SessionLogger()
        session.log_hand(True, 0.4)
        session._hand_since -= 2.0
        session.log_hand(False)
        session.log_shape("ring", 100)

        assert session.hand_time_total == pytest.approx(2.0, abs=0.1)
        assert [e["event"] for e in session.get_history()] == ["hand", "hand", "shape"]
        assert len(session.get_history(last_n=1)) == 1
        assert session.shape_counts == {"ring": 1}

    def test_session_history_bounded(self):
        session = SessionLogger(max_history=3)
        for name in ("a", "b", "c", "d"):
            session.log_shape(name, 10)

        assert [e["shape"] for e in session.get_history()] == ["b", "c", "d"]

    def test_log_timing_preserves_result(self):
        @log_timing
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
