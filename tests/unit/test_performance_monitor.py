"""Unit tests for the validation performance monitor."""

import pytest

from core.performance_monitor import PerformanceMonitor
from tests.utils.fixtures import FakeClock


def _run(monitor, clock, duration_s, **kwargs):
    token = monitor.start_validation("https://example.org/a.jpg")
    clock.advance(duration_s)
    defaults = {"success": True, "detection_method": "mime-type"}
    defaults.update(kwargs)
    return monitor.end_validation(token, "https://example.org/a.jpg", **defaults)


class TestPerformanceMonitor:
    """Test suite for PerformanceMonitor metrics."""

    def test_duration_and_metrics(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(clock=clock)

        assert _run(monitor, clock, 0.010) == pytest.approx(10.0)
        _run(monitor, clock, 0.030, success=False, detection_method="http-content-type", network_request=True)

        metrics = monitor.get_metrics()
        assert metrics["total_validations"] == 2
        assert metrics["successful_validations"] == 1
        assert metrics["failed_validations"] == 1
        assert metrics["average_validation_time"] == 20.0
        assert metrics["min_validation_time"] == 10.0
        assert metrics["max_validation_time"] == 30.0
        assert metrics["network_request_count"] == 1

    def test_cache_hits_are_tracked_per_method(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(clock=clock)

        _run(monitor, clock, 0.001, cache_hit=True)
        _run(monitor, clock, 0.001)

        metrics = monitor.get_metrics()
        assert metrics["cache_hit_rate"] == 50.0
        assert set(metrics["detection_method_stats"]) == {"mime-type", "mime-type-cached"}

    def test_single_validations_are_not_batches(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(clock=clock)
        _run(monitor, clock, 0.002)

        metrics = monitor.get_metrics()
        assert metrics["batch_validation_count"] == 0
        assert metrics["average_batch_size"] == 0.0
        assert not hasattr(monitor.get_recent_records()[0], "batch_size")

    def test_batch_recording(self):
        monitor = PerformanceMonitor()
        monitor.record_batch_validation(batch_size=4, total_time_ms=40.0, success_count=3)

        metrics = monitor.get_metrics()
        assert metrics["batch_validation_count"] == 1
        assert metrics["average_batch_size"] == 4.0
        assert metrics["total_validations"] == 4
        assert metrics["failed_validations"] == 1

    def test_recent_records_are_bounded(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(max_records=3, clock=clock)
        for _ in range(5):
            _run(monitor, clock, 0.001)

        assert len(monitor.get_recent_records()) == 3
        assert len(monitor.get_recent_records(limit=2)) == 2

    def test_reset(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(clock=clock)
        _run(monitor, clock, 0.001)
        monitor.reset_metrics()

        assert monitor.get_metrics()["total_validations"] == 0
        assert monitor.get_recent_records() == []

    def test_summary_mentions_counters(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(clock=clock)
        _run(monitor, clock, 0.005)

        summary = monitor.get_performance_summary()
        assert "Total Validations: 1" in summary
        assert "Success Rate: 100%" in summary


class TestPerformanceHealth:
    """Test suite for the performance health check."""

    def test_healthy(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(clock=clock)
        for _ in range(3):
            _run(monitor, clock, 0.001, cache_hit=True)

        health = monitor.check_performance_health()
        assert health["healthy"]
        assert health["issues"] == []

    def test_unhealthy(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(clock=clock)
        for _ in range(2):
            _run(monitor, clock, 0.5, success=False, detection_method="http-content-type", network_request=True)

        health = monitor.check_performance_health()
        assert not health["healthy"]
        assert len(health["issues"]) == 4
        assert len(health["recommendations"]) == 4
