"""
Unit tests for the validation decision log.

Tests cover:
- Ring buffer capacity and ordering
- Aggregate statistics for successes, rejections and errors
- Filtering and rejection pattern analysis
- Mirroring of records to the python logger
"""

import logging
from datetime import datetime, timedelta

import pytest

from core.decision_log import DecisionLog
from models.validation import ClassificationResult, LogFilterCriteria
from tests.utils.fixtures import status_fault, timeout_fault


def _accepted(fmt="jpeg", method="mime-type", confidence=0.9):
    return ClassificationResult(is_valid=True, confidence=confidence, detection_method=method, detected_format=fmt)


def _rejected(fmt="tiff", reason="Limited browser support", method="url-extension", confidence=0.7):
    return ClassificationResult(
        is_valid=False, confidence=confidence, detection_method=method, detected_format=fmt, rejection_reason=reason
    )


class TestRingBuffer:
    """Test suite for the capacity-bounded buffer."""

    def test_recent_is_oldest_first(self):
        log = DecisionLog(capacity=10)
        for i in range(3):
            log.log_success(f"https://example.org/{i}.jpg", _accepted(), 5)

        assert [r.url for r in log.recent()] == [f"https://example.org/{i}.jpg" for i in range(3)]
        assert [r.url for r in log.recent(2)] == ["https://example.org/1.jpg", "https://example.org/2.jpg"]

    def test_oldest_records_are_overwritten(self):
        log = DecisionLog(capacity=3)
        for i in range(5):
            log.log_success(f"https://example.org/{i}.jpg", _accepted(), 5)

        assert len(log) == 3
        assert [r.url for r in log.recent()] == [f"https://example.org/{i}.jpg" for i in (2, 3, 4)]
        assert log.stats().total_validations == 5

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            DecisionLog(capacity=0)

    def test_clear(self):
        log = DecisionLog()
        log.log_success("https://example.org/a.jpg", _accepted(), 5)
        log.clear()

        assert len(log) == 0
        assert log.recent() == []
        assert log.stats().total_validations == 0


class TestStatistics:
    """Test suite for aggregate statistics."""

    def test_counts_and_average(self):
        log = DecisionLog()
        log.log_success("https://example.org/a.jpg", _accepted(), 10)
        log.log_rejection("https://example.org/b.tif", _rejected(), 20)
        log.log_network_error("https://example.org/c", timeout_fault(), 30, is_timeout=True)

        stats = log.stats()
        assert stats.total_validations == 3
        assert stats.successful_validations == 1
        assert stats.rejected_validations == 1
        assert stats.error_validations == 1
        assert stats.network_errors == 1
        assert stats.timeout_errors == 1
        assert stats.average_validation_time == pytest.approx(20.0)
        assert stats.format_distribution == {"jpeg": 1, "tiff": 1}
        assert stats.detection_methods == {"mime-type": 1, "url-extension": 1, "http-content-type": 1}

    def test_network_error_record(self):
        log = DecisionLog()
        record = log.log_network_error("https://example.org/c", status_fault(404), 12.6, http_status_code=404)

        assert record.detection_method == "http-content-type"
        assert record.validation_time_ms == 13
        assert record.metadata.http_status_code == 404
        assert record.to_dict()["metadata"] == {"network_timeout": False, "http_status_code": 404}
        assert record.error_details.error_type == "ContentTypeProbeError"
        assert record.rejection_reason.startswith("Error during validation")

    def test_error_with_explicit_result(self):
        log = DecisionLog()
        result = ClassificationResult(
            is_valid=False, confidence=0.0, detection_method="unknown", rejection_reason="Unable to determine"
        )
        record = log.log_error("https://example.org/x", RuntimeError("boom"), 1, "unknown", result=result)

        assert record.rejection_reason == "Unable to determine"
        assert log.stats().network_errors == 0
        assert log.stats().error_validations == 1

    def test_stats_returns_copy(self):
        log = DecisionLog()
        log.log_success("https://example.org/a.jpg", _accepted(), 10)
        log.stats().format_distribution["jpeg"] = 99

        assert log.stats().format_distribution["jpeg"] == 1


class TestQueries:
    """Test suite for filtering and pattern analysis."""

    def test_filtered_combines_criteria(self):
        log = DecisionLog()
        log.log_success("https://example.org/a.jpg", _accepted(method="url-extension", confidence=0.7), 1)
        log.log_success("https://example.org/b.jpg", _accepted(), 1)
        log.log_rejection("https://example.org/c.tif", _rejected(), 1)

        matches = log.filtered(LogFilterCriteria(validation_result=True, min_confidence=0.8))
        assert [r.url for r in matches] == ["https://example.org/b.jpg"]

        matches = log.filtered(LogFilterCriteria(detection_method="url-extension"))
        assert [r.url for r in matches] == ["https://example.org/a.jpg", "https://example.org/c.tif"]

        matches = log.filtered(LogFilterCriteria(has_error=True))
        assert matches == []

    def test_filtered_since(self):
        log = DecisionLog()
        log.log_success("https://example.org/a.jpg", _accepted(), 1)

        assert log.filtered(LogFilterCriteria(since=datetime.now() + timedelta(minutes=1))) == []
        assert len(log.filtered(LogFilterCriteria(since=datetime.now() - timedelta(minutes=1)))) == 1

    def test_rejection_patterns(self):
        log = DecisionLog()
        log.log_rejection("https://example.org/a.tif", _rejected(), 1)
        log.log_rejection("https://example.org/b.tif", _rejected(), 1)
        log.log_rejection("https://example.org/c.gif", _rejected(fmt="gif", reason="Avoid animated content"), 1)
        log.log_success("https://example.org/d.jpg", _accepted(), 1)

        patterns = log.rejection_patterns()

        assert patterns["common_reasons"][0] == {"reason": "Limited browser support", "count": 2, "percentage": 50.0}
        assert patterns["format_distribution"][0]["format"] == "tiff"
        methods = {m["method"]: m for m in patterns["method_effectiveness"]}
        assert methods["mime-type"]["success_rate"] == 100.0
        assert methods["url-extension"]["success_rate"] == 0.0
        assert patterns["method_effectiveness"][0]["method"] == "mime-type"


class TestLoggerMirroring:
    """Test suite for python logger output."""

    def test_levels_follow_outcome(self, caplog):
        log = DecisionLog()
        with caplog.at_level(logging.INFO, logger="core.decision_log"):
            log.log_success("https://example.org/a.jpg", _accepted(), 1)
            log.log_rejection("https://example.org/b.tif", _rejected(), 1)
            log.log_network_error("https://example.org/c", timeout_fault(), 1, is_timeout=True)

        levels = [record.levelno for record in caplog.records if record.name == "core.decision_log"]
        assert levels == [logging.INFO, logging.WARNING, logging.ERROR]
        assert "ACCEPTED" in caplog.records[0].getMessage()
