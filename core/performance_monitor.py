"""Timing and throughput monitoring for format validation."""

import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from models.validation import CACHED_SUFFIX

logger = logging.getLogger(__name__)

# Health targets
TARGET_AVERAGE_TIME_MS = 100.0
TARGET_CACHE_HIT_RATE = 60.0
TARGET_SUCCESS_RATE = 90.0
TARGET_NETWORK_REQUEST_RATIO = 30.0


@dataclass
class ValidationPerformanceRecord:
    """Timing of a single validation."""
    url: str
    start_time: float
    end_time: float
    duration_ms: float
    success: bool
    detection_method: str
    cache_hit: bool
    network_request: bool


class PerformanceMonitor:
    """
    Tracks validation latency, cache effectiveness and network usage.

    Independent of the decision log: it never affects a classification, it
    only observes how long they take and how they were produced.
    """

    def __init__(self, max_records: int = 1000, clock: Callable[[], float] = time.perf_counter):
        self.max_records = max_records
        self._clock = clock
        self._records: Deque[ValidationPerformanceRecord] = deque(maxlen=max_records)
        self._pending: Dict[str, float] = {}
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._total_validations = 0
        self._successful_validations = 0
        self._failed_validations = 0
        self._total_validation_time = 0.0
        self._min_validation_time: Optional[float] = None
        self._max_validation_time = 0.0
        self._network_request_count = 0
        self._batch_validation_count = 0
        self._total_batch_size = 0
        self._method_stats: Dict[str, Dict[str, float]] = {}

    def start_validation(self, url: str) -> str:
        """Begin timing a validation and return its tracking token."""
        token = uuid.uuid4().hex
        self._pending[token] = self._clock()
        return token

    def end_validation(
        self,
        token: str,
        url: str,
        success: bool,
        detection_method: str,
        cache_hit: bool = False,
        network_request: bool = False,
    ) -> float:
        """
        Record the completion of a validation.

        Args:
            token: Token from start_validation
            url: URL that was validated
            success: Whether the image was accepted
            detection_method: Method that produced the result
            cache_hit: Whether the result came from the cache
            network_request: Whether a probe request was made

        Returns:
            float: Duration in milliseconds
        """
        end_time = self._clock()
        start_time = self._pending.pop(token, end_time)
        duration_ms = (end_time - start_time) * 1000

        self._records.append(
            ValidationPerformanceRecord(
                url=url,
                start_time=start_time,
                end_time=end_time,
                duration_ms=duration_ms,
                success=success,
                detection_method=detection_method,
                cache_hit=cache_hit,
                network_request=network_request,
            )
        )

        self._total_validations += 1
        if success:
            self._successful_validations += 1
        else:
            self._failed_validations += 1

        self._total_validation_time += duration_ms
        if self._min_validation_time is None or duration_ms < self._min_validation_time:
            self._min_validation_time = duration_ms
        self._max_validation_time = max(self._max_validation_time, duration_ms)

        if network_request:
            self._network_request_count += 1

        method_key = f"{detection_method}{CACHED_SUFFIX}" if cache_hit else detection_method
        stats = self._method_stats.setdefault(method_key, {"count": 0, "total_time": 0.0, "success_count": 0})
        stats["count"] += 1
        stats["total_time"] += duration_ms
        if success:
            stats["success_count"] += 1

        return duration_ms

    def record_batch_validation(self, batch_size: int, total_time_ms: float, success_count: int) -> None:
        """Record a batch of validations as one operation."""
        self._batch_validation_count += 1
        self._total_batch_size += batch_size
        self._total_validation_time += total_time_ms
        self._total_validations += batch_size
        self._successful_validations += success_count
        self._failed_validations += batch_size - success_count

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get current performance metrics.

        Returns:
            Dictionary of counters; rates are percentages over the last 100 records
        """
        total = self._total_validations
        average_time = self._total_validation_time / total if total > 0 else 0.0
        average_batch = self._total_batch_size / self._batch_validation_count if self._batch_validation_count else 0.0

        recent = list(self._records)[-100:]
        cache_hits = sum(1 for r in recent if r.cache_hit)
        cache_hit_rate = (cache_hits / len(recent)) * 100 if recent else 0.0

        method_stats = {
            method: {
                "count": int(stats["count"]),
                "average_time": stats["total_time"] / stats["count"] if stats["count"] else 0.0,
                "success_rate": (stats["success_count"] / stats["count"]) * 100 if stats["count"] else 0.0,
            }
            for method, stats in self._method_stats.items()
        }

        return {
            "total_validations": total,
            "successful_validations": self._successful_validations,
            "failed_validations": self._failed_validations,
            "average_validation_time": round(average_time, 2),
            "min_validation_time": round(self._min_validation_time or 0.0, 2),
            "max_validation_time": round(self._max_validation_time, 2),
            "cache_hit_rate": round(cache_hit_rate, 2),
            "network_request_count": self._network_request_count,
            "batch_validation_count": self._batch_validation_count,
            "average_batch_size": round(average_batch, 2),
            "detection_method_stats": method_stats,
        }

    def get_recent_records(self, limit: int = 50) -> List[ValidationPerformanceRecord]:
        if limit <= 0:
            return []
        return list(self._records)[-limit:]

    def reset_metrics(self) -> None:
        self._records.clear()
        self._pending.clear()
        self._reset_counters()

    def get_performance_summary(self) -> str:
        """Get a human readable performance summary for logging."""
        metrics = self.get_metrics()
        total = metrics["total_validations"]
        success_rate = round((metrics["successful_validations"] / total) * 100) if total > 0 else 0

        return (
            "Format Validation Performance Summary:\n"
            f"- Total Validations: {total}\n"
            f"- Success Rate: {success_rate}%\n"
            f"- Average Time: {metrics['average_validation_time']}ms\n"
            f"- Cache Hit Rate: {metrics['cache_hit_rate']}%\n"
            f"- Network Requests: {metrics['network_request_count']}\n"
            f"- Batch Operations: {metrics['batch_validation_count']} (avg size: {metrics['average_batch_size']})"
        )

    def check_performance_health(self) -> Dict[str, Any]:
        """
        Check whether performance is within acceptable thresholds.

        Returns:
            Dict with healthy flag, issues and recommendations
        """
        metrics = self.get_metrics()
        issues: List[str] = []
        recommendations: List[str] = []
        total = metrics["total_validations"]

        if metrics["average_validation_time"] > TARGET_AVERAGE_TIME_MS:
            issues.append(
                f"Average validation time is {metrics['average_validation_time']}ms "
                f"(target: <{TARGET_AVERAGE_TIME_MS:.0f}ms)"
            )
            recommendations.append("Consider optimizing detection strategies or increasing cache TTL")

        if metrics["cache_hit_rate"] < TARGET_CACHE_HIT_RATE:
            issues.append(f"Cache hit rate is {metrics['cache_hit_rate']}% (target: >{TARGET_CACHE_HIT_RATE:.0f}%)")
            recommendations.append("Consider increasing cache size or TTL")

        success_rate = (metrics["successful_validations"] / total) * 100 if total > 0 else 100.0
        if success_rate < TARGET_SUCCESS_RATE:
            issues.append(f"Success rate is {success_rate:.1f}% (target: >{TARGET_SUCCESS_RATE:.0f}%)")
            recommendations.append("Review format detection strategies and error handling")

        network_ratio = (metrics["network_request_count"] / total) * 100 if total > 0 else 0.0
        if network_ratio > TARGET_NETWORK_REQUEST_RATIO:
            issues.append(
                f"Network request ratio is {network_ratio:.1f}% (target: <{TARGET_NETWORK_REQUEST_RATIO:.0f}%)"
            )
            recommendations.append("Improve MIME type and URL extension detection to reduce HTTP fallbacks")

        if issues:
            logger.warning(f"Format validation performance issues: {issues}")

        return {"healthy": len(issues) == 0, "issues": issues, "recommendations": recommendations}
