"""Decision log recording every format validation for telemetry and rejection audits."""

import logging
import traceback
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.validation import (
    ClassificationResult,
    DecisionLogRecord,
    DecisionMetadata,
    ErrorDetails,
    LogFilterCriteria,
    StrategyKind,
    ValidationStats,
)

DEFAULT_CAPACITY = 1000


class DecisionLog:
    """
    Capacity-bounded, append-only log of validation decisions.

    Records live in a fixed-size circular buffer: once full, each new record
    overwrites the oldest one. Aggregate statistics are cumulative since the
    last clear() and are not reduced when old records are overwritten.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize the decision log.

        Args:
            capacity: Maximum number of records kept in memory
        """
        if capacity <= 0:
            raise ValueError("Decision log capacity must be positive")
        self.capacity = capacity
        self._logger = logging.getLogger(__name__)
        self._buffer: List[Optional[DecisionLogRecord]] = [None] * capacity
        self._next_index = 0
        self._size = 0
        self._stats = ValidationStats()

    def __len__(self) -> int:
        return self._size

    # --- Recording ---

    def record(self, entry: DecisionLogRecord) -> None:
        """Append a record, overwriting the oldest one when the buffer is full."""
        self._buffer[self._next_index] = entry
        self._next_index = (self._next_index + 1) % self.capacity
        if self._size < self.capacity:
            self._size += 1

        self._update_stats(entry)
        self._emit(entry)

    def log_validation(
        self,
        url: str,
        result: ClassificationResult,
        validation_time_ms: float,
        error: Optional[BaseException] = None,
        metadata: Optional[DecisionMetadata] = None,
        detection_method: Optional[str] = None,
    ) -> DecisionLogRecord:
        """
        Log a validation decision.

        Args:
            url: Image URL being validated
            result: Final classification result
            validation_time_ms: Time taken for validation in milliseconds
            error: Exception behind the decision, if any
            metadata: Transport metadata
            detection_method: Overrides the result's method (used for cache tagging)

        Returns:
            DecisionLogRecord: The stored record
        """
        entry = DecisionLogRecord(
            url=url,
            timestamp=datetime.now(),
            validation_result=result.is_valid,
            validation_time_ms=int(round(validation_time_ms)),
            detection_method=detection_method or result.detection_method,
            confidence=result.confidence,
            detected_format=result.detected_format,
            detected_mime_type=result.detected_mime_type,
            rejection_reason=result.rejection_reason,
            error_details=self._error_details(error) if error is not None else None,
            metadata=metadata,
        )
        self.record(entry)
        return entry

    def log_success(self, url: str, result: ClassificationResult, validation_time_ms: float) -> DecisionLogRecord:
        return self.log_validation(url, result, validation_time_ms)

    def log_rejection(self, url: str, result: ClassificationResult, validation_time_ms: float) -> DecisionLogRecord:
        return self.log_validation(url, result, validation_time_ms)

    def log_error(
        self,
        url: str,
        error: BaseException,
        validation_time_ms: float,
        detection_method: str,
        metadata: Optional[DecisionMetadata] = None,
        result: Optional[ClassificationResult] = None,
    ) -> DecisionLogRecord:
        """Log a validation that ended in an error."""
        if result is None:
            result = ClassificationResult(
                is_valid=False,
                confidence=0.0,
                detection_method=detection_method,
                rejection_reason=f"Error during validation: {error}",
            )
        return self.log_validation(url, result, validation_time_ms, error=error, metadata=metadata)

    def log_network_error(
        self,
        url: str,
        error: BaseException,
        validation_time_ms: float,
        is_timeout: bool = False,
        http_status_code: Optional[int] = None,
        result: Optional[ClassificationResult] = None,
    ) -> DecisionLogRecord:
        """Log a transport fault raised while probing the image server."""
        metadata = DecisionMetadata(network_timeout=is_timeout, http_status_code=http_status_code)
        return self.log_error(
            url,
            error,
            validation_time_ms,
            StrategyKind.HTTP_CONTENT_TYPE.value,
            metadata=metadata,
            result=result,
        )

    # --- Queries ---

    def recent(self, limit: int = 100) -> List[DecisionLogRecord]:
        """Return up to `limit` most recent records, oldest first."""
        if limit <= 0:
            return []
        records = self._ordered()
        return records[-limit:]

    def filtered(self, criteria: Optional[LogFilterCriteria] = None) -> List[DecisionLogRecord]:
        """Return the buffered records matching every set criterion, oldest first."""
        criteria = criteria or LogFilterCriteria()
        return [entry for entry in self._ordered() if criteria.matches(entry)]

    def stats(self) -> ValidationStats:
        """Return a copy of the aggregate statistics."""
        return ValidationStats(
            total_validations=self._stats.total_validations,
            successful_validations=self._stats.successful_validations,
            rejected_validations=self._stats.rejected_validations,
            error_validations=self._stats.error_validations,
            network_errors=self._stats.network_errors,
            timeout_errors=self._stats.timeout_errors,
            average_validation_time=self._stats.average_validation_time,
            format_distribution=dict(self._stats.format_distribution),
            rejection_reasons=dict(self._stats.rejection_reasons),
            detection_methods=dict(self._stats.detection_methods),
        )

    def rejection_patterns(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Analyse rejection patterns for monitoring.

        Returns:
            Dict with common_reasons and format_distribution (count desc, with
            percentage of all validations) and method_effectiveness (success rate desc)
        """
        total = self._stats.total_validations

        common_reasons = sorted(
            (
                {"reason": reason, "count": count, "percentage": (count / total) * 100 if total else 0.0}
                for reason, count in self._stats.rejection_reasons.items()
            ),
            key=lambda item: item["count"],
            reverse=True,
        )

        format_distribution = sorted(
            (
                {"format": fmt, "count": count, "percentage": (count / total) * 100 if total else 0.0}
                for fmt, count in self._stats.format_distribution.items()
            ),
            key=lambda item: item["count"],
            reverse=True,
        )

        method_totals: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"total": 0, "successful": 0, "confidence": 0.0}
        )
        for entry in self._ordered():
            stats = method_totals[entry.detection_method]
            stats["total"] += 1
            stats["confidence"] += entry.confidence
            if entry.validation_result and not entry.has_error:
                stats["successful"] += 1

        method_effectiveness = sorted(
            (
                {
                    "method": method,
                    "success_rate": (stats["successful"] / stats["total"]) * 100,
                    "avg_confidence": stats["confidence"] / stats["total"],
                }
                for method, stats in method_totals.items()
            ),
            key=lambda item: item["success_rate"],
            reverse=True,
        )

        return {
            "common_reasons": common_reasons,
            "format_distribution": format_distribution,
            "method_effectiveness": method_effectiveness,
        }

    def clear(self) -> None:
        """Clear all records and reset statistics."""
        self._buffer = [None] * self.capacity
        self._next_index = 0
        self._size = 0
        self._stats = ValidationStats()
        self._logger.info("Decision log cleared")

    # --- Internals ---

    def _ordered(self) -> List[DecisionLogRecord]:
        if self._size < self.capacity:
            return [entry for entry in self._buffer[: self._size] if entry is not None]
        ordered = self._buffer[self._next_index:] + self._buffer[: self._next_index]
        return [entry for entry in ordered if entry is not None]

    def _update_stats(self, entry: DecisionLogRecord) -> None:
        stats = self._stats
        stats.total_validations += 1

        if entry.has_error:
            stats.error_validations += 1
            if entry.metadata and entry.metadata.network_timeout:
                stats.timeout_errors += 1
            if entry.detection_method == StrategyKind.HTTP_CONTENT_TYPE.value:
                stats.network_errors += 1
        elif entry.validation_result:
            stats.successful_validations += 1
        else:
            stats.rejected_validations += 1

        previous_total = stats.average_validation_time * (stats.total_validations - 1)
        stats.average_validation_time = (previous_total + entry.validation_time_ms) / stats.total_validations

        if entry.detected_format:
            stats.format_distribution[entry.detected_format] = stats.format_distribution.get(entry.detected_format, 0) + 1
        if entry.rejection_reason:
            stats.rejection_reasons[entry.rejection_reason] = stats.rejection_reasons.get(entry.rejection_reason, 0) + 1
        stats.detection_methods[entry.detection_method] = stats.detection_methods.get(entry.detection_method, 0) + 1

    def _emit(self, entry: DecisionLogRecord) -> None:
        details = (
            f"format={entry.detected_format or 'unknown'} method={entry.detection_method} "
            f"confidence={entry.confidence} time={entry.validation_time_ms}ms"
        )
        if entry.error_details:
            self._logger.error(
                f"Format validation: {entry.url} - ERROR {details} "
                f"error={entry.error_details.error_type}: {entry.error_details.error_message}"
            )
        elif not entry.validation_result:
            self._logger.warning(f"Format validation: {entry.url} - REJECTED {details} reason={entry.rejection_reason}")
        else:
            self._logger.info(f"Format validation: {entry.url} - ACCEPTED {details}")

    @staticmethod
    def _error_details(error: BaseException) -> ErrorDetails:
        stack_trace = None
        if error.__traceback__ is not None:
            stack_trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return ErrorDetails(error_type=type(error).__name__, error_message=str(error), stack_trace=stack_trace)
