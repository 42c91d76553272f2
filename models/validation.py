"""Validation models and enums for image format classification."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class StrategyKind(str, Enum):
    """The closed set of detection strategies, valued by their detection method name."""
    MIME_TYPE = "mime-type"
    URL_EXTENSION = "url-extension"
    HTTP_CONTENT_TYPE = "http-content-type"


# Detection methods that are not produced by a strategy
INPUT_VALIDATION_METHOD = "input-validation"
UNKNOWN_METHOD = "unknown"
CACHED_SUFFIX = "-cached"


@dataclass(frozen=True)
class ClassificationResult:
    """Confidence-scored verdict on whether an image format is web displayable."""
    is_valid: bool
    confidence: float
    detection_method: str
    detected_format: Optional[str] = None
    detected_mime_type: Optional[str] = None
    rejection_reason: Optional[str] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")
        if self.is_valid and self.rejection_reason is not None:
            raise ValueError("A valid result cannot carry a rejection reason")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "is_valid": self.is_valid,
            "detected_format": self.detected_format,
            "detected_mime_type": self.detected_mime_type,
            "rejection_reason": self.rejection_reason,
            "confidence": self.confidence,
            "detection_method": self.detection_method,
        }


@dataclass
class ErrorDetails:
    """Exception information attached to an error decision."""
    error_type: str
    error_message: str
    stack_trace: Optional[str] = None


@dataclass
class DecisionMetadata:
    """Transport context attached to a decision."""
    network_timeout: Optional[bool] = None
    http_status_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class DecisionLogRecord:
    """One validation decision, detailed enough to audit a rejection."""
    url: str
    timestamp: datetime
    validation_result: bool
    validation_time_ms: int
    detection_method: str
    confidence: float
    detected_format: Optional[str] = None
    detected_mime_type: Optional[str] = None
    rejection_reason: Optional[str] = None
    error_details: Optional[ErrorDetails] = None
    metadata: Optional[DecisionMetadata] = None

    @property
    def has_error(self) -> bool:
        return self.error_details is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
            "validation_result": self.validation_result,
            "detected_format": self.detected_format,
            "detected_mime_type": self.detected_mime_type,
            "rejection_reason": self.rejection_reason,
            "validation_time_ms": self.validation_time_ms,
            "detection_method": self.detection_method,
            "confidence": self.confidence,
            "error_details": dict(self.error_details.__dict__) if self.error_details else None,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


@dataclass
class LogFilterCriteria:
    """Predicates for querying the decision log; unset fields match everything."""
    validation_result: Optional[bool] = None
    detection_method: Optional[str] = None
    has_error: Optional[bool] = None
    min_confidence: Optional[float] = None
    max_confidence: Optional[float] = None
    since: Optional[datetime] = None

    def matches(self, record: DecisionLogRecord) -> bool:
        if self.validation_result is not None and record.validation_result != self.validation_result:
            return False
        if self.detection_method and record.detection_method != self.detection_method:
            return False
        if self.has_error is not None and record.has_error != self.has_error:
            return False
        if self.min_confidence is not None and record.confidence < self.min_confidence:
            return False
        if self.max_confidence is not None and record.confidence > self.max_confidence:
            return False
        if self.since is not None and record.timestamp < self.since:
            return False
        return True


@dataclass
class ValidationStats:
    """Aggregate counters over every decision recorded since the last clear."""
    total_validations: int = 0
    successful_validations: int = 0
    rejected_validations: int = 0
    error_validations: int = 0
    network_errors: int = 0
    timeout_errors: int = 0
    average_validation_time: float = 0.0
    format_distribution: Dict[str, int] = field(default_factory=dict)
    rejection_reasons: Dict[str, int] = field(default_factory=dict)
    detection_methods: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_validations": self.total_validations,
            "successful_validations": self.successful_validations,
            "rejected_validations": self.rejected_validations,
            "error_validations": self.error_validations,
            "network_errors": self.network_errors,
            "timeout_errors": self.timeout_errors,
            "average_validation_time": round(self.average_validation_time, 2),
            "format_distribution": dict(self.format_distribution),
            "rejection_reasons": dict(self.rejection_reasons),
            "detection_methods": dict(self.detection_methods),
        }
