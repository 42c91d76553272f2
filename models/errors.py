"""Error models and exception hierarchy for the image format validation service."""

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Any


# --- Error Handling Enums ---

class ErrorSeverity(Enum):
    """Enumeration for error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Enumeration for error categories."""
    VALIDATION = "validation"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class ProbeFaultKind(str, Enum):
    """Classification of a content-type probe transport fault."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http-status"


# --- Error Context and Result Models ---

@dataclass
class ErrorContext:
    """Captures contextual information about an error occurrence."""
    error_id: str
    timestamp: datetime.datetime
    request_id: Optional[str]
    user_agent: Optional[str]
    endpoint: Optional[str]
    stack_trace: Optional[str]
    request_data: Dict[str, Any]


@dataclass
class ErrorResult:
    """Complete error processing result with context and user-friendly messages."""
    error_code: str
    severity: ErrorSeverity
    category: ErrorCategory
    technical_message: str
    user_message: str
    suggested_actions: List[str]
    context: ErrorContext
    recoverable: bool
    retry_after: Optional[int]


# --- Application Exception Hierarchy ---

class ApplicationError(Exception):
    """Base exception for application errors with enhanced metadata."""

    def __init__(
        self,
        message: str,
        error_code: str,
        severity: ErrorSeverity,
        user_message: Optional[str] = None,
        suggested_actions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.error_code = error_code
        self.severity = severity
        self.user_message = user_message or message
        self.suggested_actions = suggested_actions or []


class NetworkError(ApplicationError):
    """Network and connectivity errors."""
    pass


class ConfigurationError(ApplicationError):
    """Configuration and environment errors."""
    pass


class FormatConfigError(ConfigurationError):
    """Format registry update rejected by validation."""

    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        super().__init__(
            "; ".join(errors) or "Invalid format configuration",
            error_code="FORMAT_CONFIG_INVALID",
            severity=ErrorSeverity.MEDIUM,
            user_message="The format configuration is invalid.",
        )
        self.errors = errors
        self.warnings = warnings or []


class ContentTypeProbeError(NetworkError):
    """Transport fault raised by the HTTP content-type probe.

    Carries whether the request timed out, never reached a server, or came
    back with a non-2xx status code.
    """

    def __init__(
        self,
        message: str,
        fault_kind: ProbeFaultKind,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code=f"PROBE_{fault_kind.name}",
            severity=ErrorSeverity.MEDIUM,
        )
        self.fault_kind = fault_kind
        self.status_code = status_code
        self.url = url

    @property
    def is_timeout(self) -> bool:
        return self.fault_kind is ProbeFaultKind.TIMEOUT
