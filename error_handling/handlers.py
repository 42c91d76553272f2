"""Error handling and user feedback for the validation service."""

import datetime
import json
import logging
import re
import traceback
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from models.errors import (
    ConfigurationError,
    ContentTypeProbeError,
    ErrorCategory,
    ErrorContext,
    ErrorResult,
    ErrorSeverity,
    FormatConfigError,
    NetworkError,
    ProbeFaultKind,
)

# User-facing messages for probe transport faults
PROBE_TIMEOUT_MESSAGE = "Image request timed out. The image server took too long to respond."
PROBE_NETWORK_MESSAGE = "Network connection failed. Please check your internet connection and try again."
PROBE_STATUS_MESSAGES = {
    401: "Authentication required. The image server requires credentials.",
    403: "Access denied. The image server refused the request.",
    404: "Image not found. The photo may have been moved or deleted.",
    429: "Too many requests. The image server is rate limiting, please wait and try again.",
}
PROBE_SERVER_ERROR_MESSAGE = "Server error occurred while checking the image. Please try again later."


class ErrorContextCapture:
    """Captures contextual information for error tracking and debugging."""

    async def capture_request_context(
        self,
        request: Optional[Request] = None,
        additional_data: Optional[Dict[str, Any]] = None
    ) -> ErrorContext:
        """
        Capture context from a FastAPI request.

        Args:
            request: FastAPI Request object
            additional_data: Additional context data

        Returns:
            ErrorContext: Captured context information
        """
        request_data = dict(additional_data or {})
        if request is None:
            return ErrorContext(
                error_id=uuid.uuid4().hex,
                timestamp=datetime.datetime.now(),
                request_id=None,
                user_agent=None,
                endpoint=None,
                stack_trace=None,
                request_data=request_data
            )

        request_data.update({
            "method": request.method,
            "client_host": request.client.host if request.client else None,
            "content_type": request.headers.get("content-type"),
        })
        return ErrorContext(
            error_id=uuid.uuid4().hex,
            timestamp=datetime.datetime.now(),
            request_id=request.headers.get("x-request-id"),
            user_agent=request.headers.get("user-agent"),
            endpoint=request.url.path,
            stack_trace=traceback.format_exc(),
            request_data=request_data
        )

    async def capture_exception_context(
        self,
        exception: Exception,
        additional_data: Optional[Dict[str, Any]] = None
    ) -> ErrorContext:
        """Capture context from an exception with stack trace."""
        stack_trace = None
        if exception.__traceback__ is not None:
            stack_trace = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))

        return ErrorContext(
            error_id=uuid.uuid4().hex,
            timestamp=datetime.datetime.now(),
            request_id=None,
            user_agent=None,
            endpoint=None,
            stack_trace=stack_trace,
            request_data=dict(additional_data or {})
        )


class ErrorMessageTranslator:
    """Translates technical error messages to user-friendly messages with suggested actions."""

    def __init__(self):
        """Initialize the translator with predefined message mappings."""
        self._translation_rules = {
            FormatConfigError: {
                "user_message": "The format configuration is invalid and was not applied.",
                "suggested_actions": [
                    "Check that every extension starts with a dot",
                    "Check that every MIME type contains '/'",
                    "Make sure no extension or MIME type is used by two formats"
                ],
                "severity": ErrorSeverity.MEDIUM,
                "category": ErrorCategory.VALIDATION
            },
            ContentTypeProbeError: {
                "user_message": "The image server could not be reached to check the image format.",
                "suggested_actions": [
                    "Check that the image URL is correct",
                    "Try again in a few moments"
                ],
                "severity": ErrorSeverity.MEDIUM,
                "category": ErrorCategory.NETWORK
            },
            NetworkError: {
                "user_message": "Network connection issue. Please check your connection and try again.",
                "suggested_actions": [
                    "Check your internet connection",
                    "Try again in a few moments",
                    "Contact support if the problem continues"
                ],
                "severity": ErrorSeverity.MEDIUM,
                "category": ErrorCategory.NETWORK
            },
            ConfigurationError: {
                "user_message": "There's a configuration issue. Please contact support.",
                "suggested_actions": [
                    "Contact technical support",
                    "Report this error with the error ID"
                ],
                "severity": ErrorSeverity.CRITICAL,
                "category": ErrorCategory.CONFIGURATION
            },
            Exception: {
                "user_message": "An unexpected error occurred. Please try again.",
                "suggested_actions": [
                    "Try your request again",
                    "Contact support with the error ID if needed"
                ],
                "severity": ErrorSeverity.MEDIUM,
                "category": ErrorCategory.SYSTEM
            }
        }

    def translate_probe_fault(self, fault: Exception) -> str:
        """
        Map a content-type probe fault to the rejection reason shown to users.

        Args:
            fault: Exception raised by the HTTP probe

        Returns:
            str: Human readable reason
        """
        if not isinstance(fault, ContentTypeProbeError):
            return PROBE_NETWORK_MESSAGE

        if fault.fault_kind is ProbeFaultKind.TIMEOUT:
            return PROBE_TIMEOUT_MESSAGE
        if fault.fault_kind is ProbeFaultKind.NETWORK or not fault.status_code:
            return PROBE_NETWORK_MESSAGE

        status = fault.status_code
        if status in PROBE_STATUS_MESSAGES:
            return PROBE_STATUS_MESSAGES[status]
        if status >= 500:
            return PROBE_SERVER_ERROR_MESSAGE
        return f"Image request failed with HTTP status {status}."

    def translate_error(
        self,
        exception: Exception,
        context: ErrorContext,
        fallback_message: Optional[str] = None
    ) -> ErrorResult:
        """
        Translate a technical error to a user-friendly error result.

        Args:
            exception: The exception to translate
            context: Error context information
            fallback_message: Optional fallback message if no rule matches

        Returns:
            ErrorResult: User-friendly error result
        """
        rule = self._get_translation_rule(exception)
        technical_message = self._sanitize_technical_message(str(exception))

        if isinstance(exception, ContentTypeProbeError):
            user_message = self.translate_probe_fault(exception)
        else:
            user_message = rule.get("user_message", fallback_message or technical_message)

        recoverable = self._is_recoverable(exception)
        return ErrorResult(
            error_code=self._generate_error_code(exception),
            severity=rule.get("severity", ErrorSeverity.MEDIUM),
            category=rule.get("category", ErrorCategory.SYSTEM),
            technical_message=technical_message,
            user_message=user_message,
            suggested_actions=rule.get("suggested_actions", []),
            context=context,
            recoverable=recoverable,
            retry_after=self._get_retry_delay(exception) if recoverable else None
        )

    def _get_translation_rule(self, exception: Exception) -> Dict[str, Any]:
        """Get the most specific translation rule for an exception."""
        for exception_type in type(exception).__mro__:
            if exception_type in self._translation_rules:
                return self._translation_rules[exception_type]
        return self._translation_rules[Exception]

    def _generate_error_code(self, exception: Exception) -> str:
        """Generate a unique error code based on exception type."""
        code = getattr(exception, "error_code", None) or type(exception).__name__
        timestamp = int(datetime.datetime.now().timestamp())
        return f"{code}_{timestamp}"

    def _is_recoverable(self, exception: Exception) -> bool:
        """Determine if an error is recoverable (can be retried)."""
        if isinstance(exception, ContentTypeProbeError):
            # Client errors other than rate limiting will not change on retry
            status = exception.status_code
            return status is None or status >= 500 or status == 429
        return isinstance(exception, NetworkError)

    def _get_retry_delay(self, exception: Exception) -> Optional[int]:
        """Get suggested retry delay in seconds."""
        if isinstance(exception, ContentTypeProbeError) and exception.status_code == 429:
            return 30
        if isinstance(exception, NetworkError):
            return 5
        return None

    def _sanitize_technical_message(self, message: str) -> str:
        """
        Sanitize technical message to keep log entries small.

        Args:
            message: Raw technical message from exception

        Returns:
            str: Sanitized message safe for logging
        """
        max_length = 500

        data_uri_pattern = re.compile(r'data:[^;]+;base64,[A-Za-z0-9+/]{50,}={0,2}')
        if data_uri_pattern.search(message):
            message = data_uri_pattern.sub('[BASE64_CONTENT_TRUNCATED]', message)

        if len(message) > max_length:
            message = message[:max_length] + "... [TRUNCATED]"

        return message


class ErrorHandler:
    """Main error handler that orchestrates error processing."""

    def __init__(self):
        self.context_capture = ErrorContextCapture()
        self.message_translator = ErrorMessageTranslator()

    async def handle_error(
        self,
        exception: Exception,
        request: Optional[Request] = None,
        additional_context: Optional[Dict[str, Any]] = None
    ) -> ErrorResult:
        """
        Comprehensive error handling pipeline.

        Args:
            exception: The exception to handle
            request: FastAPI request object
            additional_context: Additional context data

        Returns:
            ErrorResult: Complete error handling result
        """
        try:
            if request:
                context = await self.context_capture.capture_request_context(request, additional_context)
            else:
                context = await self.context_capture.capture_exception_context(exception, additional_context)

            error_result = self.message_translator.translate_error(exception, context)
            self._log_error(error_result)
            return error_result

        except Exception as handler_error:
            logging.error(f"Error handler failed: {handler_error}")
            return self._create_fallback_error_result(exception)

    def _log_error(self, error_result: ErrorResult) -> None:
        """Log error with appropriate level based on severity."""
        log_data = {
            "error_id": error_result.context.error_id,
            "error_code": error_result.error_code,
            "category": error_result.category.value,
            "severity": error_result.severity.value,
            "endpoint": error_result.context.endpoint,
            "technical_message": error_result.technical_message
        }

        if error_result.severity == ErrorSeverity.CRITICAL:
            logging.critical(f"Critical error: {json.dumps(log_data)}")
        elif error_result.severity == ErrorSeverity.HIGH:
            logging.error(f"High severity error: {json.dumps(log_data)}")
        elif error_result.severity == ErrorSeverity.MEDIUM:
            logging.warning(f"Medium severity error: {json.dumps(log_data)}")
        else:
            logging.info(f"Low severity error: {json.dumps(log_data)}")

    def _create_fallback_error_result(self, exception: Exception) -> ErrorResult:
        """Create a minimal error result when error handling fails."""
        error_id = uuid.uuid4().hex
        context = ErrorContext(
            error_id=error_id,
            timestamp=datetime.datetime.now(),
            request_id=None,
            user_agent=None,
            endpoint=None,
            stack_trace=traceback.format_exc(),
            request_data={}
        )

        return ErrorResult(
            error_code=f"FALLBACK_{error_id}",
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.SYSTEM,
            technical_message=self.message_translator._sanitize_technical_message(str(exception)),
            user_message="A system error occurred. Please try again or contact support.",
            suggested_actions=["Try again", "Contact support"],
            context=context,
            recoverable=False,
            retry_after=None
        )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for centralized error handling."""

    def __init__(self, app, error_handler: ErrorHandler):
        super().__init__(app)
        self.error_handler = error_handler

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process requests and handle any errors that occur.

        Args:
            request: FastAPI request
            call_next: Next middleware or endpoint

        Returns:
            Response: HTTP response
        """
        try:
            return await call_next(request)
        except Exception as e:
            error_result = await self.error_handler.handle_error(
                e, request, {"original_exception": e}
            )
            return self._create_error_response(error_result)

    def _create_error_response(self, error_result: ErrorResult) -> JSONResponse:
        """Create appropriate HTTP response for error result."""
        response_data = {
            "error": True,
            "error_id": error_result.context.error_id,
            "error_code": error_result.error_code,
            "message": error_result.user_message,
            "suggested_actions": error_result.suggested_actions,
            "severity": error_result.severity.value,
            "category": error_result.category.value,
            "recoverable": error_result.recoverable
        }

        if error_result.retry_after:
            response_data["retry_after"] = error_result.retry_after

        original = error_result.context.request_data.get("original_exception")
        if isinstance(original, FormatConfigError):
            response_data["errors"] = original.errors
            response_data["warnings"] = original.warnings

        return JSONResponse(
            status_code=self._get_status_code(error_result),
            content=response_data
        )

    def _get_status_code(self, error_result: ErrorResult) -> int:
        """Determine appropriate HTTP status code for error result."""
        original = error_result.context.request_data.get("original_exception")
        if isinstance(original, HTTPException):
            return original.status_code

        category_status_map = {
            ErrorCategory.VALIDATION: 400,
            ErrorCategory.NETWORK: 503,
            ErrorCategory.CONFIGURATION: 500,
            ErrorCategory.SYSTEM: 500
        }

        return category_status_map.get(error_result.category, 500)
