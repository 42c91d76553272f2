"""
Unit tests for the error handling infrastructure.

Tests cover:
- Exception hierarchy metadata
- Probe fault to user message translation
- Error context capture
- Error recovery decision logic
"""

import datetime
from unittest.mock import Mock

import pytest
from fastapi import Request

from error_handling.handlers import ErrorContextCapture, ErrorHandler, ErrorMessageTranslator
from models.errors import (
    ApplicationError,
    ConfigurationError,
    ContentTypeProbeError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    FormatConfigError,
    NetworkError,
    ProbeFaultKind,
)
from tests.utils.fixtures import status_fault, timeout_fault


@pytest.fixture
def context() -> ErrorContext:
    return ErrorContext(
        error_id="err-1",
        timestamp=datetime.datetime.now(),
        request_id=None,
        user_agent=None,
        endpoint="/validate",
        stack_trace=None,
        request_data={},
    )


class TestExceptionHierarchy:
    """Test suite for the application exception types."""

    def test_probe_error_metadata(self):
        error = status_fault(404)

        assert isinstance(error, NetworkError)
        assert isinstance(error, ApplicationError)
        assert error.error_code == "PROBE_HTTP_STATUS"
        assert error.status_code == 404
        assert not error.is_timeout

    def test_timeout_fault(self):
        error = timeout_fault()

        assert error.fault_kind is ProbeFaultKind.TIMEOUT
        assert error.is_timeout
        assert error.error_code == "PROBE_TIMEOUT"

    def test_format_config_error(self):
        error = FormatConfigError(["Extension 'jpg' must start with a dot"], ["No MIME types defined"])

        assert isinstance(error, ConfigurationError)
        assert error.error_code == "FORMAT_CONFIG_INVALID"
        assert str(error) == "Extension 'jpg' must start with a dot"
        assert error.warnings == ["No MIME types defined"]


class TestProbeFaultTranslation:
    """Test suite for probe fault user messages."""

    @pytest.mark.parametrize("status_code,prefix", [
        (401, "Authentication required"),
        (403, "Access denied"),
        (404, "Image not found"),
        (429, "Too many requests"),
        (500, "Server error"),
        (502, "Server error"),
        (410, "Image request failed with HTTP status 410"),
    ])
    def test_status_codes(self, status_code, prefix):
        translator = ErrorMessageTranslator()
        assert translator.translate_probe_fault(status_fault(status_code)).startswith(prefix)

    def test_timeout(self):
        assert ErrorMessageTranslator().translate_probe_fault(timeout_fault()).startswith("Image request timed out")

    def test_network(self):
        fault = ContentTypeProbeError("connection refused", ProbeFaultKind.NETWORK)
        assert ErrorMessageTranslator().translate_probe_fault(fault).startswith("Network connection failed")

    def test_other_exceptions(self):
        assert ErrorMessageTranslator().translate_probe_fault(OSError("reset")).startswith("Network connection failed")


class TestErrorTranslation:
    """Test suite for translate_error."""

    def test_probe_error(self, context):
        result = ErrorMessageTranslator().translate_error(status_fault(503), context)

        assert result.category == ErrorCategory.NETWORK
        assert result.user_message.startswith("Server error")
        assert result.recoverable
        assert result.retry_after == 5
        assert result.error_code.startswith("PROBE_HTTP_STATUS_")

    def test_rate_limited_probe_error(self, context):
        result = ErrorMessageTranslator().translate_error(status_fault(429), context)

        assert result.recoverable
        assert result.retry_after == 30

    def test_not_found_is_not_recoverable(self, context):
        result = ErrorMessageTranslator().translate_error(status_fault(404), context)

        assert not result.recoverable
        assert result.retry_after is None

    def test_format_config_error(self, context):
        result = ErrorMessageTranslator().translate_error(FormatConfigError(["bad"]), context)

        assert result.category == ErrorCategory.VALIDATION
        assert result.severity == ErrorSeverity.MEDIUM
        assert not result.recoverable

    def test_generic_exception(self, context):
        result = ErrorMessageTranslator().translate_error(KeyError("missing"), context)

        assert result.category == ErrorCategory.SYSTEM
        assert result.error_code.startswith("KeyError_")

    def test_long_messages_are_truncated(self, context):
        result = ErrorMessageTranslator().translate_error(ValueError("x" * 2000), context)

        assert result.technical_message.endswith("... [TRUNCATED]")
        assert len(result.technical_message) < 600


@pytest.mark.asyncio
class TestErrorContextCapture:
    """Test suite for context capture."""

    async def test_request_context(self):
        request = Mock(spec=Request)
        request.url.path = "/validate"
        request.method = "POST"
        request.headers = {"user-agent": "Test/1.0", "x-request-id": "req-7"}
        request.client.host = "127.0.0.1"

        context = await ErrorContextCapture().capture_request_context(request, {"url": "https://example.org/a"})

        assert context.endpoint == "/validate"
        assert context.user_agent == "Test/1.0"
        assert context.request_id == "req-7"
        assert context.request_data["method"] == "POST"
        assert context.request_data["url"] == "https://example.org/a"

    async def test_exception_context(self):
        try:
            raise ValueError("boom")
        except ValueError as e:
            context = await ErrorContextCapture().capture_exception_context(e)

        assert "ValueError: boom" in context.stack_trace
        assert context.endpoint is None


@pytest.mark.asyncio
class TestErrorHandler:
    """Test suite for the error handling pipeline."""

    async def test_handle_error_without_request(self):
        result = await ErrorHandler().handle_error(timeout_fault())

        assert result.user_message.startswith("Image request timed out")
        assert result.category == ErrorCategory.NETWORK

    async def test_fallback_when_translation_fails(self):
        handler = ErrorHandler()
        handler.message_translator.translate_error = Mock(side_effect=RuntimeError("translator broke"))

        result = await handler.handle_error(ValueError("original"))

        assert result.error_code.startswith("FALLBACK_")
        assert result.severity == ErrorSeverity.CRITICAL
        assert result.technical_message == "original"
