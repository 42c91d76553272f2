"""
Common test fixtures for the image format validation service.

This module provides reusable builders for probes, registries and validators
so tests never touch the network.
"""

from typing import Optional
from unittest.mock import AsyncMock, Mock

import httpx

from core.decision_log import DecisionLog
from core.format_registry import FormatRegistry
from core.performance_monitor import PerformanceMonitor
from core.result_cache import ResultCache
from models.errors import ContentTypeProbeError, ProbeFaultKind
from validation.http_probe import ContentTypeProbe
from validation.validators import ImageFormatValidator


class FakeClock:
    """Manually advanced clock for cache TTL and timing tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_probe(content_type: Optional[str] = None, error: Optional[Exception] = None) -> Mock:
    """
    Build a mock content-type probe.

    Args:
        content_type: Value returned by fetch_content_type
        error: Exception raised by fetch_content_type instead

    Returns:
        Mock: Probe whose fetch_content_type is an AsyncMock
    """
    probe = Mock(spec=ContentTypeProbe)
    if error is not None:
        probe.fetch_content_type = AsyncMock(side_effect=error)
    else:
        probe.fetch_content_type = AsyncMock(return_value=content_type)
    probe.aclose = AsyncMock()
    return probe


def timeout_fault(url: str = "https://images.example.org/photo") -> ContentTypeProbeError:
    return ContentTypeProbeError("Request timed out after 5.0s", ProbeFaultKind.TIMEOUT, url=url)


def status_fault(status_code: int, url: str = "https://images.example.org/photo") -> ContentTypeProbeError:
    return ContentTypeProbeError(
        f"HTTP {status_code} while probing image",
        ProbeFaultKind.HTTP_STATUS,
        status_code=status_code,
        url=url,
    )


def make_validator(
    probe: Optional[Mock] = None,
    registry: Optional[FormatRegistry] = None,
    cache: Optional[ResultCache] = None,
) -> ImageFormatValidator:
    """Build a validator with fresh collaborators and a mock probe."""
    registry = registry or FormatRegistry()
    return ImageFormatValidator(
        registry,
        cache=cache if cache is not None else ResultCache(),
        decision_log=DecisionLog(capacity=100),
        performance_monitor=PerformanceMonitor(),
        probe=probe or make_probe(),
    )


def mock_transport_client(handler) -> httpx.AsyncClient:
    """Async client whose requests are answered by `handler` without network access."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
