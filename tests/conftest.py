"""
Test configuration and fixtures for the image format validation service.

This module provides common fixtures and configuration for all tests.
"""

import os
import sys
from typing import Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to the path so we can import main
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import app
from api.endpoints import get_format_validator, set_format_validator
from core.format_registry import FormatRegistry
from validation.validators import ImageFormatValidator
from tests.utils.fixtures import make_probe, make_validator


@pytest.fixture
def registry() -> FormatRegistry:
    """
    Fixture providing a registry with the stock configuration.

    Returns:
        FormatRegistry: Fresh registry
    """
    return FormatRegistry()


@pytest.fixture
def mock_probe() -> Mock:
    """Probe that answers every HEAD request with no Content-Type."""
    return make_probe()


@pytest.fixture
def validator(registry: FormatRegistry, mock_probe: Mock) -> ImageFormatValidator:
    """
    Fixture providing a validator wired to the mock probe.

    Args:
        registry: Registry from fixture
        mock_probe: Probe from fixture

    Returns:
        ImageFormatValidator: Validator with fresh cache, log and monitor
    """
    return make_validator(probe=mock_probe, registry=registry)


@pytest.fixture
def test_client(validator: ImageFormatValidator) -> Generator[TestClient, None, None]:
    """
    FastAPI test client with the fixture validator injected.

    Yields:
        TestClient: Configured FastAPI test client
    """
    original = get_format_validator()
    set_format_validator(validator)
    with TestClient(app) as client:
        yield client
    set_format_validator(original)
