"""Unit tests for application configuration and component wiring."""

import httpx
import pytest
from fastapi.testclient import TestClient

from api.endpoints import get_format_validator, set_format_validator
from core.config import AppConfig, create_format_validator, validate_environment
from main import create_app
from models.validation import StrategyKind
from tests.utils.fixtures import mock_transport_client


class TestAppConfig:
    """Test suite for AppConfig environment parsing."""

    def test_defaults(self, monkeypatch):
        for var in ("HTTP_TIMEOUT_MS", "VALIDATION_CACHE_SIZE", "ENABLE_HTTP_PROBE", "DECISION_LOG_CAPACITY"):
            monkeypatch.delenv(var, raising=False)

        config = AppConfig()

        assert config.http_timeout_ms == 5000
        assert config.validation_cache_size == 1000
        assert config.decision_log_capacity == 1000
        assert config.enable_http_probe is True

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("HTTP_TIMEOUT_MS", "2500")
        monkeypatch.setenv("VALIDATION_CACHE_SIZE", "10")
        monkeypatch.setenv("VALIDATION_CACHE_TTL_SECONDS", "30")
        monkeypatch.setenv("ENABLE_HTTP_PROBE", "false")

        config = AppConfig()

        assert config.http_timeout_ms == 2500
        assert config.get_cache_config() == {"max_size": 10, "ttl_seconds": 30.0}
        assert config.get_detection_config()["enable_http_probe"] is False

    def test_rejects_non_positive_timeout(self, monkeypatch):
        monkeypatch.setenv("HTTP_TIMEOUT_MS", "0")

        with pytest.raises(ValueError):
            AppConfig()


class TestComponentWiring:
    """Test suite for create_format_validator."""

    def test_validator_uses_configuration(self, monkeypatch):
        monkeypatch.setenv("HTTP_TIMEOUT_MS", "1500")
        monkeypatch.setenv("VALIDATION_CACHE_SIZE", "5")
        monkeypatch.setenv("DECISION_LOG_CAPACITY", "7")
        monkeypatch.delenv("ENABLE_HTTP_PROBE", raising=False)

        validator = create_format_validator(AppConfig())

        assert validator.registry.http_timeout_seconds == 1.5
        assert validator.cache.max_size == 5
        assert validator.decision_log.capacity == 7
        assert validator.strategies[-1].kind is StrategyKind.HTTP_CONTENT_TYPE

    def test_probe_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("ENABLE_HTTP_PROBE", "false")

        validator = create_format_validator(AppConfig())

        assert StrategyKind.HTTP_CONTENT_TYPE not in [s.kind for s in validator.strategies]

    async def test_shared_client_is_closed_by_validator(self, monkeypatch):
        monkeypatch.delenv("ENABLE_HTTP_PROBE", raising=False)
        client = mock_transport_client(lambda request: httpx.Response(200))

        validator = create_format_validator(AppConfig(), client=client)
        await validator.aclose()

        assert client.is_closed

    def test_app_shutdown_closes_http_client(self, monkeypatch):
        monkeypatch.delenv("ENABLE_HTTP_PROBE", raising=False)
        original = get_format_validator()
        try:
            app = create_app()
            validator = get_format_validator()
            with TestClient(app):
                pass
            assert validator.strategies[-1].probe._client.is_closed
        finally:
            set_format_validator(original)


def test_validate_environment_rejects_garbage(monkeypatch):
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    monkeypatch.delenv("CI", raising=False)
    monkeypatch.setenv("HTTP_TIMEOUT_MS", "fast")

    with pytest.raises(ValueError, match="HTTP_TIMEOUT_MS"):
        validate_environment()
