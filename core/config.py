"""Core configuration and utility functions."""

import logging
import os
from typing import Any, Dict, Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI

from core.decision_log import DecisionLog
from core.format_registry import FormatRegistry
from core.performance_monitor import PerformanceMonitor
from core.result_cache import ResultCache
from error_handling.handlers import ErrorHandler, ErrorHandlingMiddleware
from validation.http_probe import ContentTypeProbe
from validation.strategies import MimeTypeStrategy, UrlExtensionStrategy, default_strategies
from validation.validators import ImageFormatValidator

# Load environment variables
load_dotenv()

# Format detection configuration constants
HTTP_TIMEOUT_MS = 5000
ENABLE_HTTP_PROBE = True
FOLLOW_REDIRECTS = True

# Cache configuration constants
VALIDATION_CACHE_SIZE = 1000
VALIDATION_CACHE_TTL_SECONDS = 300

# Telemetry configuration constants
DECISION_LOG_CAPACITY = 1000
PERFORMANCE_RECORD_LIMIT = 1000
LOG_LEVEL = "INFO"


class AppConfig:
    """Application configuration settings."""

    def __init__(self):
        self.http_timeout_ms = int(os.getenv("HTTP_TIMEOUT_MS", HTTP_TIMEOUT_MS))
        self.enable_http_probe = os.getenv("ENABLE_HTTP_PROBE", "true").lower() == "true"
        self.follow_redirects = os.getenv("FOLLOW_REDIRECTS", "true").lower() == "true"

        self.validation_cache_size = int(os.getenv("VALIDATION_CACHE_SIZE", VALIDATION_CACHE_SIZE))
        self.validation_cache_ttl_seconds = float(
            os.getenv("VALIDATION_CACHE_TTL_SECONDS", VALIDATION_CACHE_TTL_SECONDS)
        )

        self.decision_log_capacity = int(os.getenv("DECISION_LOG_CAPACITY", DECISION_LOG_CAPACITY))
        self.performance_record_limit = int(os.getenv("PERFORMANCE_RECORD_LIMIT", PERFORMANCE_RECORD_LIMIT))
        self.log_level = os.getenv("LOG_LEVEL", LOG_LEVEL)

        if self.http_timeout_ms <= 0:
            raise ValueError("HTTP_TIMEOUT_MS must be positive")
        if self.validation_cache_size <= 0:
            raise ValueError("VALIDATION_CACHE_SIZE must be positive")
        if self.decision_log_capacity <= 0:
            raise ValueError("DECISION_LOG_CAPACITY must be positive")

    def get_cache_config(self) -> Dict[str, Any]:
        """Get result cache configuration."""
        return {
            "max_size": self.validation_cache_size,
            "ttl_seconds": self.validation_cache_ttl_seconds,
        }

    def get_detection_config(self) -> Dict[str, Any]:
        """Get format detection configuration."""
        return {
            "http_timeout_ms": self.http_timeout_ms,
            "enable_http_probe": self.enable_http_probe,
            "follow_redirects": self.follow_redirects,
        }


def create_fastapi_app() -> FastAPI:
    """Create and configure FastAPI application instance."""
    app = FastAPI(
        title="Image Format Validation",
        description="Confidence-scored detection of web-displayable image formats",
        version="1.0.0",
    )

    return app


def setup_middleware(app: FastAPI, config: AppConfig) -> None:
    """Configure FastAPI middleware."""
    error_handler = ErrorHandler()
    app.add_middleware(ErrorHandlingMiddleware, error_handler=error_handler)


def create_format_validator(
    config: AppConfig,
    client: Optional[httpx.AsyncClient] = None,
) -> ImageFormatValidator:
    """
    Create the image format validator and its collaborators from configuration.

    Args:
        config: Application configuration
        client: Shared HTTP client for the content-type probe

    Returns:
        ImageFormatValidator: Validator wired to a fresh registry, cache, log and monitor
    """
    detection = config.get_detection_config()
    registry = FormatRegistry(http_timeout_ms=detection["http_timeout_ms"])
    cache = ResultCache(**config.get_cache_config())
    decision_log = DecisionLog(capacity=config.decision_log_capacity)
    monitor = PerformanceMonitor(max_records=config.performance_record_limit)

    if detection["enable_http_probe"]:
        probe = ContentTypeProbe(client=client, follow_redirects=detection["follow_redirects"])
        strategies = default_strategies(registry, probe)
    else:
        strategies = [MimeTypeStrategy(registry), UrlExtensionStrategy(registry)]

    return ImageFormatValidator(
        registry,
        cache=cache,
        decision_log=decision_log,
        performance_monitor=monitor,
        strategies=strategies,
    )


def validate_environment() -> None:
    """Validate that numeric environment variables parse."""
    # Skip validation in test environments
    if os.getenv("PYTEST_CURRENT_TEST") or os.getenv("CI"):
        return

    numeric_vars = [
        "HTTP_TIMEOUT_MS",
        "VALIDATION_CACHE_SIZE",
        "VALIDATION_CACHE_TTL_SECONDS",
        "DECISION_LOG_CAPACITY",
        "PERFORMANCE_RECORD_LIMIT",
    ]
    invalid_vars = []

    for var in numeric_vars:
        value = os.getenv(var)
        if value is None:
            continue
        try:
            float(value)
        except ValueError:
            invalid_vars.append(var)

    if invalid_vars:
        raise ValueError(f"Invalid numeric environment variables: {', '.join(invalid_vars)}")


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    # Suppress some noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_config() -> AppConfig:
    """Get the global application configuration instance."""
    return AppConfig()
