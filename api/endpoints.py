"""FastAPI route handlers for image validation and format registry management."""

import logging
from typing import Optional

from fastapi.responses import JSONResponse

from models.api import (
    BatchValidateRequest,
    EnabledUpdate,
    FallbackBehaviorModel,
    FormatConfigModel,
    FormatDefinitionModel,
    RejectedFormatDefinitionModel,
    ValidateRequest,
)
from models.errors import FormatConfigError
from models.formats import FallbackBehaviorConfig
from validation.validators import ImageFormatValidator

logger = logging.getLogger(__name__)

# Format validator will be injected from main.py
format_validator: Optional[ImageFormatValidator] = None


def set_format_validator(validator_instance: Optional[ImageFormatValidator]):
    """Set the format validator instance for use in endpoints."""
    global format_validator
    format_validator = validator_instance


def get_format_validator() -> Optional[ImageFormatValidator]:
    return format_validator


def _not_initialized() -> JSONResponse:
    return JSONResponse(content={"error": "Format validator not initialized"}, status_code=503)


def _validation_response(validation, success_status: int = 200) -> JSONResponse:
    """Render an accepted registry change; rejected changes raise FormatConfigError."""
    if not validation.is_valid:
        raise FormatConfigError(validation.errors, validation.warnings)
    return JSONResponse(content=validation.to_dict(), status_code=success_status)


def _after_registry_change() -> None:
    # Cached verdicts were computed against the previous registry
    format_validator.clear_cache()


# --- Validation ---


async def validate_image(request: ValidateRequest):
    """
    Validate the format of a single image.

    Args:
        request: URL with optional MIME type and metadata

    Returns:
        JSONResponse with the classification result
    """
    if format_validator is None:
        return _not_initialized()

    result = await format_validator.validate(request.url, request.mime_type, request.metadata)
    return JSONResponse(content=result.to_dict())


async def validate_images_batch(request: BatchValidateRequest):
    """Validate several images concurrently, preserving input order."""
    if format_validator is None:
        return _not_initialized()

    results = await format_validator.validate_batch(request.urls)
    return JSONResponse(
        content={
            "results": [{"url": url, **result.to_dict()} for url, result in zip(request.urls, results)],
            "total": len(results),
            "accepted": sum(1 for r in results if r.is_valid),
        }
    )


# --- Format registry ---


async def get_format_config():
    if format_validator is None:
        return _not_initialized()
    return JSONResponse(content=format_validator.registry.get().to_dict())


async def replace_format_config(request: FormatConfigModel):
    """
    Replace the whole format configuration.

    Args:
        request: Complete configuration

    Returns:
        JSONResponse with validation errors and warnings

    Raises:
        FormatConfigError: If the configuration is rejected
    """
    if format_validator is None:
        return _not_initialized()

    validation = format_validator.registry.replace_all(request.to_config())
    if validation.is_valid:
        _after_registry_change()
    return _validation_response(validation)


async def add_supported_format(name: str, request: FormatDefinitionModel):
    if format_validator is None:
        return _not_initialized()

    validation = format_validator.registry.add_supported(name, request.to_definition())
    if validation.is_valid:
        _after_registry_change()
    return _validation_response(validation, success_status=201)


async def add_rejected_format(name: str, request: RejectedFormatDefinitionModel):
    if format_validator is None:
        return _not_initialized()

    validation = format_validator.registry.add_rejected(name, request.to_definition())
    if validation.is_valid:
        _after_registry_change()
    return _validation_response(validation, success_status=201)


async def remove_supported_format(name: str):
    if format_validator is None:
        return _not_initialized()

    if not format_validator.registry.remove_supported(name):
        return JSONResponse(content={"error": f"Supported format '{name}' not found"}, status_code=404)
    _after_registry_change()
    return JSONResponse(content={"status": "success"})


async def remove_rejected_format(name: str):
    if format_validator is None:
        return _not_initialized()

    if not format_validator.registry.remove_rejected(name):
        return JSONResponse(content={"error": f"Rejected format '{name}' not found"}, status_code=404)
    _after_registry_change()
    return JSONResponse(content={"status": "success"})


async def set_format_enabled(name: str, request: EnabledUpdate):
    """Enable or disable a supported format."""
    if format_validator is None:
        return _not_initialized()

    if not format_validator.registry.set_enabled(name, request.enabled):
        return JSONResponse(content={"error": f"Supported format '{name}' not found"}, status_code=404)
    _after_registry_change()
    return JSONResponse(content={"status": "success", "name": name.strip().lower(), "enabled": request.enabled})


async def update_fallback_behavior(request: FallbackBehaviorModel):
    if format_validator is None:
        return _not_initialized()

    validation = format_validator.registry.update_fallback_behavior(
        FallbackBehaviorConfig(
            retry_count=request.retry_count,
            expand_search_radius=request.expand_search_radius,
            http_timeout_ms=request.http_timeout_ms,
        )
    )
    return _validation_response(validation)


async def reset_format_config():
    if format_validator is None:
        return _not_initialized()

    format_validator.registry.reset_to_default()
    _after_registry_change()
    return JSONResponse(content=format_validator.registry.get().to_dict())
