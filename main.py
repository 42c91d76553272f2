"""
Image format validation service.

This is the main entry point for the FastAPI application.
"""

import logging

import httpx
from fastapi import FastAPI

from api.admin_endpoints import (
    clear_validation_cache,
    clear_validation_logs,
    get_cache_stats,
    get_performance_health,
    get_performance_metrics,
    get_rejection_patterns,
    get_validation_logs,
    get_validation_stats,
)
from api.endpoints import (
    add_rejected_format,
    add_supported_format,
    get_format_config,
    remove_rejected_format,
    remove_supported_format,
    replace_format_config,
    reset_format_config,
    set_format_enabled,
    set_format_validator,
    update_fallback_behavior,
    validate_image,
    validate_images_batch,
)
from core.config import (
    create_fastapi_app,
    create_format_validator,
    get_config,
    setup_logging,
    setup_middleware,
    validate_environment,
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    # Validate environment before starting
    validate_environment()

    # Initialize configuration
    config = get_config()

    # Setup logging
    setup_logging(config.log_level)

    # Create FastAPI app
    app = create_fastapi_app()

    # Setup middleware
    setup_middleware(app, config)

    # Create format validator with a shared probe client and inject it into endpoints
    http_client = httpx.AsyncClient() if config.enable_http_probe else None
    format_validator = create_format_validator(config, client=http_client)
    set_format_validator(format_validator)

    # Close the probe client when the server stops
    @app.on_event("shutdown")
    async def shutdown_event():
        await format_validator.aclose()

    # Register validation routes
    app.post("/validate")(validate_image)
    app.post("/validate/batch")(validate_images_batch)

    # Register format registry routes
    app.get("/formats")(get_format_config)
    app.put("/formats")(replace_format_config)
    app.post("/formats/reset")(reset_format_config)
    app.put("/formats/fallback")(update_fallback_behavior)
    app.post("/formats/supported/{name}")(add_supported_format)
    app.delete("/formats/supported/{name}")(remove_supported_format)
    app.put("/formats/supported/{name}/enabled")(set_format_enabled)
    app.post("/formats/rejected/{name}")(add_rejected_format)
    app.delete("/formats/rejected/{name}")(remove_rejected_format)

    # Register administrative routes
    app.get("/admin/validation/logs")(get_validation_logs)
    app.delete("/admin/validation/logs")(clear_validation_logs)
    app.get("/admin/validation/stats")(get_validation_stats)
    app.get("/admin/validation/patterns")(get_rejection_patterns)
    app.get("/admin/cache/stats")(get_cache_stats)
    app.post("/admin/cache/clear")(clear_validation_cache)
    app.get("/admin/performance")(get_performance_metrics)
    app.get("/admin/performance/health")(get_performance_health)

    logging.info("FastAPI application created and configured successfully")
    logging.info(
        f"Configuration: http_timeout_ms={config.http_timeout_ms}, "
        f"cache_size={config.validation_cache_size}, http_probe={config.enable_http_probe}"
    )

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Run the application
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
