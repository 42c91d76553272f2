"""API endpoints and route handlers."""

from .admin_endpoints import (
    clear_validation_cache,
    clear_validation_logs,
    get_cache_stats,
    get_performance_health,
    get_performance_metrics,
    get_rejection_patterns,
    get_validation_logs,
    get_validation_stats,
)
from .endpoints import (
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

__all__ = [
    "validate_image",
    "validate_images_batch",
    "get_format_config",
    "replace_format_config",
    "add_supported_format",
    "add_rejected_format",
    "remove_supported_format",
    "remove_rejected_format",
    "set_format_enabled",
    "update_fallback_behavior",
    "reset_format_config",
    "set_format_validator",
    "get_validation_logs",
    "get_validation_stats",
    "get_rejection_patterns",
    "clear_validation_logs",
    "get_cache_stats",
    "clear_validation_cache",
    "get_performance_metrics",
    "get_performance_health",
]
