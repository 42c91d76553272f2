"""
FastAPI endpoints for validation telemetry.

This module provides API endpoints for:
- Decision log queries, statistics and rejection pattern analysis
- Result cache statistics and invalidation
- Performance metrics and health checks
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, Query

from api.endpoints import get_format_validator
from models.validation import LogFilterCriteria
from validation.validators import ImageFormatValidator

logger = logging.getLogger(__name__)


def _require_validator() -> ImageFormatValidator:
    """Return the injected validator or fail with 503."""
    validator = get_format_validator()
    if validator is None:
        raise HTTPException(status_code=503, detail="Format validator not initialized")
    return validator


async def get_validation_logs(
    limit: int = Query(100, ge=1, le=1000),
    validation_result: Optional[bool] = Query(None),
    detection_method: Optional[str] = Query(None),
    has_error: Optional[bool] = Query(None),
    min_confidence: Optional[float] = Query(None, ge=0.0, le=1.0),
    max_confidence: Optional[float] = Query(None, ge=0.0, le=1.0),
    since: Optional[datetime] = Query(None),
) -> Dict[str, Any]:
    """
    Query the decision log.

    Filters are AND-combined; the most recent `limit` matches are returned
    oldest first.
    """
    validator = _require_validator()

    criteria = LogFilterCriteria(
        validation_result=validation_result,
        detection_method=detection_method,
        has_error=has_error,
        min_confidence=min_confidence,
        max_confidence=max_confidence,
        since=since,
    )
    records = validator.decision_log.filtered(criteria)[-limit:]
    return {"records": [record.to_dict() for record in records], "count": len(records)}


async def get_validation_stats() -> Dict[str, Any]:
    validator = _require_validator()
    return validator.decision_log.stats().to_dict()


async def get_rejection_patterns() -> Dict[str, Any]:
    """Get the most common rejection reasons, formats and method effectiveness."""
    validator = _require_validator()
    return validator.decision_log.rejection_patterns()


async def clear_validation_logs() -> Dict[str, Any]:
    validator = _require_validator()
    validator.decision_log.clear()
    return {"status": "success", "message": "Decision log cleared"}


async def get_cache_stats() -> Dict[str, Any]:
    validator = _require_validator()
    return validator.cache.stats()


async def clear_validation_cache() -> Dict[str, Any]:
    validator = _require_validator()

    try:
        validator.clear_cache()
        logger.info("Validation cache cleared")
        return {"status": "success", "message": "Validation cache cleared successfully"}

    except Exception as e:
        logger.error(f"Failed to clear validation cache: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear validation cache")


async def get_performance_metrics() -> Dict[str, Any]:
    """Get validation timing metrics and a readable summary."""
    validator = _require_validator()
    monitor = validator.performance_monitor
    return {"metrics": monitor.get_metrics(), "summary": monitor.get_performance_summary()}


async def get_performance_health() -> Dict[str, Any]:
    validator = _require_validator()
    return validator.performance_monitor.check_performance_health()
