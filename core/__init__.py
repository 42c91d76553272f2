"""Core format registry, caching and telemetry components."""

from .decision_log import DecisionLog
from .format_registry import FormatRegistry
from .performance_monitor import PerformanceMonitor
from .result_cache import ResultCache

__all__ = [
    'DecisionLog',
    'FormatRegistry',
    'PerformanceMonitor',
    'ResultCache'
]
