"""
Observability components.

Provides structured logging and metrics collection.
"""

from .logging import (
    ContextualLoggerAdapter,
    clear_decision_context,
    decision_context,
    get_logger,
    get_logging_context,
    reset_decision_context,
    set_decision_context,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "set_decision_context",
    "reset_decision_context",
    "clear_decision_context",
    "decision_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
]
