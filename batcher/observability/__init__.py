"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from batcher.observability.logging import get_logger, job_log_context, setup_logging
from batcher.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from batcher.observability.tracing import (
    get_tracer,
    operation_span,
    setup_tracing,
    start_job_span,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "job_log_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "start_job_span",
    "operation_span",
]
