"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from lock_reaper.observability.logging import reaper_context, setup_logging
from lock_reaper.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
    start_metrics_server,
)
from lock_reaper.observability.tracing import create_span, get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "reaper_context",
    "setup_metrics",
    "get_metrics",
    "start_metrics_server",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "create_span",
]
