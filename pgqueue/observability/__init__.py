"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from pgqueue.observability.logging import bind_context, setup_logging
from pgqueue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from pgqueue.observability.tracing import setup_tracing

__all__ = [
    "setup_logging",
    "bind_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
]
