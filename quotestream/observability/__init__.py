"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from quotestream.observability.logging import setup_logging
from quotestream.observability.metrics import (
    MetricsCollector,
    get_metrics,
    serve_metrics,
    setup_metrics,
)
from quotestream.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "setup_metrics",
    "get_metrics",
    "serve_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]
