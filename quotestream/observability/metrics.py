"""
Prometheus metrics collection.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from quotestream.constants import (
    METRIC_DEAD_LETTERED,
    METRIC_DELIVERIES,
    METRIC_DISPATCH_DURATION,
    METRIC_ENVELOPES_ADMITTED,
    METRIC_ENVELOPES_PUBLISHED,
    METRIC_PENDING_RECLAIMED,
    METRIC_STREAM_LENGTH,
    METRIC_STREAM_TRIMMED,
)

logger = logging.getLogger(__name__)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the request pipeline.

    Collects metrics for:
    - Admission outcomes and publishes
    - Deliveries by kind and outcome
    - Dispatch duration
    - Reclaimed and dead-lettered entries
    - Stream length and trimming
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        # Admission gate outcomes (admitted / suppressed)
        self.envelopes_admitted = Counter(
            METRIC_ENVELOPES_ADMITTED,
            "Admission gate decisions",
            ["domain", "outcome"],
            registry=self._registry,
        )

        self.envelopes_published = Counter(
            METRIC_ENVELOPES_PUBLISHED,
            "Total number of envelopes appended to the stream",
            ["type"],
            registry=self._registry,
        )

        # Deliveries (new / retry, acked / failed)
        self.deliveries = Counter(
            METRIC_DELIVERIES,
            "Total number of envelope deliveries",
            ["kind", "outcome"],
            registry=self._registry,
        )

        self.dispatch_duration = Histogram(
            METRIC_DISPATCH_DURATION,
            "Dispatch duration in seconds",
            ["type", "outcome"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

        self.pending_reclaimed = Counter(
            METRIC_PENDING_RECLAIMED,
            "Total number of pending entries claimed for retry",
            ["consumer"],
            registry=self._registry,
        )

        self.dead_lettered = Counter(
            METRIC_DEAD_LETTERED,
            "Total number of entries moved to the dead-letter stream",
            registry=self._registry,
        )

        self.stream_trimmed = Counter(
            METRIC_STREAM_TRIMMED,
            "Total number of entries discarded by retention",
            registry=self._registry,
        )

        self.stream_length = Gauge(
            METRIC_STREAM_LENGTH,
            "Number of entries in the request stream",
            registry=self._registry,
        )

    def record_admission(self, domain: str, admitted: bool) -> None:
        """Record an admission gate decision."""
        outcome = "admitted" if admitted else "suppressed"
        self.envelopes_admitted.labels(domain=domain, outcome=outcome).inc()

    def record_published(self, envelope_type: str) -> None:
        """Record an envelope append."""
        self.envelopes_published.labels(type=envelope_type).inc()

    def record_delivery(self, kind: str, outcome: str) -> None:
        """Record the outcome of one delivery."""
        self.deliveries.labels(kind=kind, outcome=outcome).inc()

    def record_dispatch(
        self,
        envelope_type: str,
        outcome: str,
        duration_seconds: float,
    ) -> None:
        """Record a dispatch duration."""
        self.dispatch_duration.labels(type=envelope_type, outcome=outcome).observe(
            duration_seconds
        )

    def record_reclaimed(self, consumer: str, count: int = 1) -> None:
        """Record pending entries claimed by a consumer."""
        self.pending_reclaimed.labels(consumer=consumer).inc(count)

    def record_dead_lettered(self, count: int = 1) -> None:
        """Record entries moved to the dead-letter stream."""
        self.dead_lettered.inc(count)

    def record_trimmed(self, count: int, length: int) -> None:
        """Record a retention sweep."""
        self.stream_trimmed.inc(count)
        self.stream_length.set(length)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics


def serve_metrics(port: int) -> bool:
    """
    Expose the default registry over HTTP for scraping.

    Each process needs its own port; a port of 0 leaves the exporter off.

    Args:
        port: Port for the metrics endpoint.

    Returns:
        bool: True if an exporter was started.
    """
    if not port:
        logger.info("Metrics exporter disabled")
        return False

    start_http_server(port)
    logger.info(f"Metrics exporter listening on port {port}")
    return True
