"""
Admission gate for deduplicating bursty requests.

A request is admitted only if no equivalent request was admitted within
the marker TTL. The marker is created with a single ``SET NX EX`` so at
most one of any number of concurrent callers wins per window.
"""

import logging

import redis.asyncio as aioredis

from quotestream.config import get_settings
from quotestream.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


def dedup_key(prefix: str, domain: str, identifier: str) -> str:
    """Build the marker key ``<prefix>:<domain>:<identifier>``."""
    return f"{prefix}:{domain}:{identifier}"


class AdmissionGate:
    """
    Time-window dedup gate backed by expiring Redis keys.

    Markers are never deleted explicitly; they expire after the TTL.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        ttl_seconds: int | None = None,
        key_prefix: str | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the gate.

        Args:
            redis: The async Redis client.
            ttl_seconds: Dedup window. Defaults to the configured TTL.
            key_prefix: Marker key prefix. Defaults to the configured prefix.
            metrics: Metrics collector. Defaults to the global collector.
        """
        settings = get_settings()

        self._redis = redis
        self.ttl_seconds = ttl_seconds or settings.dedup_ttl_seconds
        self.key_prefix = key_prefix or settings.dedup_key_prefix
        self._metrics = metrics or get_metrics()

    async def admit(self, domain: str, identifier: str) -> bool:
        """
        Try to admit a request for ``(domain, identifier)``.

        Args:
            domain: Request domain (e.g. ``stock``).
            identifier: Logical key within the domain.

        Returns:
            True if this call created the marker and the caller should
            enqueue; False if an equivalent request is already in flight.

        Raises:
            ValueError: If domain or identifier is empty.
        """
        if not domain or not identifier:
            raise ValueError("domain and identifier must be non-empty")

        key = dedup_key(self.key_prefix, domain, identifier)
        created = await self._redis.set(key, "1", ex=self.ttl_seconds, nx=True)
        admitted = bool(created)

        self._metrics.record_admission(domain, admitted)

        if admitted:
            logger.debug("Admitted request", extra={"key": key})
        else:
            logger.info(
                "Suppressed duplicate request",
                extra={"domain": domain, "identifier": identifier},
            )

        return admitted
