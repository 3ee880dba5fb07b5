"""
Stream producer for quote refresh requests.

Stock requests pass through the admission gate; fx requests are appended
directly and are never deduplicated.
"""

import logging

import redis.asyncio as aioredis

from quotestream.config import get_settings
from quotestream.constants import DEDUP_DOMAIN_STOCK
from quotestream.observability.metrics import MetricsCollector, get_metrics
from quotestream.producer.gate import AdmissionGate
from quotestream.store.stream import StreamRepository
from quotestream.types.envelope import (
    FxEnvelope,
    StockEnvelope,
    envelope_to_fields,
)

logger = logging.getLogger(__name__)


class StreamProducer:
    """Builds envelopes and appends them to the request stream."""

    def __init__(
        self,
        redis: aioredis.Redis,
        gate: AdmissionGate | None = None,
        stream: str | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the producer.

        Args:
            redis: The async Redis client.
            gate: Admission gate for stock requests. Created from settings
                if not provided.
            stream: Stream key. Defaults to the configured stream.
            metrics: Metrics collector. Defaults to the global collector.
        """
        settings = get_settings()

        self._metrics = metrics or get_metrics()
        self._gate = gate or AdmissionGate(redis, metrics=self._metrics)
        self._repo = StreamRepository(
            redis,
            stream=stream or settings.stream_name,
            group=settings.consumer_group,
        )

    @property
    def stream(self) -> str:
        return self._repo.stream

    async def publish(self, envelope: StockEnvelope | FxEnvelope) -> str:
        """
        Append an envelope to the tail of the stream.

        Returns once Redis has accepted the entry; never waits on consumers.

        Args:
            envelope: The envelope to publish.

        Returns:
            The stream entry id.
        """
        entry_id = await self._repo.append(envelope_to_fields(envelope))
        self._metrics.record_published(envelope.type)

        logger.info(
            "Published envelope",
            extra={"entry_id": entry_id, "type": envelope.type, "key": envelope.key},
        )
        return entry_id

    async def send_stock_request(self, stock_code: str) -> str | None:
        """
        Request a price refresh for an instrument, deduplicated per code.

        Args:
            stock_code: Instrument code.

        Returns:
            The entry id, or None if an equivalent request was admitted
            within the dedup window.
        """
        if not await self._gate.admit(DEDUP_DOMAIN_STOCK, stock_code):
            return None
        return await self.publish(StockEnvelope(stock_code=stock_code))

    async def send_fx_request(self, fx_type: str, fx_code: str) -> str:
        """
        Request an fx lookup. Not deduplicated: every call appends an entry.

        Args:
            fx_type: Currency-pair lookup type.
            fx_code: Currency-pair code.

        Returns:
            The entry id.
        """
        return await self.publish(FxEnvelope(fx_type=fx_type, fx_code=fx_code))
