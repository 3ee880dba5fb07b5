"""
Dispatch router mapping envelope types to downstream handlers.

Handlers must be idempotent - an envelope may be dispatched more than once
when a delivery stalls and the entry is reclaimed.
"""

import logging
import time
from typing import Any, Awaitable, Callable

from quotestream.constants import SPAN_DISPATCH_ENVELOPE, DeliveryKind, EnvelopeType
from quotestream.exceptions import InstrumentNotFoundError, UnroutableEnvelopeError
from quotestream.observability.metrics import MetricsCollector, get_metrics
from quotestream.observability.tracing import get_tracer
from quotestream.ports import FxInfoPort, InstrumentPort, QuotePort
from quotestream.types.envelope import FxEnvelope, StockEnvelope

logger = logging.getLogger(__name__)

# Type alias for envelope handler functions
EnvelopeHandler = Callable[[Any], Awaitable[None]]


class DispatchRouter:
    """
    Registry of envelope handlers, one per envelope type.

    Failures are not caught here: they propagate to the worker, which
    leaves the entry unacknowledged.
    """

    def __init__(self, metrics: MetricsCollector | None = None):
        self._handlers: dict[EnvelopeType, EnvelopeHandler] = {}
        self._metrics = metrics or get_metrics()

    @classmethod
    def with_ports(
        cls,
        quotes: QuotePort,
        instruments: InstrumentPort,
        fx: FxInfoPort,
        metrics: MetricsCollector | None = None,
    ) -> "DispatchRouter":
        """
        Build a router with the stock and fx handlers wired to their ports.

        Args:
            quotes: Price lookup port.
            instruments: Instrument load/save port.
            fx: Currency-pair lookup port.
            metrics: Metrics collector.

        Returns:
            The configured router.
        """
        router = cls(metrics=metrics)

        @router.register(EnvelopeType.STOCK)
        async def handle_stock(envelope: StockEnvelope) -> None:
            quote = await quotes.fetch_quote(envelope.stock_code)
            instrument = await instruments.load_instrument(envelope.stock_code)
            if instrument is None:
                raise InstrumentNotFoundError(envelope.stock_code)

            instrument.apply_quote(quote)
            await instruments.save_instrument(instrument)

        @router.register(EnvelopeType.FX)
        async def handle_fx(envelope: FxEnvelope) -> None:
            # Result is only observed, nothing is persisted for fx.
            info = await fx.fetch_fx_info(envelope.fx_type, envelope.fx_code)
            logger.debug(
                "Fetched fx info",
                extra={"fx_type": info.fx_type, "fx_code": info.fx_code, "rate": info.rate},
            )

        return router

    def register(
        self, envelope_type: EnvelopeType
    ) -> Callable[[EnvelopeHandler], EnvelopeHandler]:
        """
        Decorator to register the handler for an envelope type.

        Example:
            @router.register(EnvelopeType.FX)
            async def handle_fx(envelope: FxEnvelope) -> None:
                ...
        """
        def decorator(handler: EnvelopeHandler) -> EnvelopeHandler:
            self._handlers[envelope_type] = handler
            logger.debug(f"Registered handler for envelope type: {envelope_type}")
            return handler
        return decorator

    def get_handler(self, envelope_type: EnvelopeType) -> EnvelopeHandler | None:
        """Get the handler for an envelope type, or None."""
        return self._handlers.get(envelope_type)

    def list_handlers(self) -> list[str]:
        """List all routed envelope types."""
        return [str(t) for t in self._handlers]

    async def dispatch(
        self,
        envelope: StockEnvelope | FxEnvelope,
        kind: DeliveryKind = DeliveryKind.NEW,
    ) -> None:
        """
        Invoke exactly one handler for the envelope.

        Args:
            envelope: The envelope to handle.
            kind: Whether this is a fresh delivery or a retry.

        Raises:
            UnroutableEnvelopeError: If no handler is registered.
            Exception: Whatever the handler raises.
        """
        envelope_type = envelope.envelope_type
        handler = self.get_handler(envelope_type)
        if handler is None:
            raise UnroutableEnvelopeError(
                f"No handler registered for envelope type: {envelope_type}"
            )

        start_time = time.perf_counter()
        outcome = "failed"

        with get_tracer().start_as_current_span(SPAN_DISPATCH_ENVELOPE) as span:
            span.set_attribute("envelope.type", str(envelope_type))
            span.set_attribute("envelope.key", envelope.key)
            span.set_attribute("delivery.kind", str(kind))
            try:
                await handler(envelope)
                outcome = "succeeded"
            finally:
                self._metrics.record_dispatch(
                    envelope_type=str(envelope_type),
                    outcome=outcome,
                    duration_seconds=time.perf_counter() - start_time,
                )

        logger.info(
            "Dispatched envelope",
            extra={"kind": str(kind), "type": str(envelope_type), "key": envelope.key},
        )
