"""
Worker process for consuming the request stream.

Each cycle reads new entries for the consumer group, dispatches them, and
acknowledges on success. The tail of the cycle lists the group's pending
entries and claims them for an immediate retry, which recovers entries
left behind by failed dispatches and by crashed or stalled consumers.
"""

import asyncio
import logging
import signal
import time

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from quotestream.adapters.http import HttpFxInfoPort, HttpQuotePort, create_http_client
from quotestream.config import get_settings
from quotestream.constants import (
    FIELD_DELIVERY_COUNT,
    FIELD_SOURCE_ID,
    SPAN_CONSUME_CYCLE,
    DeliveryKind,
)
from quotestream.db import close_db, get_session_factory, init_db
from quotestream.db.repository import SqlInstrumentPort
from quotestream.observability.logging import bind_context, setup_logging
from quotestream.observability.metrics import MetricsCollector, get_metrics, serve_metrics
from quotestream.observability.tracing import get_tracer, setup_tracing
from quotestream.store import close_redis, init_redis
from quotestream.store.stream import StreamRepository
from quotestream.types.envelope import envelope_from_fields
from quotestream.types.stream import CycleReport, PendingEntry, StreamEntry
from quotestream.worker.router import DispatchRouter

logger = logging.getLogger(__name__)


class StreamWorker:
    """
    Consumer-group worker with acknowledge-on-success delivery.

    Features:
    - Blocking XREADGROUP bounded by a short block duration
    - Per-entry failure isolation: a failing entry stays pending
    - Zero-idle XCLAIM reclaim of pending entries after each read pass
    - Optional dead-lettering of entries past a delivery-count threshold
    - Graceful shutdown on SIGTERM/SIGINT

    Cycles are serialized: the loop runs at a fixed rate and starts the
    next cycle immediately when one overruns its period.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        router: DispatchRouter,
        stream: str | None = None,
        group: str | None = None,
        consumer: str | None = None,
        read_count: int | None = None,
        read_block_ms: int | None = None,
        pending_batch_size: int | None = None,
        reclaim_min_idle_ms: int | None = None,
        dead_letter_max_deliveries: int | None = None,
        dead_letter_stream: str | None = None,
        interval_seconds: float | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the worker.

        Args:
            redis: The async Redis client.
            router: Dispatch router for envelopes.
            stream: Stream key.
            group: Consumer group name.
            consumer: Consumer identity within the group. Must be unique per
                running process.
            read_count: Maximum new entries per cycle.
            read_block_ms: Milliseconds to block for new entries; 0 disables
                blocking.
            pending_batch_size: Maximum pending entries inspected per cycle.
            reclaim_min_idle_ms: Minimum idle time before an entry is claimed.
            dead_letter_max_deliveries: Deliveries after which an entry is
                dead-lettered. None disables dead-lettering.
            dead_letter_stream: Stream receiving dead-lettered entries.
            interval_seconds: Period of the consume cycle.
            metrics: Metrics collector.

        Any argument left as None falls back to settings.
        """
        settings = get_settings()

        self._repo = StreamRepository(
            redis,
            stream=stream or settings.stream_name,
            group=group or settings.consumer_group,
        )
        self._router = router
        self.consumer = consumer or settings.consumer_name
        self.read_count = read_count or settings.read_count
        self.read_block_ms = (
            read_block_ms if read_block_ms is not None else settings.read_block_ms
        )
        self.pending_batch_size = pending_batch_size or settings.pending_batch_size
        self.reclaim_min_idle_ms = (
            reclaim_min_idle_ms
            if reclaim_min_idle_ms is not None
            else settings.reclaim_min_idle_ms
        )
        self.dead_letter_max_deliveries = (
            dead_letter_max_deliveries
            if dead_letter_max_deliveries is not None
            else settings.dead_letter_max_deliveries
        )
        self.dead_letter_stream = dead_letter_stream or settings.dead_letter_stream
        self.interval = interval_seconds or settings.consume_interval_seconds
        self.group_start_id = settings.consumer_group_start_id

        self._running = False
        self._metrics = metrics or get_metrics()

    @property
    def stream(self) -> str:
        return self._repo.stream

    @property
    def group(self) -> str:
        return self._repo.group

    async def setup(self) -> None:
        """Create the consumer group if it does not exist yet."""
        await self._repo.ensure_group(self.group_start_id)

    async def start(self) -> None:
        """Run consume cycles until stopped."""
        logger.info(
            "Worker starting",
            extra={
                "stream": self.stream,
                "group": self.group,
                "consumer": self.consumer,
                "read_count": self.read_count,
            },
        )
        bind_context(consumer=self.consumer, stream=self.stream)

        await self.setup()
        self._running = True

        while self._running:
            started = time.monotonic()
            try:
                report = await self.consume_once()

                if not report.idle:
                    logger.info(
                        "Consume cycle finished",
                        extra={
                            "delivered": report.delivered,
                            "acknowledged": report.acknowledged,
                            "failed": report.failed,
                            "reclaimed": report.reclaimed,
                            "dead_lettered": report.dead_lettered,
                        },
                    )

            except RedisError as e:
                logger.exception(f"Store error in consume cycle, retrying next tick: {e}")
            except Exception as e:
                logger.exception(f"Error in worker loop: {e}")

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))

        logger.info("Worker stopped", extra={"consumer": self.consumer})

    async def stop(self) -> None:
        """Stop the worker after the current cycle."""
        logger.info("Worker stopping", extra={"consumer": self.consumer})
        self._running = False

    async def consume_once(self) -> CycleReport:
        """
        Run one delivery pass followed by one reclaim pass.

        Store errors propagate and abort the cycle; dispatch errors are
        contained per entry.

        Returns:
            Counters describing what the cycle did.
        """
        report = CycleReport()

        with get_tracer().start_as_current_span(SPAN_CONSUME_CYCLE) as span:
            span.set_attribute("consumer", self.consumer)

            entries = await self._repo.read_new(
                self.consumer,
                count=self.read_count,
                block_ms=self.read_block_ms,
            )
            if entries:
                logger.info(f"Read {len(entries)} new entries")

            for entry in entries:
                report.delivered += 1
                await self._process_entry(entry, DeliveryKind.NEW, report)

            await self._reclaim_pending(report)

            span.set_attribute("cycle.delivered", report.delivered)
            span.set_attribute("cycle.reclaimed", report.reclaimed)

        return report

    async def _reclaim_pending(self, report: CycleReport) -> None:
        """
        Claim pending entries of the group and retry them.

        Entries are claimed regardless of their current owner, so a slow
        but alive consumer may see its entry dispatched a second time.
        """
        pending = await self._repo.list_pending(self.pending_batch_size)
        if not pending:
            return

        logger.warning(f"Found {len(pending)} pending entries, retrying")

        for item in pending:
            if self._should_dead_letter(item):
                await self._dead_letter(item)
                report.dead_lettered += 1
                continue

            claimed = await self._repo.claim(
                self.consumer,
                item.entry_id,
                min_idle_ms=self.reclaim_min_idle_ms,
            )
            if claimed is None:
                continue

            report.reclaimed += 1
            self._metrics.record_reclaimed(self.consumer)
            await self._process_entry(claimed, DeliveryKind.RETRY, report)

    async def _process_entry(
        self,
        entry: StreamEntry,
        kind: DeliveryKind,
        report: CycleReport,
    ) -> bool:
        """
        Parse, dispatch and acknowledge one entry.

        Malformed entries and dispatch failures are logged and left
        unacknowledged so they are retried by a later reclaim pass.

        Returns:
            True if the entry was acknowledged.
        """
        try:
            envelope = envelope_from_fields(entry.fields)
            await self._router.dispatch(envelope, kind)
        except Exception as e:
            logger.exception(
                "Dispatch failed",
                extra={"entry_id": entry.entry_id, "kind": str(kind), "error": str(e)},
            )
            report.failed += 1
            report.failed_ids.append(entry.entry_id)
            self._metrics.record_delivery(str(kind), "failed")
            return False

        await self._repo.ack(entry.entry_id)
        report.acknowledged += 1
        self._metrics.record_delivery(str(kind), "acked")
        return True

    def _should_dead_letter(self, item: PendingEntry) -> bool:
        if self.dead_letter_max_deliveries is None:
            return False
        return item.delivery_count > self.dead_letter_max_deliveries

    async def _dead_letter(self, item: PendingEntry) -> None:
        """
        Copy a pending entry to the dead-letter stream and acknowledge it.

        The copy carries the original id and delivery count for inspection.
        """
        entry = await self._repo.get_entry(item.entry_id)
        if entry is not None:
            fields = {
                **entry.fields,
                FIELD_SOURCE_ID: entry.entry_id,
                FIELD_DELIVERY_COUNT: str(item.delivery_count),
            }
            await self._repo.append(fields, stream=self.dead_letter_stream)

        await self._repo.ack(item.entry_id)
        self._metrics.record_dead_lettered()

        logger.warning(
            "Moved entry to dead-letter stream",
            extra={
                "entry_id": item.entry_id,
                "delivery_count": item.delivery_count,
                "dead_letter_stream": self.dead_letter_stream,
            },
        )


async def run_async() -> None:
    """Run the worker asynchronously."""
    settings = get_settings()

    setup_logging()
    setup_tracing()
    serve_metrics(settings.worker_metrics_port)

    redis = await init_redis()
    await init_db()
    http_client = create_http_client()

    router = DispatchRouter.with_ports(
        quotes=HttpQuotePort(http_client),
        instruments=SqlInstrumentPort(get_session_factory()),
        fx=HttpFxInfoPort(http_client),
    )
    worker = StreamWorker(redis, router)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await http_client.aclose()
        await close_db()
        await close_redis()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
