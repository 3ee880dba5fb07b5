"""
Retention sweeper for capping the request stream.

The sweeper runs on its own timer, independent of the worker, and trims
the stream to its most recent entries. Trimming ignores acknowledgment
state: an entry trimmed before it was acknowledged is lost.
"""

import asyncio
import logging
import signal

import redis.asyncio as aioredis

from quotestream.config import get_settings
from quotestream.observability.logging import setup_logging
from quotestream.observability.metrics import MetricsCollector, get_metrics, serve_metrics
from quotestream.store import close_redis, init_redis
from quotestream.store.stream import StreamRepository

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """
    Stream retention sweeper.

    Runs periodically to:
    1. Trim the stream to at most ``maxlen`` entries (oldest first)
    2. Report how many entries were removed
    3. Record the remaining length for monitoring
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        stream: str | None = None,
        maxlen: int | None = None,
        approximate: bool | None = None,
        interval_seconds: float | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the sweeper.

        Args:
            redis: The async Redis client.
            stream: Stream key.
            maxlen: Number of most recent entries to keep.
            approximate: Use ``MAXLEN ~`` trimming.
            interval_seconds: Seconds between sweeps.
            metrics: Metrics collector.
        """
        settings = get_settings()
        self._repo = StreamRepository(
            redis,
            stream=stream or settings.stream_name,
            group=settings.consumer_group,
        )
        self.maxlen = maxlen if maxlen is not None else settings.trim_maxlen
        self.approximate = (
            approximate if approximate is not None else settings.trim_approximate
        )
        self.interval = interval_seconds or settings.trim_interval_seconds
        self._running = False
        self._metrics = metrics or get_metrics()

    async def start(self) -> None:
        """Start the sweeper loop."""
        logger.info(f"Sweeper starting with interval {self.interval}s, maxlen {self.maxlen}")
        self._running = True

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in sweeper loop: {e}")

            await asyncio.sleep(self.interval)

        logger.info("Sweeper stopped")

    async def stop(self) -> None:
        """Stop the sweeper."""
        logger.info("Sweeper stopping")
        self._running = False

    async def run_once(self) -> int:
        """
        Trim the stream once.

        Returns:
            Number of entries removed.
        """
        trimmed = await self._repo.trim(self.maxlen, approximate=self.approximate)
        length = await self._repo.length()

        self._metrics.record_trimmed(trimmed, length)
        logger.info(
            f"Stream trimmed: {trimmed} entries removed",
            extra={"stream": self._repo.stream, "trimmed": trimmed, "length": length},
        )

        return trimmed


async def run_async() -> None:
    """Run the sweeper asynchronously."""
    settings = get_settings()

    setup_logging()
    serve_metrics(settings.sweeper_metrics_port)
    redis = await init_redis()

    sweeper = RetentionSweeper(redis)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(sweeper.stop())
        )

    try:
        await sweeper.start()
    finally:
        await close_redis()


def run() -> None:
    """Run the sweeper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
