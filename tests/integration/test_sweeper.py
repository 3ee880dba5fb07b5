"""
Integration tests for stream retention.
"""

import asyncio

import pytest

from quotestream.sweeper.main import RetentionSweeper


async def _fill(redis, stream: str, count: int) -> list[str]:
    ids = []
    for i in range(count):
        ids.append(await redis.xadd(stream, {"type": "stock", "stockCode": f"{i:06d}"}))
    return ids


class TestRetentionSweeper:
    """Tests for trimming the stream."""

    @pytest.mark.asyncio
    async def test_trims_oldest_entries(self, sweeper, redis):
        """1050 entries capped at 1000 drop the 50 oldest."""
        ids = await _fill(redis, "test-requests", 1050)

        removed = await sweeper.run_once()

        assert removed == 50
        assert await redis.xlen("test-requests") == 1000
        remaining = await redis.xrange("test-requests", count=1)
        assert remaining[0][0] == ids[50]

    @pytest.mark.asyncio
    async def test_never_grows_short_stream(self, sweeper, redis):
        await _fill(redis, "test-requests", 10)

        removed = await sweeper.run_once()

        assert removed == 0
        assert await redis.xlen("test-requests") == 10

    @pytest.mark.asyncio
    async def test_approximate_trim_never_grows(self, redis, metrics):
        """Approximate trimming may keep extra entries but never adds any."""
        await _fill(redis, "test-requests", 1050)
        sweeper = RetentionSweeper(
            redis,
            stream="test-requests",
            maxlen=1000,
            approximate=True,
            metrics=metrics,
        )

        removed = await sweeper.run_once()

        length = await redis.xlen("test-requests")
        assert 1000 <= length <= 1050
        assert removed == 1050 - length

    @pytest.mark.asyncio
    async def test_trims_regardless_of_acknowledgment(self, redis, metrics, repo):
        """Pending entries are discarded like any other."""
        await _fill(redis, repo.stream, 5)
        await repo.read_new("worker-1", count=5)

        sweeper = RetentionSweeper(redis, stream=repo.stream, maxlen=2, metrics=metrics)
        removed = await sweeper.run_once()

        assert removed == 3
        assert await redis.xlen(repo.stream) == 2

    @pytest.mark.asyncio
    async def test_records_metrics(self, sweeper, redis, metrics):
        await _fill(redis, "test-requests", 1005)

        await sweeper.run_once()

        sample = metrics.registry.get_sample_value
        assert sample("stream_trimmed_total") == 5
        assert sample("stream_length") == 1000

    @pytest.mark.asyncio
    async def test_loop_runs_until_stopped(self, sweeper, redis):
        await _fill(redis, "test-requests", 1001)

        task = asyncio.create_task(sweeper.start())
        for _ in range(100):
            if await redis.xlen("test-requests") == 1000:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()
        await asyncio.wait_for(task, timeout=5)

        assert await redis.xlen("test-requests") == 1000
