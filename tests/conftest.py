"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator
from dataclasses import dataclass

import fakeredis
import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from quotestream.constants import DeliveryKind
from quotestream.exceptions import QuoteServiceError
from quotestream.observability.metrics import MetricsCollector
from quotestream.producer.gate import AdmissionGate
from quotestream.producer.publisher import StreamProducer
from quotestream.store.stream import StreamRepository
from quotestream.sweeper.main import RetentionSweeper
from quotestream.types.quote import FxInfo, Quote
from quotestream.worker.main import StreamWorker
from quotestream.worker.router import DispatchRouter

TEST_STREAM = "test-requests"
TEST_GROUP = "test-group"
TEST_CONSUMER = "worker-1"
TEST_DEAD_LETTER_STREAM = "test-dead-letter"


# ============================================================================
# Downstream port fakes
# ============================================================================


@dataclass
class FakeInstrument:
    """In-memory instrument satisfying the Instrument protocol."""

    stock_code: str
    price: str | None = None
    change_amount: str | None = None
    sign: str | None = None
    change_rate: str | None = None

    def apply_quote(self, quote: Quote) -> None:
        self.price = quote.price
        self.change_amount = quote.change_amount
        self.sign = quote.sign
        self.change_rate = quote.change_rate


class FakeQuotePort:
    def __init__(self):
        self.failing_codes: set[str] = set()
        self.calls: list[str] = []

    async def fetch_quote(self, stock_code: str) -> Quote:
        self.calls.append(stock_code)
        if stock_code in self.failing_codes:
            raise QuoteServiceError(f"quote service down for {stock_code}", status_code=503)
        return Quote(price="71500", change_amount="500", sign="2", change_rate="0.70")


class FakeInstrumentPort:
    def __init__(self, *codes: str):
        self.instruments = {code: FakeInstrument(stock_code=code) for code in codes}
        self.saved: list[str] = []

    async def load_instrument(self, stock_code: str) -> FakeInstrument | None:
        return self.instruments.get(stock_code)

    async def save_instrument(self, instrument: FakeInstrument) -> None:
        self.saved.append(instrument.stock_code)


class FakeFxInfoPort:
    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    async def fetch_fx_info(self, fx_type: str, fx_code: str) -> FxInfo:
        self.calls.append((fx_type, fx_code))
        return FxInfo(fx_type=fx_type, fx_code=fx_code, rate="1385.20")


class RecordingRouter(DispatchRouter):
    """Router that remembers every dispatch attempt and its delivery kind."""

    def __init__(self, metrics: MetricsCollector | None = None):
        super().__init__(metrics=metrics)
        self.deliveries: list[tuple[str, DeliveryKind]] = []

    async def dispatch(self, envelope, kind=DeliveryKind.NEW):
        self.deliveries.append((envelope.key, kind))
        await super().dispatch(envelope, kind)

    def kinds_for(self, key: str) -> list[DeliveryKind]:
        return [kind for k, kind in self.deliveries if k == key]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector bound to a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest_asyncio.fixture
async def redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis]:
    """In-process async Redis with decoded responses."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture
async def repo(redis: fakeredis.FakeAsyncRedis) -> StreamRepository:
    """Stream repository with its consumer group created."""
    repository = StreamRepository(redis, stream=TEST_STREAM, group=TEST_GROUP)
    await repository.ensure_group()
    return repository


@pytest.fixture
def quotes() -> FakeQuotePort:
    return FakeQuotePort()


@pytest.fixture
def instruments() -> FakeInstrumentPort:
    return FakeInstrumentPort("005930", "000660")


@pytest.fixture
def fx() -> FakeFxInfoPort:
    return FakeFxInfoPort()


@pytest.fixture
def router(
    quotes: FakeQuotePort,
    instruments: FakeInstrumentPort,
    fx: FakeFxInfoPort,
    metrics: MetricsCollector,
) -> RecordingRouter:
    """Router wired to the fake ports."""
    return RecordingRouter.with_ports(quotes, instruments, fx, metrics=metrics)


@pytest.fixture
def gate(redis: fakeredis.FakeAsyncRedis, metrics: MetricsCollector) -> AdmissionGate:
    return AdmissionGate(redis, ttl_seconds=30, key_prefix="dedup", metrics=metrics)


@pytest.fixture
def producer(
    redis: fakeredis.FakeAsyncRedis,
    gate: AdmissionGate,
    metrics: MetricsCollector,
) -> StreamProducer:
    return StreamProducer(redis, gate=gate, stream=TEST_STREAM, metrics=metrics)


def build_worker(redis, router, metrics, **overrides) -> StreamWorker:
    """Create a non-blocking worker on the test stream."""
    options = dict(
        stream=TEST_STREAM,
        group=TEST_GROUP,
        consumer=TEST_CONSUMER,
        read_count=20,
        read_block_ms=0,
        pending_batch_size=10,
        reclaim_min_idle_ms=0,
        dead_letter_stream=TEST_DEAD_LETTER_STREAM,
        interval_seconds=0.01,
        metrics=metrics,
    )
    options.update(overrides)
    return StreamWorker(redis, router, **options)


@pytest.fixture
def worker(
    redis: fakeredis.FakeAsyncRedis,
    repo: StreamRepository,
    router: RecordingRouter,
    metrics: MetricsCollector,
) -> StreamWorker:
    """Worker on the test stream; the group already exists via ``repo``."""
    return build_worker(redis, router, metrics)


@pytest.fixture
def worker_factory(
    redis: fakeredis.FakeAsyncRedis,
    repo: StreamRepository,
    router: RecordingRouter,
    metrics: MetricsCollector,
):
    """Build workers with overridden options."""
    def factory(**overrides) -> StreamWorker:
        return build_worker(redis, router, metrics, **overrides)
    return factory


@pytest.fixture
def sweeper(redis: fakeredis.FakeAsyncRedis, metrics: MetricsCollector) -> RetentionSweeper:
    return RetentionSweeper(
        redis,
        stream=TEST_STREAM,
        maxlen=1000,
        approximate=False,
        interval_seconds=0.01,
        metrics=metrics,
    )
