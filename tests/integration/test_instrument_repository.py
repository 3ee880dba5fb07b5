"""
Integration tests for the SQLAlchemy instrument port.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quotestream.db.models import Base, Instrument
from quotestream.db.repository import SqlInstrumentPort
from quotestream.types.quote import Quote


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Session factory over a throwaway SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'instruments.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        session.add(Instrument(stock_code="005930", name="Samsung Electronics"))
        await session.commit()

    yield factory

    await engine.dispose()


class TestSqlInstrumentPort:
    @pytest.mark.asyncio
    async def test_load_missing(self, session_factory):
        port = SqlInstrumentPort(session_factory)

        assert await port.load_instrument("999999") is None

    @pytest.mark.asyncio
    async def test_apply_quote_and_save(self, session_factory):
        port = SqlInstrumentPort(session_factory)

        instrument = await port.load_instrument("005930")
        assert instrument is not None
        assert instrument.price is None

        instrument.apply_quote(
            Quote(price="71500", change_amount="500", sign="2", change_rate="0.70")
        )
        await port.save_instrument(instrument)

        async with session_factory() as session:
            result = await session.execute(
                select(Instrument).where(Instrument.stock_code == "005930")
            )
            stored = result.scalar_one()

        assert stored.price == "71500"
        assert stored.change_amount == "500"
        assert stored.sign == "2"
        assert stored.change_rate == "0.70"

    @pytest.mark.asyncio
    async def test_applying_same_quote_twice_is_stable(self, session_factory):
        port = SqlInstrumentPort(session_factory)
        quote = Quote(price="71500", change_amount="500", sign="2", change_rate="0.70")

        for _ in range(2):
            instrument = await port.load_instrument("005930")
            instrument.apply_quote(quote)
            await port.save_instrument(instrument)

        instrument = await port.load_instrument("005930")
        assert instrument.price == "71500"
