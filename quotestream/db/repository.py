"""
Instrument repository implementing the instrument port over SQLAlchemy.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quotestream.db.models import Instrument

logger = logging.getLogger(__name__)


class SqlInstrumentPort:
    """
    Loads and saves instruments, one short session per call.

    Sessions are created with ``expire_on_commit=False`` so a loaded
    instrument stays usable after its session closes; save_instrument()
    merges it back and commits a single UPDATE.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize the port with a session factory.

        Args:
            session_factory: Factory for async database sessions.
        """
        self._session_factory = session_factory

    async def load_instrument(self, stock_code: str) -> Instrument | None:
        """
        Get an instrument by its stock code.

        Args:
            stock_code: The instrument code.

        Returns:
            The Instrument or None if not found.
        """
        async with self._session_factory() as session:
            stmt = select(Instrument).where(Instrument.stock_code == stock_code)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def save_instrument(self, instrument: Instrument) -> None:
        """
        Persist the instrument's current state.

        Args:
            instrument: An instrument previously returned by load_instrument().
        """
        async with self._session_factory() as session:
            try:
                await session.merge(instrument)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        logger.debug(
            "Saved instrument",
            extra={"stock_code": instrument.stock_code, "price": instrument.price},
        )
