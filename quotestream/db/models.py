"""
SQLAlchemy database models.
Defines the instruments table refreshed by stock envelopes.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from quotestream.types.quote import Quote


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Instrument(Base):
    """
    A listed instrument and its latest known price.

    Price fields are stored as the quote service formats them. They are
    only ever overwritten as a whole by apply_quote(), so applying the same
    quote twice leaves the row unchanged apart from updated_at.
    """

    __tablename__ = "instruments"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    stock_code: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Latest quote
    price: Mapped[str | None] = mapped_column(String(32), nullable=True)
    change_amount: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sign: Mapped[str | None] = mapped_column(String(8), nullable=True)
    change_rate: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def apply_quote(self, quote: Quote) -> None:
        """Overwrite the price fields with a fresh quote."""
        self.price = quote.price
        self.change_amount = quote.change_amount
        self.sign = quote.sign
        self.change_rate = quote.change_rate
        self.updated_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"Instrument(stock_code={self.stock_code}, price={self.price})"
