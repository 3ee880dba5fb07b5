"""
Downstream ports used by the dispatch router.

The worker only depends on these protocols; concrete adapters live in
``quotestream.adapters`` and ``quotestream.db``. Implementations must be
idempotent since an envelope may be dispatched more than once.
"""

from typing import Protocol

from quotestream.types.quote import FxInfo, Quote


class Instrument(Protocol):
    """A persisted instrument whose price can be refreshed."""

    stock_code: str

    def apply_quote(self, quote: Quote) -> None: ...


class QuotePort(Protocol):
    async def fetch_quote(self, stock_code: str) -> Quote: ...


class InstrumentPort(Protocol):
    async def load_instrument(self, stock_code: str) -> Instrument | None: ...

    async def save_instrument(self, instrument: Instrument) -> None: ...


class FxInfoPort(Protocol):
    async def fetch_fx_info(self, fx_type: str, fx_code: str) -> FxInfo: ...
