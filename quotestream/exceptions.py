"""
Exception hierarchy for the request pipeline.

Dispatch failures are never fatal: the worker logs them and leaves the
entry pending so the reclaim pass retries it.
"""


class QuoteStreamError(Exception):
    """Base class for all pipeline errors."""


class MalformedEnvelopeError(QuoteStreamError, ValueError):
    """A stream entry does not map onto any envelope variant."""


class DispatchError(QuoteStreamError):
    """An envelope could not be handled by its downstream port."""


class UnroutableEnvelopeError(DispatchError):
    """No handler is registered for the envelope type."""


class InstrumentNotFoundError(DispatchError):
    """The stock code has no persisted instrument."""

    def __init__(self, stock_code: str):
        super().__init__(f"Instrument not found: {stock_code}")
        self.stock_code = stock_code


class QuoteServiceError(QuoteStreamError):
    """The upstream quote service returned an error response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
