"""
Type definitions for the request pipeline.
Contains the envelope schema and the value types passed between components.
"""

from quotestream.types.envelope import (
    Envelope,
    FxEnvelope,
    StockEnvelope,
    envelope_from_fields,
    envelope_to_fields,
)
from quotestream.types.quote import FxInfo, Quote
from quotestream.types.stream import CycleReport, PendingEntry, StreamEntry

__all__ = [
    # Envelope types
    "Envelope",
    "StockEnvelope",
    "FxEnvelope",
    "envelope_to_fields",
    "envelope_from_fields",
    # Downstream values
    "Quote",
    "FxInfo",
    # Stream types
    "StreamEntry",
    "PendingEntry",
    "CycleReport",
]
