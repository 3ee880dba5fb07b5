"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class EnvelopeType(StrEnum):
    """
    Discriminator for work items on the request stream.

    Each type maps to exactly one downstream handler in the dispatch router.
    """

    STOCK = "stock"
    FX = "fx"


class DeliveryKind(StrEnum):
    """How an entry reached the worker in the current cycle."""

    NEW = "new"
    RETRY = "retry"


# Admission domains
DEDUP_DOMAIN_STOCK = "stock"

# Wire field names of an envelope entry
FIELD_TYPE = "type"
FIELD_STOCK_CODE = "stockCode"
FIELD_FX_TYPE = "fxType"
FIELD_FX_CODE = "fxCode"

# Extra fields attached to dead-lettered entries
FIELD_SOURCE_ID = "sourceId"
FIELD_DELIVERY_COUNT = "deliveryCount"

# Stream id range bounds
STREAM_MIN_ID = "-"
STREAM_MAX_ID = "+"
STREAM_NEW_ENTRIES = ">"

# Metrics names
METRIC_ENVELOPES_ADMITTED = "envelopes_admitted_total"
METRIC_ENVELOPES_PUBLISHED = "envelopes_published_total"
METRIC_DELIVERIES = "deliveries_total"
METRIC_DISPATCH_DURATION = "dispatch_duration_seconds"
METRIC_PENDING_RECLAIMED = "pending_reclaimed_total"
METRIC_DEAD_LETTERED = "dead_lettered_total"
METRIC_STREAM_TRIMMED = "stream_trimmed_total"
METRIC_STREAM_LENGTH = "stream_length"

# Trace span names
SPAN_DISPATCH_ENVELOPE = "dispatch_envelope"
SPAN_CONSUME_CYCLE = "consume_cycle"
