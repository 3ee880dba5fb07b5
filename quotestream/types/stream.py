"""
Stream-related type definitions for internal use.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StreamEntry:
    """A single entry read from the stream."""

    entry_id: str
    fields: dict[str, str]


@dataclass(frozen=True)
class PendingEntry:
    """
    An entry delivered to the consumer group but not yet acknowledged.
    Mirrors one row of the extended XPENDING reply.
    """

    entry_id: str
    consumer: str
    idle_ms: int
    delivery_count: int


@dataclass
class CycleReport:
    """
    Outcome of one delivery + reclaim cycle.
    Used by the worker loop for logging and by tests for assertions.
    """

    delivered: int = 0
    acknowledged: int = 0
    failed: int = 0
    reclaimed: int = 0
    dead_lettered: int = 0
    failed_ids: list[str] = field(default_factory=list)

    @property
    def idle(self) -> bool:
        """True if the cycle found nothing to do."""
        return self.delivered == 0 and self.reclaimed == 0 and self.dead_lettered == 0
