"""
Stream repository for Redis stream operations.
Implements the store primitives used by the producer, worker and sweeper.
"""

import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import ResponseError

from quotestream.constants import STREAM_MAX_ID, STREAM_MIN_ID, STREAM_NEW_ENTRIES
from quotestream.types.stream import PendingEntry, StreamEntry

logger = logging.getLogger(__name__)


class StreamRepository:
    """
    Repository for one stream and its consumer group.

    Every mutation goes through a single atomic Redis command:
    - XADD for appends
    - XREADGROUP / XCLAIM for delivery and ownership transfer
    - XACK for acknowledgment
    - XTRIM for retention
    """

    def __init__(self, redis: aioredis.Redis, stream: str, group: str):
        """
        Initialize the repository.

        Args:
            redis: The async Redis client.
            stream: Stream key.
            group: Consumer group name.
        """
        self._redis = redis
        self.stream = stream
        self.group = group

    async def ensure_group(self, start_id: str = "0") -> bool:
        """
        Create the consumer group, creating the stream if needed.

        Args:
            start_id: First id the group delivers when newly created.

        Returns:
            True if the group was created, False if it already existed.
        """
        try:
            await self._redis.xgroup_create(
                self.stream, self.group, id=start_id, mkstream=True
            )
        except ResponseError as e:
            if "BUSYGROUP" in str(e):
                return False
            raise

        logger.info(
            "Created consumer group",
            extra={"stream": self.stream, "group": self.group, "start_id": start_id},
        )
        return True

    async def append(self, fields: dict[str, str], stream: str | None = None) -> str:
        """
        Append an entry to the tail of the stream.

        Args:
            fields: Flat field map to store.
            stream: Optional other stream key (e.g. a dead-letter stream).

        Returns:
            The id assigned to the new entry.
        """
        return await self._redis.xadd(stream or self.stream, fields)

    async def read_new(
        self,
        consumer: str,
        count: int,
        block_ms: int | None = None,
    ) -> list[StreamEntry]:
        """
        Read entries never delivered to this group.

        Args:
            consumer: Consumer identity within the group.
            count: Maximum number of entries.
            block_ms: Milliseconds to wait for entries; None or 0 returns
                immediately.

        Returns:
            Entries in stream order.
        """
        response = await self._redis.xreadgroup(
            groupname=self.group,
            consumername=consumer,
            streams={self.stream: STREAM_NEW_ENTRIES},
            count=count,
            block=block_ms or None,
        )
        return _entries_from_read(response)

    async def list_pending(
        self,
        count: int,
        consumer: str | None = None,
    ) -> list[PendingEntry]:
        """
        List pending entries of the group over the whole id range.

        Args:
            count: Maximum number of entries.
            consumer: Restrict to one consumer identity.

        Returns:
            Pending entries ordered by id.
        """
        rows = await self._redis.xpending_range(
            self.stream,
            self.group,
            min=STREAM_MIN_ID,
            max=STREAM_MAX_ID,
            count=count,
            consumername=consumer,
        )
        return [
            PendingEntry(
                entry_id=row["message_id"],
                consumer=row["consumer"],
                idle_ms=int(row["time_since_delivered"]),
                delivery_count=int(row["times_delivered"]),
            )
            for row in rows
        ]

    async def claim(
        self,
        consumer: str,
        entry_id: str,
        min_idle_ms: int = 0,
    ) -> StreamEntry | None:
        """
        Transfer ownership of a pending entry to a consumer.

        Args:
            consumer: New owner.
            entry_id: Pending entry id.
            min_idle_ms: Only claim if idle for at least this long.

        Returns:
            The claimed entry, or None if it was not claimable (acknowledged,
            trimmed away, or not idle long enough).
        """
        claimed = await self._redis.xclaim(
            self.stream,
            self.group,
            consumer,
            min_idle_ms,
            [entry_id],
        )
        for claimed_id, fields in claimed:
            if fields is not None:
                return StreamEntry(entry_id=claimed_id, fields=dict(fields))
        return None

    async def ack(self, entry_id: str) -> int:
        """
        Acknowledge an entry, removing it from the group's pending set.

        Returns:
            Number of entries acknowledged (0 if it was not pending).
        """
        return await self._redis.xack(self.stream, self.group, entry_id)

    async def get_entry(self, entry_id: str) -> StreamEntry | None:
        """Fetch a single entry by id."""
        rows = await self._redis.xrange(self.stream, min=entry_id, max=entry_id, count=1)
        for row_id, fields in rows:
            return StreamEntry(entry_id=row_id, fields=dict(fields))
        return None

    async def trim(self, maxlen: int, approximate: bool = False) -> int:
        """
        Cap the stream length, discarding the oldest entries.

        Args:
            maxlen: Number of most recent entries to keep.
            approximate: Let Redis trim only whole internal nodes.

        Returns:
            Number of entries removed.
        """
        return await self._redis.xtrim(self.stream, maxlen=maxlen, approximate=approximate)

    async def length(self) -> int:
        """Get the number of entries in the stream."""
        return await self._redis.xlen(self.stream)


def _entries_from_read(response: Any) -> list[StreamEntry]:
    """Flatten an XREADGROUP reply (RESP2 list or RESP3 map) into entries."""
    if not response:
        return []

    if isinstance(response, dict):
        batches = response.values()
    else:
        batches = [messages for _stream, messages in response]

    entries = []
    for messages in batches:
        for entry_id, fields in messages:
            if fields is None:
                continue
            entries.append(StreamEntry(entry_id=entry_id, fields=dict(fields)))
    return entries
