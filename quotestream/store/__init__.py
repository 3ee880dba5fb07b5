"""
Store module.
Contains the Redis connection and the stream repository.
"""

from quotestream.store.connection import (
    close_redis,
    create_redis,
    init_redis,
)
from quotestream.store.stream import StreamRepository

__all__ = [
    "create_redis",
    "init_redis",
    "close_redis",
    "StreamRepository",
]
