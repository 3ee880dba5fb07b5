"""
Worker module.
Contains the consumer-group worker and the dispatch router.
"""

from quotestream.worker.main import StreamWorker, run
from quotestream.worker.router import DispatchRouter

__all__ = ["StreamWorker", "DispatchRouter", "run"]
