"""
Sweeper module.
Contains the retention sweeper that caps the request stream.
"""

from quotestream.sweeper.main import RetentionSweeper, run

__all__ = ["RetentionSweeper", "run"]
