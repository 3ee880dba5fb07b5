"""
Database module.
Contains the database connection, the instrument model and its repository.
"""

from quotestream.db.connection import (
    close_db,
    get_engine,
    get_session_factory,
    init_db,
)
from quotestream.db.models import Base, Instrument

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
    "Instrument",
    "Base",
]
