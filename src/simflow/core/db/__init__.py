"""Database utilities - engine and session."""

from src.simflow.core.db.engine import dispose_engine, get_engine, sync_database_url
from src.simflow.core.db.session import create_session_factory, get_session

__all__ = [
    # Engine
    "dispose_engine",
    "get_engine",
    "sync_database_url",
    # Session
    "create_session_factory",
    "get_session",
]
