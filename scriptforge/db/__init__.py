"""Database engine, session and metadata helpers."""

from .session import Base, get_engine, get_session, get_sessionmaker, init_db, ping_database

__all__ = [
    "Base",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_db",
    "ping_database",
]
