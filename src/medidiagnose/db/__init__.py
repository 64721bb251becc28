"""Database package - session management and declarative base."""
from .session import Base, DatabaseManager, DbSession, get_db

__all__ = ["Base", "DatabaseManager", "DbSession", "get_db"]
