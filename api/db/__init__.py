"""Session store database helpers (engine, sessions, schema)."""

from .session import Base, get_engine, get_session
from .create_tables import create_all

__all__ = ["Base", "get_engine", "get_session", "create_all"]
