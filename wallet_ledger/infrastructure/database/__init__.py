"""Database infrastructure helpers (engine, sessions, error translation)."""

from .base import Base
from .session import get_session_factory, init_db

__all__ = ["Base", "get_session_factory", "init_db"]
