"""Declarative base and engine construction."""

from taskbridge.db.base import Base, TimestampMixin, UUIDMixin
from taskbridge.db.engine import build_engine, build_session_factory, session_scope

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "build_engine",
    "build_session_factory",
    "session_scope",
]
