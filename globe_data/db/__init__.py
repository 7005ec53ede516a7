"""
Database package initializer exposing the declarative base and
engine/session management helpers.
"""

from .base import Base, IntPkMixin, SmallIntPkMixin
from .session import (
    build_engine,
    build_session_maker,
    dispose_engine,
    get_async_session,
    get_engine,
    get_session_maker,
    session_scope,
)

__all__ = [
    "Base",
    "IntPkMixin",
    "SmallIntPkMixin",
    "build_engine",
    "build_session_maker",
    "dispose_engine",
    "get_async_session",
    "get_engine",
    "get_session_maker",
    "session_scope",
]
