"""Database layer - engine, base classes, types."""

from recurring_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from recurring_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from recurring_kernel.db.types import LongText, Money, ShortCode, round_money

__all__ = [
    "build_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "ShortCode",
    "LongText",
    "round_money",
]
