"""Database layer - engine, base classes, and immutability guards."""

from stock_ledger.db.base import UUID, Base, TrackedBase, UUIDString
from stock_ledger.db.engine import (
    create_tables,
    get_engine,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "create_tables",
    "init_engine_from_url",
    "session_scope",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
