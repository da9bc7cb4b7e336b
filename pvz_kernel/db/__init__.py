"""Database layer - engine, base classes and the transaction manager."""

from pvz_kernel.db.base import UUID, Base, UUIDString
from pvz_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
)
from pvz_kernel.db.transaction import TransactionHandle, TransactionManager

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "create_tables",
    "Base",
    "UUIDString",
    "UUID",
    "TransactionHandle",
    "TransactionManager",
]
