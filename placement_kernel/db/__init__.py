"""Database layer - engine construction, declarative base, column types, immutability."""

from placement_kernel.db.base import Base, TimestampedBase, UUIDString
from placement_kernel.db.engine import build_engine, create_tables
from placement_kernel.db.types import UTCDateTime, to_money, validate_currency

__all__ = [
    "build_engine",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UTCDateTime",
    "to_money",
    "validate_currency",
]
