"""
Module: placement_kernel.db.base
Responsibility: Declarative base for every ORM model: string-stored UUID
    primary keys, the column type map, and the created/updated stamps.
Architecture position: Kernel > DB.  The lowest import target in the kernel;
    MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - Every row has a uuid4 primary key stored as String(36), so ids round
      trip identically on SQLite and server databases.
    - Decimal columns are Numeric(38, 9); money never touches float.
    - datetime columns are UTCDateTime and always read back timezone-aware.

Audit relevance:
    created_at/updated_at are stamped by services from the injected Clock,
    never by database defaults, so idle detection and audit timestamps agree
    on what "now" means.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from placement_kernel.db.types import UTCDateTime


class UUIDString(TypeDecorator):
    """UUID stored as its 36-character string; loads back as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TimestampedBase(Base):
    """
    Mutable rows: stamped on creation and on every service-side update.

    Append-only models (ledger entries, audit records) inherit from Base
    and carry a single timestamp of their own.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
