"""
Module: placement_kernel.models.ledger
Responsibility: ORM persistence for the append-only financial ledger.
Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only: UPDATE and DELETE raise ImmutabilityViolationError
      (db/immutability.py).  Corrections are new entries with is_reversal=True.
    - seq is allocated from the "ledger" counter and fixes insertion order;
      created_at alone cannot, since many entries share one clock instant.
    - amount is always positive; direction comes from type (credit/debit).
    - A student's balance is derived from entries (credits - debits); there
      is no stored balance column.

Audit relevance:
    Every invoice payment produces exactly one credit/payment entry and every
    approved refund exactly one debit/refund reversal.  The ledger is the
    source of truth for money received.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import Base, UUIDString
from placement_kernel.domain.dtos import LedgerEntryInfo


class EntryType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class EntryCategory(str, Enum):
    PAYMENT = "payment"
    REFUND = "refund"
    FEE = "fee"


class LedgerEntry(Base):
    """One immutable money movement."""

    __tablename__ = "ledger_entries"

    __table_args__ = (
        CheckConstraint("type IN ('credit', 'debit')", name="ck_ledger_valid_type"),
        CheckConstraint(
            "category IN ('payment', 'refund', 'fee')",
            name="ck_ledger_valid_category",
        ),
        CheckConstraint("amount >= 0", name="ck_ledger_non_negative_amount"),
        Index("idx_ledger_student", "student_id"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    student_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    invoice_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    refund_request_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    is_reversal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False, default="system")
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == EntryType.CREDIT.value else -self.amount

    def to_dto(self) -> LedgerEntryInfo:
        return LedgerEntryInfo(
            id=self.id,
            seq=self.seq,
            type=self.type,
            category=self.category,
            amount=self.amount,
            description=self.description,
            student_id=self.student_id,
            invoice_id=self.invoice_id,
            is_reversal=self.is_reversal,
            created_by=self.created_by,
            created_at=self.created_at,
        )
