"""
Module: placement_kernel.models.invoice
Responsibility: ORM persistence for student invoices and refund requests.
Architecture position: Kernel > Models.

Invariants enforced:
    - Paying an invoice is the only path to a ledger credit; PaymentService
      refuses to pay an invoice twice.
    - refundable_amount = max(amount - retained_costs, 0), fixed at request time.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase, UUIDString
from placement_kernel.domain.dtos import InvoiceInfo, RefundRequestInfo


class InvoiceType(str, Enum):
    OPENING_BOOK = "opening_book"
    DEPOSIT = "deposit"
    BALANCE = "balance"
    OTHER = "other"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    REFUNDED = "refunded"


class RefundReason(str, Enum):
    UNIVERSITY_REJECTION = "university_rejection"
    STUDENT_WITHDRAWAL = "student_withdrawal"
    OTHER = "other"


class RefundStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Invoice(TimestampedBase):
    """An amount billed to a student."""

    __tablename__ = "invoices"

    __table_args__ = (
        CheckConstraint(
            "type IN ('opening_book', 'deposit', 'balance', 'other')",
            name="ck_invoices_valid_type",
        ),
        CheckConstraint(
            "status IN ('pending', 'paid', 'overdue', 'refunded')",
            name="ck_invoices_valid_status",
        ),
        Index("idx_invoices_student", "student_id"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.PENDING.value
    )
    due_date: Mapped[datetime] = mapped_column(nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self) -> InvoiceInfo:
        return InvoiceInfo(
            id=self.id,
            student_id=self.student_id,
            type=self.type,
            amount=self.amount,
            currency=self.currency,
            status=self.status,
            due_date=self.due_date,
            paid_at=self.paid_at,
            description=self.description,
            created_by=self.created_by,
        )


class RefundRequest(TimestampedBase):
    """A request to return money to a student, pending admin decision."""

    __tablename__ = "refund_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_refund_requests_valid_status",
        ),
        Index("idx_refund_requests_student", "student_id"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("invoices.id"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    retained_costs: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    refundable_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RefundStatus.PENDING.value
    )
    requested_by: Mapped[str] = mapped_column(String(100), nullable=False)
    processed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> RefundRequestInfo:
        return RefundRequestInfo(
            id=self.id,
            student_id=self.student_id,
            invoice_id=self.invoice_id,
            amount=self.amount,
            reason=self.reason,
            retained_costs=self.retained_costs,
            refundable_amount=self.refundable_amount,
            status=self.status,
            requested_by=self.requested_by,
            requested_at=self.created_at,
            processed_by=self.processed_by,
            processed_at=self.processed_at,
        )
