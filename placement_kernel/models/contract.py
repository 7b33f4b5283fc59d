"""
Module: placement_kernel.models.contract
Responsibility: ORM persistence for enrollment service contracts.
Architecture position: Kernel > Models.

Invariants enforced:
    - A signed contract is frozen.  The signing flush itself may set status,
      signed_at and signature_data; any later change raises
      ImmutabilityViolationError (db/immutability.py).
    - expires_at = created_at + CONTRACT_VALIDITY.
    - pricing_version snapshots the settings version at creation.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase, UUIDString
from placement_kernel.domain.dtos import ContractInfo

CONTRACT_VALIDITY = timedelta(days=7)


class ContractStatus(str, Enum):
    DRAFT = "draft"
    PENDING_SIGNATURE = "pending_signature"
    SIGNED = "signed"
    EXPIRED = "expired"


SIGNABLE_CONTRACT_STATUSES: frozenset[str] = frozenset({
    ContractStatus.DRAFT.value,
    ContractStatus.PENDING_SIGNATURE.value,
})


class Contract(TimestampedBase):
    """Service agreement between the agency and a student."""

    __tablename__ = "contracts"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending_signature', 'signed', 'expired')",
            name="ck_contracts_valid_status",
        ),
        Index("idx_contracts_student", "student_id"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("staff.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContractStatus.PENDING_SIGNATURE.value
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(nullable=False)
    non_refundable_amount: Mapped[Decimal] = mapped_column(nullable=False)
    pricing_version: Mapped[int] = mapped_column(Integer, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    signed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    signature_data: Mapped[str | None] = mapped_column(Text, nullable=True)

    def is_expired_at(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dto(self) -> ContractInfo:
        return ContractInfo(
            id=self.id,
            student_id=self.student_id,
            staff_id=self.staff_id,
            status=self.status,
            amount=self.amount,
            deposit_amount=self.deposit_amount,
            non_refundable_amount=self.non_refundable_amount,
            pricing_version=self.pricing_version,
            created_at=self.created_at,
            expires_at=self.expires_at,
            signed_at=self.signed_at,
            signature_data=self.signature_data,
        )
