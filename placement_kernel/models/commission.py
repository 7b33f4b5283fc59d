"""
Module: placement_kernel.models.commission
Responsibility: ORM persistence for staff commissions, including negative
    clawback adjustment records.
Architecture position: Kernel > Models.

Invariants enforced:
    - At most one triggering commission (adjusts_commission_id IS NULL) per
      (staff_id, student_id, contract_id); checked by CommissionService
      inside the engine lock.
    - A clawback adjustment carries amount = -original.amount and points at
      the clawed-back record through adjusts_commission_id.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import Base, UUIDString
from placement_kernel.domain.dtos import CommissionInfo
from placement_kernel.domain.transitions import CommissionStatus


class Commission(Base):
    """A staff compensation record."""

    __tablename__ = "commissions"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'paid', 'voided', 'clawback')",
            name="ck_commissions_valid_status",
        ),
        Index("idx_commissions_staff", "staff_id"),
        Index("idx_commissions_trigger", "staff_id", "student_id", "contract_id"),
    )

    staff_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("staff.id"), nullable=False)
    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("contracts.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CommissionStatus.PENDING.value
    )

    triggered_at: Mapped[datetime] = mapped_column(nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    clawback_at: Mapped[datetime | None] = mapped_column(nullable=True)
    clawback_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    adjusts_commission_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("commissions.id"), nullable=True
    )

    def to_dto(self) -> CommissionInfo:
        return CommissionInfo(
            id=self.id,
            staff_id=self.staff_id,
            student_id=self.student_id,
            contract_id=self.contract_id,
            amount=self.amount,
            status=self.status,
            triggered_at=self.triggered_at,
            paid_at=self.paid_at,
            voided_at=self.voided_at,
            void_reason=self.void_reason,
            clawback_at=self.clawback_at,
            clawback_reason=self.clawback_reason,
            adjusts_commission_id=self.adjusts_commission_id,
        )
