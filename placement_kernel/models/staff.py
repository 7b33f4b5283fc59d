"""
Module: placement_kernel.models.staff
Responsibility: ORM persistence for agency staff members and admins, including
    their commission buckets.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - role is one of 'staff' or 'admin'.
    - Commission buckets only change through CommissionService; the
      pending bucket may go negative while a clawback adjustment is open.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase
from placement_kernel.domain.dtos import StaffInfo


class StaffRole(str, Enum):
    STAFF = "staff"
    ADMIN = "admin"


class Staff(TimestampedBase):
    """Agency employee; owns leads, students and commissions."""

    __tablename__ = "staff"

    __table_args__ = (
        CheckConstraint("role IN ('staff', 'admin')", name="ck_staff_role"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=StaffRole.STAFF.value)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)

    pending_commission: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    paid_commission: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_commission: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> StaffInfo:
        return StaffInfo(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            department=self.department,
            pending_commission=self.pending_commission,
            paid_commission=self.paid_commission,
            total_commission=self.total_commission,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<Staff {self.email} ({self.role})>"
