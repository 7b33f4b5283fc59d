"""
Module: placement_kernel.models.fix_request
Responsibility: ORM persistence for student-initiated profile correction
    requests.  An approved request is applied through the normal
    update_student path, so profile locks still filter it.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase, UUIDString
from placement_kernel.domain.dtos import FixRequestInfo


class FixRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FixRequest(TimestampedBase):
    __tablename__ = "fix_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_fix_requests_valid_status",
        ),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    field_name: Mapped[str] = mapped_column(String(50), nullable=False)
    current_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_value: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FixRequestStatus.PENDING.value
    )
    processed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> FixRequestInfo:
        return FixRequestInfo(
            id=self.id,
            student_id=self.student_id,
            field_name=self.field_name,
            current_value=self.current_value,
            requested_value=self.requested_value,
            reason=self.reason,
            status=self.status,
            requested_at=self.created_at,
            processed_by=self.processed_by,
            processed_at=self.processed_at,
        )
