"""
Module: placement_kernel.models.appointment
Responsibility: ORM persistence for student/staff appointments.
Architecture position: Kernel > Models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase, UUIDString
from placement_kernel.domain.dtos import AppointmentInfo


class AppointmentType(str, Enum):
    CONSULTATION = "consultation"
    DOCUMENT_SUBMISSION = "document_submission"
    INTERVIEW_PREP = "interview_prep"
    OTHER = "other"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Appointment(TimestampedBase):
    __tablename__ = "appointments"

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled', 'no_show')",
            name="ck_appointments_valid_status",
        ),
        CheckConstraint("duration > 0", name="ck_appointments_positive_duration"),
        Index("idx_appointments_staff", "staff_id"),
        Index("idx_appointments_student", "student_id"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    staff_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("staff.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_time: Mapped[datetime] = mapped_column(nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=AppointmentType.CONSULTATION.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value
    )
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def to_dto(self) -> AppointmentInfo:
        return AppointmentInfo(
            id=self.id,
            student_id=self.student_id,
            staff_id=self.staff_id,
            title=self.title,
            date_time=self.date_time,
            duration=self.duration,
            type=self.type,
            status=self.status,
            description=self.description,
            location=self.location,
        )
