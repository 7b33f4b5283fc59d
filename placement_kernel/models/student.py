"""
Module: placement_kernel.models.student
Responsibility: ORM persistence for enrolled students: pipeline status,
    financial buckets, profile data and the field-level lock state.
Architecture position: Kernel > Models.

Invariants enforced:
    - current_step always equals STUDENT_STEPS[status]; StudentService is the
      only writer of either column.
    - When is_profile_locked is true, only fields in
      unlocked_fields | ALWAYS_WRITABLE may change (filtered in StudentService).
    - Students are created only by lead conversion and are never deleted.

Audit relevance:
    locked_at/locked_by record who froze the profile for admin review.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase, UUIDString
from placement_kernel.domain.dtos import StudentInfo
from placement_kernel.domain.transitions import StudentStatus

# Editable personal profile data.  These are the fields the lock protects.
PROFILE_FIELDS: tuple[str, ...] = (
    "name",
    "email",
    "phone",
    "nationality",
    "date_of_birth",
    "passport_number",
    "passport_expiry",
    "gender",
    "place_of_birth",
    "current_address",
    "permanent_address",
    "father_name",
    "father_occupation",
    "mother_name",
    "mother_occupation",
    "high_school_name",
    "high_school_grade",
    "previous_degree",
    "previous_institution",
    "previous_gpa",
    "health_conditions",
)

# Writable regardless of lock state.
ALWAYS_WRITABLE: frozenset[str] = frozenset({"status", "offers_unlocked"})

# Everything update_student accepts at all.  Financial buckets, lock state
# and current_step have dedicated operations.
UPDATABLE_FIELDS: frozenset[str] = frozenset(PROFILE_FIELDS) | ALWAYS_WRITABLE | {
    "assigned_staff_id",
}


class Student(TimestampedBase):
    """An enrolled client moving through the placement pipeline."""

    __tablename__ = "students"

    __table_args__ = (
        Index("idx_students_status", "status"),
        Index("idx_students_staff", "assigned_staff_id"),
    )

    lead_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("leads.id"), nullable=True, unique=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=StudentStatus.PENDING_CONTRACT.value
    )
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    assigned_staff_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("staff.id"), nullable=False
    )

    deposit_paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    balance_paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_owed: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    scholarship_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Lock state
    is_profile_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    locked_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # Stored as a sorted JSON list; always reassigned, never mutated in place.
    unlocked_fields: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    offers_unlocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Profile
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[str | None] = mapped_column(String(20), nullable=True)
    passport_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    passport_expiry: Mapped[datetime | None] = mapped_column(nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    place_of_birth: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    permanent_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    father_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    father_occupation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mother_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mother_occupation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    high_school_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    high_school_grade: Mapped[str | None] = mapped_column(String(50), nullable=True)
    previous_degree: Mapped[str | None] = mapped_column(String(255), nullable=True)
    previous_institution: Mapped[str | None] = mapped_column(String(255), nullable=True)
    previous_gpa: Mapped[str | None] = mapped_column(String(20), nullable=True)
    health_conditions: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def unlocked_field_set(self) -> frozenset[str]:
        return frozenset(self.unlocked_fields or ())

    def writable_fields(self) -> frozenset[str]:
        """Fields an update may touch in the current lock state."""
        if not self.is_profile_locked:
            return UPDATABLE_FIELDS
        return (self.unlocked_field_set | ALWAYS_WRITABLE) & UPDATABLE_FIELDS

    def to_dto(self) -> StudentInfo:
        return StudentInfo(
            id=self.id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            status=self.status,
            current_step=self.current_step,
            assigned_staff_id=self.assigned_staff_id,
            lead_id=self.lead_id,
            deposit_paid=self.deposit_paid,
            balance_paid=self.balance_paid,
            total_owed=self.total_owed,
            scholarship_type=self.scholarship_type,
            is_profile_locked=self.is_profile_locked,
            locked_at=self.locked_at,
            locked_by=self.locked_by,
            unlocked_fields=self.unlocked_field_set,
            offers_unlocked=self.offers_unlocked,
            created_at=self.created_at,
            profile={name: getattr(self, name) for name in PROFILE_FIELDS},
        )

    def __repr__(self) -> str:
        return f"<Student {self.email} [{self.status}] step={self.current_step}>"
