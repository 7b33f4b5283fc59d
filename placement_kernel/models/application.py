"""
Module: placement_kernel.models.application
Responsibility: ORM persistence for universities and the per-student
    university applications.
Architecture position: Kernel > Models.

Invariants enforced:
    - batch is 1 or 2 (check constraint); the 2+3 caps and one-application-
      per-university rule live in domain/batch_strategy.py.
    - (student_id, university_id) is unique.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import Base, TimestampedBase, UUIDString
from placement_kernel.domain.dtos import ApplicationInfo, UniversityInfo
from placement_kernel.domain.transitions import ApplicationStatus


class University(Base):
    """Reference data: a university the agency places students with."""

    __tablename__ = "universities"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_partner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> UniversityInfo:
        return UniversityInfo(
            id=self.id,
            name=self.name,
            country=self.country,
            city=self.city,
            is_partner=self.is_partner,
            is_active=self.is_active,
        )


class UniversityApplication(TimestampedBase):
    """One student's application to one university."""

    __tablename__ = "university_applications"

    __table_args__ = (
        CheckConstraint("batch IN (1, 2)", name="ck_applications_valid_batch"),
        UniqueConstraint("student_id", "university_id", name="uq_application_student_university"),
        Index("idx_applications_student", "student_id"),
        Index("idx_applications_status", "status"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    university_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("universities.id"), nullable=False
    )
    program: Mapped[str] = mapped_column(String(255), nullable=False)
    batch: Mapped[int] = mapped_column(Integer, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=ApplicationStatus.DRAFT.value
    )

    submitted_to_admin_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    submitted_to_uni_at: Mapped[datetime | None] = mapped_column(nullable=True)
    response_at: Mapped[datetime | None] = mapped_column(nullable=True)
    returned_at: Mapped[datetime | None] = mapped_column(nullable=True)
    return_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    returned_fields: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> ApplicationInfo:
        return ApplicationInfo(
            id=self.id,
            student_id=self.student_id,
            university_id=self.university_id,
            program=self.program,
            batch=self.batch,
            priority=self.priority,
            status=self.status,
            created_at=self.created_at,
            submitted_to_admin_at=self.submitted_to_admin_at,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            submitted_to_uni_at=self.submitted_to_uni_at,
            response_at=self.response_at,
            returned_at=self.returned_at,
            return_reason=self.return_reason,
            returned_fields=tuple(self.returned_fields or ()),
            admin_notes=self.admin_notes,
        )
