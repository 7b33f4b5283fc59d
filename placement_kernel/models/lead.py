"""
Module: placement_kernel.models.lead
Responsibility: ORM persistence for inquiries (leads) before they become
    enrolled students.
Architecture position: Kernel > Models.

Invariants enforced:
    - status values are limited to the LeadStatus vocabulary (check constraint);
      transition legality is enforced by LeadService against LEAD_TRANSITIONS.
    - converted_to_student_id is set exactly when status is 'converted'.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase, UUIDString
from placement_kernel.domain.dtos import LeadInfo
from placement_kernel.domain.transitions import LeadStatus


class Lead(TimestampedBase):
    """A prospective student inquiry."""

    __tablename__ = "leads"

    __table_args__ = (
        CheckConstraint(
            "status IN ('new', 'hot', 'cold', 'converted', 'lost')",
            name="ck_leads_valid_status",
        ),
        Index("idx_leads_status", "status"),
        Index("idx_leads_assigned_to", "assigned_to"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=LeadStatus.NEW.value)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="website")

    assigned_to: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("staff.id"), nullable=True
    )

    last_contact_at: Mapped[datetime | None] = mapped_column(nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    converted_to_student_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    study_goal: Mapped[str | None] = mapped_column(String(255), nullable=True)
    preferred_country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Fields update_lead may touch; status only moves through change_lead_status.
    EDITABLE_FIELDS = frozenset({
        "name",
        "email",
        "phone",
        "source",
        "assigned_to",
        "study_goal",
        "preferred_country",
        "notes",
        "message",
    })

    @property
    def last_activity_at(self) -> datetime:
        return self.last_contact_at or self.created_at

    def to_dto(self) -> LeadInfo:
        return LeadInfo(
            id=self.id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            status=self.status,
            source=self.source,
            assigned_to=self.assigned_to,
            created_at=self.created_at,
            last_contact_at=self.last_contact_at,
            converted_at=self.converted_at,
            converted_to_student_id=self.converted_to_student_id,
            study_goal=self.study_goal,
            preferred_country=self.preferred_country,
            notes=self.notes,
            message=self.message,
        )

    def __repr__(self) -> str:
        return f"<Lead {self.email} [{self.status}]>"
