"""
Module: placement_kernel.models.document
Responsibility: ORM persistence for student documents (passport, transcripts,
    offer letters).
Architecture position: Kernel > Models.

Invariants enforced:
    - Whole-record lock: while is_locked is true, DocumentService rejects any
      update that does not itself set is_locked to false.
    - Offer documents (admission_letter, jw202) stay hidden from the student
      until the offer is released.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase, UUIDString
from placement_kernel.domain.dtos import DocumentInfo


class DocumentStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    ERROR = "error"
    LOCKED = "locked"


class DocumentType(str, Enum):
    PASSPORT = "passport"
    PHOTO = "photo"
    TRANSCRIPT = "transcript"
    CERTIFICATE = "certificate"
    RECOMMENDATION = "recommendation"
    STUDY_PLAN = "study_plan"
    MEDICAL = "medical"
    POLICE_CLEARANCE = "police_clearance"
    ADMISSION_LETTER = "admission_letter"
    JW202 = "jw202"
    OTHER = "other"


OFFER_DOCUMENT_TYPES: frozenset[str] = frozenset({
    DocumentType.ADMISSION_LETTER.value,
    DocumentType.JW202.value,
})

# Fields update_document accepts.
DOCUMENT_UPDATABLE_FIELDS: frozenset[str] = frozenset({
    "name",
    "file_url",
    "status",
    "is_locked",
    "is_hidden",
    "error_message",
})


class Document(TimestampedBase):
    """A file attached to a student record."""

    __tablename__ = "documents"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'verified', 'error', 'locked')",
            name="ck_documents_valid_status",
        ),
        Index("idx_documents_student", "student_id"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("students.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentStatus.PENDING.value
    )
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    verified_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> DocumentInfo:
        return DocumentInfo(
            id=self.id,
            student_id=self.student_id,
            type=self.type,
            name=self.name,
            file_url=self.file_url,
            status=self.status,
            is_locked=self.is_locked,
            is_hidden=self.is_hidden,
            uploaded_at=self.created_at,
            verified_at=self.verified_at,
            verified_by=self.verified_by,
            error_message=self.error_message,
            locked_at=self.locked_at,
        )
