"""
Module: placement_kernel.models.audit_log
Responsibility: ORM persistence for the hash-chained audit log and the
    counter row that sequences it.
Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only: AuditLog UPDATE/DELETE raise ImmutabilityViolationError.
    - seq is unique and strictly increasing (allocated by SequenceService).
    - hash = H(actor_id | action | entity_type | entity_id | payload_hash | prev_hash).

Audit relevance:
    Every mutating workflow operation writes exactly one AuditLog row in the
    same transaction as its state change.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import Base
from placement_kernel.domain.dtos import AuditRecord


class AuditAction(str, Enum):
    """Auditable actions, one per mutating engine operation."""

    # Leads
    LEAD_CREATED = "lead_created"
    LEAD_UPDATED = "lead_updated"
    LEAD_CONTACTED = "lead_contacted"
    LEAD_STATUS_CHANGED = "lead_status_changed"
    LEAD_CONVERTED = "lead_converted"

    # Students
    STUDENT_STATUS_CHANGED = "student_status_changed"
    STUDENT_UPDATED = "student_updated"
    PROFILE_LOCKED = "profile_locked"
    PROFILE_UNLOCKED = "profile_unlocked"
    FIELDS_UNLOCKED = "fields_unlocked"
    SCHOLARSHIP_SET = "scholarship_set"

    # Documents
    DOCUMENT_ADDED = "document_added"
    DOCUMENT_UPDATED = "document_updated"
    DOCUMENT_VERIFIED = "document_verified"
    DOCUMENT_ERROR = "document_error"
    DOCUMENTS_LOCKED = "documents_locked"
    DOCUMENTS_UNLOCKED = "documents_unlocked"

    # Contracts and money
    CONTRACT_CREATED = "contract_created"
    CONTRACT_SIGNED = "contract_signed"
    CONTRACTS_EXPIRED = "contracts_expired"
    INVOICE_CREATED = "invoice_created"
    INVOICES_OVERDUE = "invoices_overdue"
    PAYMENT_RECORDED = "payment_recorded"
    REFUND_REQUESTED = "refund_requested"
    REFUND_PROCESSED = "refund_processed"

    # Applications
    APPLICATION_CREATED = "application_created"
    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    APPLICATION_SENT_TO_UNIVERSITY = "application_sent_to_university"
    APPLICATION_RETURNED = "application_returned"
    OFFER_RECEIVED = "offer_received"
    OFFER_DECLINED = "offer_declined"
    OFFER_RELEASED = "offer_released"

    # Commissions
    COMMISSION_TRIGGERED = "commission_triggered"
    COMMISSION_PAID = "commission_paid"
    COMMISSION_VOIDED = "commission_voided"
    COMMISSION_CLAWBACK = "commission_clawback"

    # Other
    APPOINTMENT_BOOKED = "appointment_booked"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_COMPLETED = "appointment_completed"
    NOTIFICATION_CREATED = "notification_created"
    NOTIFICATIONS_READ = "notifications_read"
    IDLE_ALERTS_SENT = "idle_alerts_sent"
    FIX_REQUEST_SUBMITTED = "fix_request_submitted"
    FIX_REQUEST_PROCESSED = "fix_request_processed"
    SETTINGS_UPDATED = "settings_updated"
    STAFF_CREATED = "staff_created"
    UNIVERSITY_CREATED = "university_created"


class AuditLog(Base):
    """
    Audit record with hash chain for tamper evidence.

    Contract:
        AuditLog rows are append-only, never updated or deleted.

    Non-goals:
        - This model does NOT compute hashes; AuditorService does.
    """

    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    actor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    is_override: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def to_dto(self) -> AuditRecord:
        return AuditRecord(
            id=self.id,
            seq=self.seq,
            actor_id=self.actor_id,
            action=self.action,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            timestamp=self.timestamp,
            details=dict(self.details or {}),
            is_override=self.is_override,
        )

    def __repr__(self) -> str:
        return f"<AuditLog #{self.seq} {self.action} on {self.entity_type}:{self.entity_id}>"


class SequenceCounter(Base):
    """
    Named monotonic counter.

    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
