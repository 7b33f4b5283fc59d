"""
Read-side data transfer objects (``placement_kernel.domain.dtos``).

Every accessor on the workflow engine returns one of these frozen
dataclasses rather than a live ORM instance, so callers can never mutate
entity state except through an engine operation.  Models build them via
``to_dto()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class StaffInfo:
    id: UUID
    name: str
    email: str
    role: str
    department: str | None
    pending_commission: Decimal
    paid_commission: Decimal
    total_commission: Decimal
    is_active: bool


@dataclass(frozen=True)
class LeadInfo:
    id: UUID
    name: str
    email: str
    phone: str | None
    status: str
    source: str
    assigned_to: UUID | None
    created_at: datetime
    last_contact_at: datetime | None
    converted_at: datetime | None
    converted_to_student_id: UUID | None
    study_goal: str | None = None
    preferred_country: str | None = None
    notes: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class StudentInfo:
    id: UUID
    name: str
    email: str
    phone: str | None
    status: str
    current_step: int
    assigned_staff_id: UUID
    lead_id: UUID | None
    deposit_paid: Decimal
    balance_paid: Decimal
    total_owed: Decimal
    scholarship_type: str | None
    is_profile_locked: bool
    locked_at: datetime | None
    locked_by: str | None
    unlocked_fields: frozenset[str]
    offers_unlocked: bool
    created_at: datetime
    profile: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentInfo:
    id: UUID
    student_id: UUID
    type: str
    name: str
    file_url: str | None
    status: str
    is_locked: bool
    is_hidden: bool
    uploaded_at: datetime
    verified_at: datetime | None
    verified_by: str | None
    error_message: str | None
    locked_at: datetime | None


@dataclass(frozen=True)
class ContractInfo:
    id: UUID
    student_id: UUID
    staff_id: UUID
    status: str
    amount: Decimal
    deposit_amount: Decimal
    non_refundable_amount: Decimal
    pricing_version: int
    created_at: datetime
    expires_at: datetime
    signed_at: datetime | None
    signature_data: str | None


@dataclass(frozen=True)
class InvoiceInfo:
    id: UUID
    student_id: UUID
    type: str
    amount: Decimal
    currency: str
    status: str
    due_date: datetime
    paid_at: datetime | None
    description: str
    created_by: str | None


@dataclass(frozen=True)
class RefundRequestInfo:
    id: UUID
    student_id: UUID
    invoice_id: UUID | None
    amount: Decimal
    reason: str
    retained_costs: Decimal
    refundable_amount: Decimal
    status: str
    requested_by: str
    requested_at: datetime
    processed_by: str | None
    processed_at: datetime | None


@dataclass(frozen=True)
class UniversityInfo:
    id: UUID
    name: str
    country: str
    city: str | None
    is_partner: bool
    is_active: bool


@dataclass(frozen=True)
class ApplicationInfo:
    id: UUID
    student_id: UUID
    university_id: UUID
    program: str
    batch: int
    priority: int
    status: str
    created_at: datetime
    submitted_to_admin_at: datetime | None
    approved_at: datetime | None
    approved_by: str | None
    submitted_to_uni_at: datetime | None
    response_at: datetime | None
    returned_at: datetime | None
    return_reason: str | None
    returned_fields: tuple[str, ...]
    admin_notes: str | None


@dataclass(frozen=True)
class CommissionInfo:
    id: UUID
    staff_id: UUID
    student_id: UUID
    contract_id: UUID
    amount: Decimal
    status: str
    triggered_at: datetime
    paid_at: datetime | None
    voided_at: datetime | None
    void_reason: str | None
    clawback_at: datetime | None
    clawback_reason: str | None
    adjusts_commission_id: UUID | None


@dataclass(frozen=True)
class LedgerEntryInfo:
    id: UUID
    seq: int
    type: str
    category: str
    amount: Decimal
    description: str
    student_id: UUID | None
    invoice_id: UUID | None
    is_reversal: bool
    created_by: str
    created_at: datetime


@dataclass(frozen=True)
class AppointmentInfo:
    id: UUID
    student_id: UUID
    staff_id: UUID
    title: str
    date_time: datetime
    duration: int
    type: str
    status: str
    description: str | None
    location: str | None


@dataclass(frozen=True)
class NotificationInfo:
    id: UUID
    user_id: str
    title: str
    message: str
    type: str
    action_required: bool
    read: bool
    link: str | None
    created_at: datetime


@dataclass(frozen=True)
class FixRequestInfo:
    id: UUID
    student_id: UUID
    field_name: str
    current_value: str | None
    requested_value: str
    reason: str
    status: str
    requested_at: datetime
    processed_by: str | None
    processed_at: datetime | None


@dataclass(frozen=True)
class AuditRecord:
    """One audit trail entry, as persisted and as handed to an AuditSink."""

    id: UUID
    seq: int
    actor_id: str
    action: str
    entity_type: str
    entity_id: str
    timestamp: datetime
    details: dict[str, Any]
    is_override: bool = False


@dataclass(frozen=True)
class NotificationRecord:
    """What a NotificationSink receives for a user-actionable transition."""

    user_id: str
    title: str
    message: str
    type: str
    action_required: bool
