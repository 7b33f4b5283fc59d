"""ORM models for the placement kernel."""

from placement_kernel.models.appointment import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
)
from placement_kernel.models.application import University, UniversityApplication
from placement_kernel.models.audit_log import AuditAction, AuditLog, SequenceCounter
from placement_kernel.models.commission import Commission
from placement_kernel.models.contract import Contract, ContractStatus
from placement_kernel.models.document import Document, DocumentStatus, DocumentType
from placement_kernel.models.fix_request import FixRequest, FixRequestStatus
from placement_kernel.models.invoice import (
    Invoice,
    InvoiceStatus,
    InvoiceType,
    RefundReason,
    RefundRequest,
    RefundStatus,
)
from placement_kernel.models.lead import Lead
from placement_kernel.models.ledger import EntryCategory, EntryType, LedgerEntry
from placement_kernel.models.notification import Notification, NotificationType
from placement_kernel.models.settings import SystemSettingsRow
from placement_kernel.models.staff import Staff, StaffRole
from placement_kernel.models.student import Student

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "AuditAction",
    "AuditLog",
    "Commission",
    "Contract",
    "ContractStatus",
    "Document",
    "DocumentStatus",
    "DocumentType",
    "EntryCategory",
    "EntryType",
    "FixRequest",
    "FixRequestStatus",
    "Invoice",
    "InvoiceStatus",
    "InvoiceType",
    "Lead",
    "LedgerEntry",
    "Notification",
    "NotificationType",
    "RefundReason",
    "RefundRequest",
    "RefundStatus",
    "SequenceCounter",
    "Staff",
    "StaffRole",
    "Student",
    "SystemSettingsRow",
    "University",
    "UniversityApplication",
]
