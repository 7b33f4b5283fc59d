"""
Module: placement_kernel.selectors.entity_selector
Responsibility: Point lookups and per-owner listings for every entity the
    workflow engine exposes (students, leads, staff, documents, applications,
    contracts, invoices, refunds, appointments, notifications, fix requests,
    commissions and the audit trail).
Architecture position: Kernel > Selectors.

Every method returns a frozen DTO (or a list of them); a miss is None or
an empty list, never an exception.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from placement_kernel.domain.dtos import (
    AppointmentInfo,
    ApplicationInfo,
    AuditRecord,
    CommissionInfo,
    ContractInfo,
    DocumentInfo,
    FixRequestInfo,
    InvoiceInfo,
    LeadInfo,
    NotificationInfo,
    RefundRequestInfo,
    StaffInfo,
    StudentInfo,
    UniversityInfo,
)
from placement_kernel.models.appointment import Appointment
from placement_kernel.models.application import University, UniversityApplication
from placement_kernel.models.audit_log import AuditLog
from placement_kernel.models.commission import Commission
from placement_kernel.models.contract import Contract
from placement_kernel.models.document import Document
from placement_kernel.models.fix_request import FixRequest
from placement_kernel.models.invoice import Invoice, RefundRequest
from placement_kernel.models.lead import Lead
from placement_kernel.models.notification import Notification
from placement_kernel.models.staff import Staff
from placement_kernel.models.student import Student
from placement_kernel.selectors.base import BaseSelector, parse_id


class EntitySelector(BaseSelector):
    """Read-only accessors returning DTOs."""

    def _get(self, model, entity_id: UUID | str):
        parsed = parse_id(entity_id)
        if parsed is None:
            return None
        instance = self.session.get(model, parsed)
        return instance.to_dto() if instance is not None else None

    def _list_by(self, model, column, owner_id: UUID | str, *order_by) -> list:
        parsed = parse_id(owner_id)
        if parsed is None:
            return []
        rows = self.session.execute(
            select(model).where(column == parsed).order_by(*order_by)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    # Single entities

    def student(self, student_id: UUID | str) -> StudentInfo | None:
        return self._get(Student, student_id)

    def lead(self, lead_id: UUID | str) -> LeadInfo | None:
        return self._get(Lead, lead_id)

    def staff(self, staff_id: UUID | str) -> StaffInfo | None:
        return self._get(Staff, staff_id)

    def university(self, university_id: UUID | str) -> UniversityInfo | None:
        return self._get(University, university_id)

    def document(self, document_id: UUID | str) -> DocumentInfo | None:
        return self._get(Document, document_id)

    def application(self, application_id: UUID | str) -> ApplicationInfo | None:
        return self._get(UniversityApplication, application_id)

    def contract(self, contract_id: UUID | str) -> ContractInfo | None:
        return self._get(Contract, contract_id)

    def invoice(self, invoice_id: UUID | str) -> InvoiceInfo | None:
        return self._get(Invoice, invoice_id)

    def refund_request(self, refund_id: UUID | str) -> RefundRequestInfo | None:
        return self._get(RefundRequest, refund_id)

    def appointment(self, appointment_id: UUID | str) -> AppointmentInfo | None:
        return self._get(Appointment, appointment_id)

    def fix_request(self, fix_request_id: UUID | str) -> FixRequestInfo | None:
        return self._get(FixRequest, fix_request_id)

    def commission(self, commission_id: UUID | str) -> CommissionInfo | None:
        return self._get(Commission, commission_id)

    # Listings

    def all_leads(self) -> list[LeadInfo]:
        rows = self.session.execute(select(Lead).order_by(Lead.created_at)).scalars().all()
        return [row.to_dto() for row in rows]

    def all_students(self) -> list[StudentInfo]:
        rows = self.session.execute(select(Student).order_by(Student.created_at)).scalars().all()
        return [row.to_dto() for row in rows]

    def documents_by_student(self, student_id: UUID | str) -> list[DocumentInfo]:
        return self._list_by(Document, Document.student_id, student_id, Document.created_at)

    def applications_by_student(self, student_id: UUID | str) -> list[ApplicationInfo]:
        return self._list_by(
            UniversityApplication,
            UniversityApplication.student_id,
            student_id,
            UniversityApplication.batch,
            UniversityApplication.priority,
        )

    def contracts_by_student(self, student_id: UUID | str) -> list[ContractInfo]:
        return self._list_by(Contract, Contract.student_id, student_id, Contract.created_at)

    def invoices_by_student(self, student_id: UUID | str) -> list[InvoiceInfo]:
        return self._list_by(Invoice, Invoice.student_id, student_id, Invoice.created_at)

    def refunds_by_student(self, student_id: UUID | str) -> list[RefundRequestInfo]:
        return self._list_by(
            RefundRequest, RefundRequest.student_id, student_id, RefundRequest.created_at
        )

    def appointments_by_student(self, student_id: UUID | str) -> list[AppointmentInfo]:
        return self._list_by(Appointment, Appointment.student_id, student_id, Appointment.date_time)

    def appointments_by_staff(self, staff_id: UUID | str) -> list[AppointmentInfo]:
        return self._list_by(Appointment, Appointment.staff_id, staff_id, Appointment.date_time)

    def fix_requests_by_student(self, student_id: UUID | str) -> list[FixRequestInfo]:
        return self._list_by(FixRequest, FixRequest.student_id, student_id, FixRequest.created_at)

    def commissions_by_staff(self, staff_id: UUID | str) -> list[CommissionInfo]:
        return self._list_by(Commission, Commission.staff_id, staff_id, Commission.triggered_at)

    def commissions_by_student(self, student_id: UUID | str) -> list[CommissionInfo]:
        return self._list_by(Commission, Commission.student_id, student_id, Commission.triggered_at)

    def notifications_by_user(self, user_id: UUID | str) -> list[NotificationInfo]:
        rows = self.session.execute(
            select(Notification)
            .where(Notification.user_id == str(user_id))
            .order_by(Notification.created_at.desc())
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def unread_notification_count(self, user_id: UUID | str) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == str(user_id), Notification.read.is_(False))
        ).scalar_one()

    def audit_log(
        self,
        entity_type: str | None = None,
        entity_id: UUID | str | None = None,
    ) -> list[AuditRecord]:
        query = select(AuditLog).order_by(AuditLog.seq)
        if entity_type is not None:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id is not None:
            query = query.where(AuditLog.entity_id == str(entity_id))
        return [row.to_dto() for row in self.session.execute(query).scalars().all()]
