"""
placement_kernel.services.workflow_engine -- The workflow engine facade.

Responsibility:
    Single entry point for every placement workflow operation.  For each
    call the engine:

        1. takes the engine-wide re-entrant lock,
        2. opens a session and reads the SystemSettings snapshot once,
        3. runs the operation through the services in ``ServiceContainer``,
        4. writes exactly one audit record for a mutating operation,
        5. commits, or rolls back on any error,
        6. after commit, forwards the new audit and notification records to
           the optional sinks.

Architecture position:
    Services -- top of the kernel.  The only place that commits or rolls
    back, and the only place rule-driven rejections are turned into the
    boolean / ``None`` results callers see.

Invariants enforced:
    - All-or-nothing: a ``WorkflowRejection`` raised anywhere in an
      operation rolls back every flush of that operation, so cascades never
      half-apply and the caller gets ``False`` / ``None``.
    - Serialized execution: reads and writes share one lock, so readers
      never observe a cascade in progress and the commission trigger cannot
      race a concurrent payment for the same student.
    - Audit: one AuditLog row per committed mutating operation.

Failure modes:
    - Rejections never raise.  Anything that is not a WorkflowRejection
      (e.g. ImmutabilityViolationError, database errors) is a programming
      or infrastructure error and propagates after rollback.

Usage:
    engine = WorkflowEngine.from_config()
    staff = engine.add_staff("Asha", "asha@example.com")
    lead = engine.add_lead("Juma", "juma@example.com", assigned_to=staff.id)
    student = engine.convert_lead_to_student(lead.id, staff.id)
"""

from __future__ import annotations

import threading
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from placement_config import PlacementConfig, get_active_config
from placement_kernel.db.engine import build_engine, create_tables
from placement_kernel.db.immutability import register_immutability_listeners
from placement_kernel.domain.clock import Clock, SystemClock
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
    LedgerEntryInfo,
    NotificationInfo,
    RefundRequestInfo,
    StaffInfo,
    StudentInfo,
    UniversityInfo,
)
from placement_kernel.domain.pricing import final_balance
from placement_kernel.domain.settings import SystemSettings
from placement_kernel.domain.sinks import AuditSink, NotificationSink
from placement_kernel.domain.transitions import CommissionStatus
from placement_kernel.exceptions import PreconditionError, WorkflowRejection
from placement_kernel.logging_config import LogContext, get_logger
from placement_kernel.models.application import University
from placement_kernel.models.audit_log import AuditAction
from placement_kernel.models.notification import NotificationType
from placement_kernel.models.staff import Staff, StaffRole
from placement_kernel.models.student import Student
from placement_kernel.selectors import EntitySelector, IdleSelector, LedgerSelector
from placement_kernel.services.application_service import ApplicationService
from placement_kernel.services.appointment_service import AppointmentService
from placement_kernel.services.auditor_service import AuditorService
from placement_kernel.services.commission_service import CommissionService
from placement_kernel.services.contract_service import ContractService
from placement_kernel.services.document_service import DocumentService
from placement_kernel.services.fix_request_service import FixRequestService
from placement_kernel.services.lead_service import LeadService
from placement_kernel.services.ledger_service import LedgerService
from placement_kernel.services.notification_service import NotificationService
from placement_kernel.services.payment_service import PaymentService
from placement_kernel.services.settings_service import SettingsService
from placement_kernel.services.student_service import StudentService

logger = get_logger("services.workflow_engine")

T = TypeVar("T")


class ServiceContainer:
    """
    Every service for one operation, built once and sharing one session,
    clock and settings snapshot.

    Non-goals:
        - Does NOT commit or roll back.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        settings: SystemSettings,
        config: PlacementConfig,
    ) -> None:
        self.session = session
        self.clock = clock
        self.settings = settings
        self.pricing = config.pricing

        # Foundational services
        self.auditor = AuditorService(session, clock)
        self.notifications = NotificationService(session, clock)
        self.settings_service = SettingsService(session, clock)
        self.ledger = LedgerService(session, clock)

        # Entity services, in dependency order
        self.students = StudentService(session, clock)
        self.documents = DocumentService(session, clock)
        self.leads = LeadService(session, clock)
        self.contracts = ContractService(session, clock, self.students)
        self.applications = ApplicationService(session, clock, self.students, self.documents)
        self.commissions = CommissionService(session, clock)
        self.payments = PaymentService(session, clock, self.ledger, self.commissions)
        self.appointments = AppointmentService(session, clock)
        self.fix_requests = FixRequestService(session, clock, self.students)

        # Read side
        self.entities = EntitySelector(session)
        self.idle = IdleSelector(session, clock)
        self.ledger_reads = LedgerSelector(session)

    def audit(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        actor_id: str,
        details: dict[str, Any] | None = None,
        is_override: bool = False,
    ) -> None:
        self.auditor.record(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            details=details,
            is_override=is_override,
        )


class WorkflowEngine:
    """
    The placement workflow engine.

    Contract:
        Mutating operations return ``True`` / a DTO on success and
        ``False`` / ``None`` when rejected; they never raise for a
        rule-driven rejection.  Accessors return DTOs, ``None`` or empty
        lists and never mutate.

    Guarantees:
        - Each operation runs in its own transaction under one engine-wide
          re-entrant lock.
        - Sinks see only records from committed operations.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: PlacementConfig,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        notification_sink: NotificationSink | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.config = config
        self.clock = clock or SystemClock()
        self.audit_sink = audit_sink
        self.notification_sink = notification_sink
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        database_url: str = "sqlite:///:memory:",
        config: PlacementConfig | None = None,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        notification_sink: NotificationSink | None = None,
        echo: bool = False,
    ) -> WorkflowEngine:
        """Build an engine on a fresh database and seed its settings."""
        config = config or get_active_config()
        db_engine = build_engine(database_url, echo=echo)
        create_tables(db_engine)
        register_immutability_listeners()
        factory = sessionmaker(bind=db_engine, expire_on_commit=False)

        engine = cls(factory, config, clock, audit_sink, notification_sink)
        engine.initialize_store()
        logger.info(
            "workflow_engine_initialized",
            extra={
                "dialect": db_engine.dialect.name,
                "config_id": config.config_id,
                "config_checksum": config.checksum,
            },
        )
        return engine

    # ==================================================================
    # Unit-of-work plumbing
    # ==================================================================

    def _run(
        self,
        operation: str,
        work: Callable[[ServiceContainer], T],
        actor_id: str = "system",
        entity_id: Any = None,
        rejected: Any = False,
    ) -> T | Any:
        with self._lock, LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            operation=operation,
            entity_id=entity_id,
        ):
            session = self._session_factory()
            try:
                settings = SettingsService(session, self.clock).snapshot()
                services = ServiceContainer(session, self.clock, settings, self.config)
                result = work(services)
                session.commit()
            except WorkflowRejection as exc:
                session.rollback()
                logger.info(
                    "operation_rejected",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                return rejected
            except Exception:
                session.rollback()
                logger.error("operation_failed", exc_info=True)
                raise
            finally:
                session.close()

            self._dispatch(services)
            return result

    def _read(self, work: Callable[[ServiceContainer], T]) -> T:
        with self._lock:
            session = self._session_factory()
            try:
                settings = SettingsService(session, self.clock).snapshot()
                return work(ServiceContainer(session, self.clock, settings, self.config))
            finally:
                session.rollback()
                session.close()

    def _dispatch(self, services: ServiceContainer) -> None:
        """Forward committed records to the sinks; a sink can never undo an operation."""
        if self.audit_sink is not None:
            for row in services.auditor.created:
                try:
                    self.audit_sink.record(row.to_dto())
                except Exception:
                    logger.error("audit_sink_failed", exc_info=True, extra={"seq": row.seq})
        if self.notification_sink is not None:
            for row in services.notifications.created:
                try:
                    self.notification_sink.notify(row.to_record())
                except Exception:
                    logger.error(
                        "notification_sink_failed", exc_info=True, extra={"user_id": row.user_id}
                    )

    # ==================================================================
    # Setup and settings
    # ==================================================================

    def initialize_store(self) -> SystemSettings:
        """Seed the settings row from configuration if it does not exist."""
        return self._run(
            "initialize_store",
            lambda s: s.settings_service.ensure_initialized(self.config.settings),
        )

    def get_system_settings(self) -> SystemSettings:
        return self._read(lambda s: s.settings)

    def update_system_settings(self, updates: dict[str, Any], actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            before, after = s.settings_service.update(updates, actor_id)
            s.audit(
                AuditAction.SETTINGS_UPDATED,
                "SystemSettings",
                "global",
                actor_id,
                {
                    "changes": {
                        key: {"from": getattr(before, key), "to": getattr(after, key)}
                        for key in sorted(updates)
                    }
                },
            )
            return True

        return self._run("update_system_settings", work, actor_id)

    def add_staff(
        self,
        name: str,
        email: str,
        role: StaffRole | str = StaffRole.STAFF,
        department: str | None = None,
        actor_id: str = "system",
    ) -> StaffInfo | None:
        def work(s: ServiceContainer) -> StaffInfo:
            existing = s.session.execute(select(Staff.id).where(Staff.email == email)).first()
            if existing is not None:
                raise PreconditionError(f"Staff email already registered: {email}")
            try:
                staff_role = StaffRole(role)
            except ValueError as exc:
                raise PreconditionError(f"Unknown staff role: {role}") from exc
            staff = Staff(
                name=name,
                email=email,
                role=staff_role.value,
                department=department,
                created_at=s.clock.now(),
            )
            s.session.add(staff)
            s.session.flush()
            s.audit(
                AuditAction.STAFF_CREATED, "Staff", staff.id, actor_id, {"role": staff.role}
            )
            return staff.to_dto()

        return self._run("add_staff", work, actor_id, rejected=None)

    def add_university(
        self,
        name: str,
        country: str,
        city: str | None = None,
        is_partner: bool = False,
        actor_id: str = "system",
    ) -> UniversityInfo | None:
        def work(s: ServiceContainer) -> UniversityInfo:
            university = University(
                name=name, country=country, city=city, is_partner=is_partner, is_active=True
            )
            s.session.add(university)
            s.session.flush()
            s.audit(
                AuditAction.UNIVERSITY_CREATED,
                "University",
                university.id,
                actor_id,
                {"name": name, "country": country},
            )
            return university.to_dto()

        return self._run("add_university", work, actor_id, rejected=None)

    # ==================================================================
    # Leads
    # ==================================================================

    def add_lead(
        self,
        name: str,
        email: str,
        phone: str | None = None,
        source: str = "website",
        assigned_to: UUID | str | None = None,
        actor_id: str = "system",
        **details: Any,
    ) -> LeadInfo | None:
        def work(s: ServiceContainer) -> LeadInfo:
            lead = s.leads.add(name, email, phone, source, assigned_to, **details)
            s.audit(
                AuditAction.LEAD_CREATED, "Lead", lead.id, actor_id,
                {"source": source, "assigned_to": lead.assigned_to},
            )
            return lead.to_dto()

        return self._run("add_lead", work, actor_id, rejected=None)

    def update_lead(
        self, lead_id: UUID | str, updates: dict[str, Any], actor_id: str = "system"
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            applied = s.leads.update(lead_id, updates)
            s.audit(
                AuditAction.LEAD_UPDATED, "Lead", lead_id, actor_id,
                {"fields": sorted(applied)},
            )
            return True

        return self._run("update_lead", work, actor_id, lead_id)

    def record_lead_contact(self, lead_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            lead = s.leads.record_contact(lead_id)
            s.audit(
                AuditAction.LEAD_CONTACTED, "Lead", lead.id, actor_id,
                {"last_contact_at": lead.last_contact_at},
            )
            return True

        return self._run("record_lead_contact", work, actor_id, lead_id)

    def change_lead_status(
        self, lead_id: UUID | str, new_status: str, actor_id: str = "system"
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            from_status, to_status = s.leads.change_status(lead_id, new_status)
            s.audit(
                AuditAction.LEAD_STATUS_CHANGED, "Lead", lead_id, actor_id,
                {"from": from_status, "to": to_status},
            )
            return True

        return self._run("change_lead_status", work, actor_id, lead_id)

    def convert_lead_to_student(
        self, lead_id: UUID | str, staff_id: UUID | str, actor_id: str = "system"
    ) -> StudentInfo | None:
        def work(s: ServiceContainer) -> StudentInfo:
            student = s.leads.convert(lead_id, staff_id)
            s.audit(
                AuditAction.LEAD_CONVERTED, "Lead", lead_id, actor_id,
                {"student_id": student.id, "staff_id": student.assigned_staff_id},
            )
            return student.to_dto()

        return self._run("convert_lead_to_student", work, actor_id, lead_id, rejected=None)

    # ==================================================================
    # Students
    # ==================================================================

    def change_student_status(
        self,
        student_id: UUID | str,
        new_status: str,
        reason: str | None = None,
        actor_id: str = "system",
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            from_status, to_status = s.students.change_status(student_id, new_status, reason)
            s.audit(
                AuditAction.STUDENT_STATUS_CHANGED, "Student", student_id, actor_id,
                {"from": from_status, "to": to_status, "reason": reason},
            )
            return True

        return self._run("change_student_status", work, actor_id, student_id)

    def update_student(
        self, student_id: UUID | str, updates: dict[str, Any], actor_id: str = "system"
    ) -> None:
        """
        Apply the writable subset of ``updates``.

        On a locked profile only unlocked fields, ``status`` and
        ``offers_unlocked`` are applied; everything else is dropped without
        error.  Returns None either way.
        """
        def work(s: ServiceContainer) -> None:
            applied = s.students.update(student_id, updates)
            s.audit(
                AuditAction.STUDENT_UPDATED, "Student", student_id, actor_id,
                {
                    "applied": sorted(applied),
                    "dropped": sorted(set(updates) - set(applied)),
                },
            )

        self._run("update_student", work, actor_id, student_id, rejected=None)

    def lock_student_profile(self, student_id: UUID | str, locked_by: str) -> bool:
        def work(s: ServiceContainer) -> bool:
            s.students.lock_profile(s.students.get(student_id), locked_by)
            s.audit(AuditAction.PROFILE_LOCKED, "Student", student_id, locked_by)
            return True

        return self._run("lock_student_profile", work, locked_by, student_id)

    def unlock_student_profile(self, student_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            s.students.unlock_profile(s.students.get(student_id))
            s.audit(AuditAction.PROFILE_UNLOCKED, "Student", student_id, actor_id)
            return True

        return self._run("unlock_student_profile", work, actor_id, student_id)

    def unlock_student_fields(
        self, student_id: UUID | str, fields: Iterable[str], actor_id: str = "system"
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            unlocked = s.students.unlock_fields(s.students.get(student_id), fields)
            s.audit(
                AuditAction.FIELDS_UNLOCKED, "Student", student_id, actor_id,
                {"fields": unlocked},
            )
            return True

        return self._run("unlock_student_fields", work, actor_id, student_id)

    def set_scholarship_type(
        self, student_id: UUID | str, scholarship_type: str, actor_id: str = "system"
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            total_owed = s.students.set_scholarship_type(student_id, scholarship_type, s.pricing)
            s.audit(
                AuditAction.SCHOLARSHIP_SET, "Student", student_id, actor_id,
                {"scholarship_type": scholarship_type, "total_owed": total_owed},
            )
            return True

        return self._run("set_scholarship_type", work, actor_id, student_id)

    def calculate_final_balance(self, student_id: UUID | str) -> Decimal:
        """Remaining service fee; ``Decimal("0")`` for an unknown student."""
        def work(s: ServiceContainer) -> Decimal:
            student = s.entities.student(student_id)
            if student is None:
                return Decimal("0")
            return final_balance(student.scholarship_type, student.deposit_paid, s.pricing)

        return self._read(work)

    def validate_passport_expiry(self, student_id: UUID | str) -> bool:
        """True iff the passport is valid beyond the configured number of months."""
        def work(s: ServiceContainer) -> bool:
            try:
                return s.students.has_valid_passport(student_id, s.settings.passport_expiry_months)
            except WorkflowRejection:
                return False

        return self._read(work)

    # ==================================================================
    # Documents
    # ==================================================================

    def add_document(
        self,
        student_id: UUID | str,
        type: str,
        name: str,
        file_url: str | None = None,
        actor_id: str = "system",
    ) -> DocumentInfo | None:
        def work(s: ServiceContainer) -> DocumentInfo:
            document = s.documents.add(student_id, type, name, file_url)
            s.audit(
                AuditAction.DOCUMENT_ADDED, "Document", document.id, actor_id,
                {"student_id": document.student_id, "type": document.type},
            )
            return document.to_dto()

        return self._run("add_document", work, actor_id, student_id, rejected=None)

    def update_document(
        self, document_id: UUID | str, updates: dict[str, Any], actor_id: str = "system"
    ) -> bool:
        """Apply ``updates`` in full, or not at all when the document is locked."""
        def work(s: ServiceContainer) -> bool:
            applied = s.documents.update(document_id, updates)
            s.audit(
                AuditAction.DOCUMENT_UPDATED, "Document", document_id, actor_id,
                {"fields": sorted(applied)},
            )
            return True

        return self._run("update_document", work, actor_id, document_id)

    def verify_document(self, document_id: UUID | str, verified_by: str) -> bool:
        def work(s: ServiceContainer) -> bool:
            s.documents.verify(document_id, verified_by)
            s.audit(AuditAction.DOCUMENT_VERIFIED, "Document", document_id, verified_by)
            return True

        return self._run("verify_document", work, verified_by, document_id)

    def mark_document_error(
        self, document_id: UUID | str, error_message: str, actor_id: str = "system"
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            document = s.documents.mark_error(document_id, error_message)
            s.notifications.notify(
                document.student_id,
                "Document needs attention",
                f"{document.name}: {error_message}",
                NotificationType.ERROR,
                action_required=True,
            )
            s.audit(
                AuditAction.DOCUMENT_ERROR, "Document", document_id, actor_id,
                {"error_message": error_message},
            )
            return True

        return self._run("mark_document_error", work, actor_id, document_id)

    def lock_documents(self, student_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            count = s.documents.lock_all(s.students.get(student_id).id)
            s.audit(
                AuditAction.DOCUMENTS_LOCKED, "Student", student_id, actor_id, {"count": count}
            )
            return True

        return self._run("lock_documents", work, actor_id, student_id)

    def unlock_documents(self, student_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            count = s.documents.unlock_all(s.students.get(student_id).id)
            s.audit(
                AuditAction.DOCUMENTS_UNLOCKED, "Student", student_id, actor_id, {"count": count}
            )
            return True

        return self._run("unlock_documents", work, actor_id, student_id)

    # ==================================================================
    # Contracts
    # ==================================================================

    def create_contract(
        self,
        student_id: UUID | str,
        staff_id: UUID | str,
        amount: Decimal | None = None,
        actor_id: str = "system",
    ) -> ContractInfo | None:
        def work(s: ServiceContainer) -> ContractInfo:
            contract = s.contracts.create(
                student_id,
                staff_id,
                s.settings.current_pricing_version,
                amount,
                s.pricing,
            )
            s.audit(
                AuditAction.CONTRACT_CREATED, "Contract", contract.id, actor_id,
                {
                    "student_id": contract.student_id,
                    "amount": contract.amount,
                    "pricing_version": contract.pricing_version,
                },
            )
            return contract.to_dto()

        return self._run("create_contract", work, actor_id, student_id, rejected=None)

    def sign_contract(
        self, contract_id: UUID | str, signature_data: str, actor_id: str = "system"
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            contract = s.contracts.sign(contract_id, signature_data)
            s.audit(
                AuditAction.CONTRACT_SIGNED, "Contract", contract.id, actor_id,
                {"student_id": contract.student_id, "signed_at": contract.signed_at},
            )
            return True

        return self._run("sign_contract", work, actor_id, contract_id)

    def expire_contracts(self, actor_id: str = "system") -> int:
        """Expire every unsigned contract past its window; returns the count."""
        def work(s: ServiceContainer) -> int:
            expired = s.contracts.expire_due()
            s.audit(
                AuditAction.CONTRACTS_EXPIRED, "Contract", "sweep", actor_id,
                {"contract_ids": [contract.id for contract in expired]},
            )
            return len(expired)

        return self._run("expire_contracts", work, actor_id, rejected=0)

    # ==================================================================
    # Invoices, payments and refunds
    # ==================================================================

    def create_invoice(
        self,
        student_id: UUID | str,
        type: str,
        amount: Decimal | int | str,
        description: str = "",
        due_date: datetime | None = None,
        currency: str = "USD",
        actor_id: str = "system",
    ) -> InvoiceInfo | None:
        def work(s: ServiceContainer) -> InvoiceInfo:
            invoice = s.payments.create_invoice(
                student_id, type, amount, description, due_date, currency, actor_id
            )
            s.audit(
                AuditAction.INVOICE_CREATED, "Invoice", invoice.id, actor_id,
                {"student_id": invoice.student_id, "type": invoice.type, "amount": invoice.amount},
            )
            return invoice.to_dto()

        return self._run("create_invoice", work, actor_id, student_id, rejected=None)

    def record_payment(self, invoice_id: UUID | str, actor_id: str = "system") -> bool:
        """
        Mark an invoice paid.  A deposit payment that brings the student to
        the full deposit with a signed contract triggers the staff
        commission in the same transaction.
        """
        def work(s: ServiceContainer) -> bool:
            invoice = s.payments.record_payment(invoice_id, s.settings, actor_id)
            triggered = s.payments.triggered
            s.audit(
                AuditAction.PAYMENT_RECORDED, "Invoice", invoice.id, actor_id,
                {
                    "student_id": invoice.student_id,
                    "type": invoice.type,
                    "amount": invoice.amount,
                    "commission_id": triggered.id if triggered else None,
                },
            )
            return True

        return self._run("record_payment", work, actor_id, invoice_id)

    def mark_overdue_invoices(self, actor_id: str = "system") -> int:
        def work(s: ServiceContainer) -> int:
            overdue = s.payments.mark_overdue()
            s.audit(
                AuditAction.INVOICES_OVERDUE, "Invoice", "sweep", actor_id,
                {"invoice_ids": [invoice.id for invoice in overdue]},
            )
            return len(overdue)

        return self._run("mark_overdue_invoices", work, actor_id, rejected=0)

    def submit_refund_request(
        self,
        student_id: UUID | str,
        amount: Decimal | int | str,
        reason: str,
        requested_by: str,
        invoice_id: UUID | str | None = None,
        retained_costs: Decimal | int | str = Decimal("0"),
        notes: str | None = None,
    ) -> RefundRequestInfo | None:
        def work(s: ServiceContainer) -> RefundRequestInfo:
            refund = s.payments.submit_refund_request(
                student_id, amount, reason, requested_by, invoice_id, retained_costs, notes
            )
            s.audit(
                AuditAction.REFUND_REQUESTED, "RefundRequest", refund.id, requested_by,
                {
                    "student_id": refund.student_id,
                    "amount": refund.amount,
                    "refundable_amount": refund.refundable_amount,
                },
            )
            return refund.to_dto()

        return self._run("submit_refund_request", work, requested_by, student_id, rejected=None)

    def process_refund(self, refund_id: UUID | str, approved_by: str, approved: bool) -> bool:
        def work(s: ServiceContainer) -> bool:
            refund = s.payments.process_refund(refund_id, approved_by, approved)
            s.audit(
                AuditAction.REFUND_PROCESSED, "RefundRequest", refund.id, approved_by,
                {"approved": approved, "refundable_amount": refund.refundable_amount},
            )
            return True

        return self._run("process_refund", work, approved_by, refund_id)

    # ==================================================================
    # Applications
    # ==================================================================

    def create_application(
        self,
        student_id: UUID | str,
        university_id: UUID | str,
        program: str,
        batch: int,
        priority: int = 1,
        actor_id: str = "system",
    ) -> ApplicationInfo | None:
        def work(s: ServiceContainer) -> ApplicationInfo:
            application = s.applications.create(student_id, university_id, program, batch, priority)
            s.audit(
                AuditAction.APPLICATION_CREATED, "UniversityApplication", application.id, actor_id,
                {
                    "student_id": application.student_id,
                    "university_id": application.university_id,
                    "batch": batch,
                },
            )
            return application.to_dto()

        return self._run("create_application", work, actor_id, student_id, rejected=None)

    def submit_application_to_admin(
        self, application_id: UUID | str, actor_id: str = "system"
    ) -> bool:
        """Send for admin review; the student's whole profile is locked."""
        def work(s: ServiceContainer) -> bool:
            application = s.applications.submit_to_admin(application_id, actor_id)
            student = s.students.get(application.student_id)
            s.notifications.notify_admins(
                "Application pending review",
                f"{student.name}'s application is waiting for admin review.",
                NotificationType.WARNING,
                action_required=True,
            )
            s.audit(
                AuditAction.APPLICATION_SUBMITTED, "UniversityApplication", application.id, actor_id,
                {"student_id": student.id},
            )
            return True

        return self._run("submit_application_to_admin", work, actor_id, application_id)

    def approve_application(self, application_id: UUID | str, approved_by: str) -> bool:
        def work(s: ServiceContainer) -> bool:
            application = s.applications.approve(application_id, approved_by)
            s.audit(
                AuditAction.APPLICATION_APPROVED, "UniversityApplication", application.id,
                approved_by,
            )
            return True

        return self._run("approve_application", work, approved_by, application_id)

    def reject_application(
        self, application_id: UUID | str, reason: str, actor_id: str = "system"
    ) -> bool:
        """Return to staff; the profile is fully unlocked for corrections."""
        def work(s: ServiceContainer) -> bool:
            application = s.applications.reject(application_id, reason)
            student = s.students.get(application.student_id)
            s.notifications.notify(
                student.assigned_staff_id,
                "Application returned by admin",
                f"{student.name}'s application was returned: {reason}",
                NotificationType.WARNING,
                action_required=True,
            )
            s.audit(
                AuditAction.APPLICATION_REJECTED, "UniversityApplication", application.id, actor_id,
                {"reason": reason},
            )
            return True

        return self._run("reject_application", work, actor_id, application_id)

    def submit_to_university(self, application_id: UUID | str, actor_id: str = "system") -> bool:
        """Send to the university; every document of the student is locked."""
        def work(s: ServiceContainer) -> bool:
            application = s.applications.submit_to_university(application_id)
            s.audit(
                AuditAction.APPLICATION_SENT_TO_UNIVERSITY, "UniversityApplication",
                application.id, actor_id,
            )
            return True

        return self._run("submit_to_university", work, actor_id, application_id)

    def return_from_school(
        self,
        application_id: UUID | str,
        reason: str,
        fields: Iterable[str],
        actor_id: str = "system",
    ) -> bool:
        """The university wants changes; only ``fields`` reopen on the profile."""
        def work(s: ServiceContainer) -> bool:
            application = s.applications.return_from_school(application_id, reason, fields)
            student = s.students.get(application.student_id)
            s.notifications.notify(
                student.assigned_staff_id,
                "Application returned by university",
                f"{student.name}: {reason}",
                NotificationType.WARNING,
                action_required=True,
            )
            s.audit(
                AuditAction.APPLICATION_RETURNED, "UniversityApplication", application.id, actor_id,
                {"reason": reason, "fields": list(application.returned_fields)},
            )
            return True

        return self._run("return_from_school", work, actor_id, application_id)

    def record_offer_received(self, application_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            application = s.applications.record_offer_received(application_id)
            s.audit(
                AuditAction.OFFER_RECEIVED, "UniversityApplication", application.id, actor_id,
                {"student_id": application.student_id},
            )
            return True

        return self._run("record_offer_received", work, actor_id, application_id)

    def record_offer_declined(
        self,
        application_id: UUID | str,
        reason: str | None = None,
        actor_id: str = "system",
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            application = s.applications.record_offer_declined(application_id, reason)
            s.audit(
                AuditAction.OFFER_DECLINED, "UniversityApplication", application.id, actor_id,
                {"reason": reason},
            )
            return True

        return self._run("record_offer_declined", work, actor_id, application_id)

    def release_offer(self, student_id: UUID | str, actor_id: str = "system") -> bool:
        """Show the offer documents to the student and tell them."""
        def work(s: ServiceContainer) -> bool:
            student = s.applications.release_offer(student_id)
            s.notifications.notify(
                student.id,
                "Your offer is available",
                "Your admission letter and JW202 are now available in your documents.",
                NotificationType.SUCCESS,
                action_required=True,
            )
            s.audit(AuditAction.OFFER_RELEASED, "Student", student.id, actor_id)
            return True

        return self._run("release_offer", work, actor_id, student_id)

    # ==================================================================
    # Commissions
    # ==================================================================

    def pay_commission(self, commission_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            commission = s.commissions.pay(commission_id, actor_id)
            s.audit(
                AuditAction.COMMISSION_PAID, "Commission", commission.id, actor_id,
                {"staff_id": commission.staff_id, "amount": commission.amount},
            )
            return True

        return self._run("pay_commission", work, actor_id, commission_id)

    def void_commission(
        self, commission_id: UUID | str, reason: str, actor_id: str = "system"
    ) -> bool:
        """
        Void a pending commission, or claw back a paid one.  An unknown id
        is a silent no-op that returns False.
        """
        def work(s: ServiceContainer) -> bool:
            if s.commissions.find(commission_id) is None:
                return False
            commission = s.commissions.void(commission_id, reason)
            if commission.status == CommissionStatus.CLAWBACK.value:
                adjustment = s.commissions.find_adjustment(commission.id)
                s.audit(
                    AuditAction.COMMISSION_CLAWBACK, "Commission", commission.id, actor_id,
                    {"reason": reason, "adjustment_id": adjustment.id, "amount": adjustment.amount},
                )
            else:
                s.audit(
                    AuditAction.COMMISSION_VOIDED, "Commission", commission.id, actor_id,
                    {"reason": reason},
                )
            return True

        return self._run("void_commission", work, actor_id, commission_id)

    # ==================================================================
    # Appointments
    # ==================================================================

    def book_appointment(
        self,
        student_id: UUID | str,
        staff_id: UUID | str,
        title: str,
        date_time: datetime,
        duration: int = 30,
        type: str = "consultation",
        description: str | None = None,
        location: str | None = None,
        actor_id: str = "system",
    ) -> AppointmentInfo | None:
        def work(s: ServiceContainer) -> AppointmentInfo:
            appointment = s.appointments.book(
                student_id, staff_id, title, date_time, duration, type, description, location
            )
            s.audit(
                AuditAction.APPOINTMENT_BOOKED, "Appointment", appointment.id, actor_id,
                {"student_id": appointment.student_id, "date_time": appointment.date_time},
            )
            return appointment.to_dto()

        return self._run("book_appointment", work, actor_id, student_id, rejected=None)

    def cancel_appointment(self, appointment_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            s.appointments.cancel(appointment_id)
            s.audit(AuditAction.APPOINTMENT_CANCELLED, "Appointment", appointment_id, actor_id)
            return True

        return self._run("cancel_appointment", work, actor_id, appointment_id)

    def complete_appointment(self, appointment_id: UUID | str, actor_id: str = "system") -> bool:
        def work(s: ServiceContainer) -> bool:
            s.appointments.complete(appointment_id)
            s.audit(AuditAction.APPOINTMENT_COMPLETED, "Appointment", appointment_id, actor_id)
            return True

        return self._run("complete_appointment", work, actor_id, appointment_id)

    # ==================================================================
    # Notifications and idle alerts
    # ==================================================================

    def add_notification(
        self,
        user_id: UUID | str,
        title: str,
        message: str,
        type: str = "info",
        action_required: bool = False,
        link: str | None = None,
        actor_id: str = "system",
    ) -> NotificationInfo | None:
        def work(s: ServiceContainer) -> NotificationInfo:
            try:
                notification_type = NotificationType(type)
            except ValueError as exc:
                raise PreconditionError(f"Unknown notification type: {type}") from exc
            notification = s.notifications.notify(
                user_id, title, message, notification_type, action_required, link
            )
            s.audit(
                AuditAction.NOTIFICATION_CREATED, "Notification", notification.id, actor_id,
                {"user_id": str(user_id)},
            )
            return notification.to_dto()

        return self._run("add_notification", work, actor_id, rejected=None)

    def mark_notification_read(
        self, notification_id: UUID | str, actor_id: str = "system"
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            s.notifications.mark_read(notification_id)
            s.audit(AuditAction.NOTIFICATIONS_READ, "Notification", notification_id, actor_id)
            return True

        return self._run("mark_notification_read", work, actor_id, notification_id)

    def mark_all_notifications_read(self, user_id: UUID | str, actor_id: str = "system") -> int:
        def work(s: ServiceContainer) -> int:
            count = s.notifications.mark_all_read(user_id)
            s.audit(
                AuditAction.NOTIFICATIONS_READ, "User", user_id, actor_id, {"count": count}
            )
            return count

        return self._run("mark_all_notifications_read", work, actor_id, rejected=0)

    def get_idle_leads(self, days: int | None = None) -> list[LeadInfo]:
        """Non-terminal leads idle longer than ``days`` (default: settings)."""
        return self._read(
            lambda s: s.idle.idle_leads(s.settings.lead_idle_days if days is None else days)
        )

    def get_idle_applications(self, days: int | None = None) -> list[ApplicationInfo]:
        return self._read(
            lambda s: s.idle.idle_applications(
                s.settings.application_idle_days if days is None else days
            )
        )

    def emit_idle_alerts(self, actor_id: str = "system") -> int:
        """
        Notify lead owners about their idle leads and admins about the idle
        totals.  Returns the number of notifications created.
        """
        def work(s: ServiceContainer) -> int:
            idle_leads = s.idle.idle_leads(s.settings.lead_idle_days)
            idle_applications = s.idle.idle_applications(s.settings.application_idle_days)

            for lead in idle_leads:
                if lead.assigned_to is not None:
                    s.notifications.notify(
                        lead.assigned_to,
                        "Idle lead",
                        f"{lead.name} has had no contact for over "
                        f"{s.settings.lead_idle_days} days.",
                        NotificationType.WARNING,
                        action_required=True,
                    )
            if idle_leads or idle_applications:
                s.notifications.notify_admins(
                    "Idle work items",
                    f"{len(idle_leads)} idle lead(s) and {len(idle_applications)} "
                    "application(s) waiting for review.",
                    NotificationType.WARNING,
                    action_required=True,
                )

            count = len(s.notifications.created)
            s.audit(
                AuditAction.IDLE_ALERTS_SENT, "System", "idle_alerts", actor_id,
                {
                    "idle_leads": len(idle_leads),
                    "idle_applications": len(idle_applications),
                    "notifications": count,
                },
            )
            return count

        return self._run("emit_idle_alerts", work, actor_id, rejected=0)

    # ==================================================================
    # Fix requests
    # ==================================================================

    def submit_fix_request(
        self,
        student_id: UUID | str,
        field_name: str,
        requested_value: str,
        reason: str,
        actor_id: str = "system",
    ) -> FixRequestInfo | None:
        def work(s: ServiceContainer) -> FixRequestInfo:
            fix_request = s.fix_requests.submit(student_id, field_name, requested_value, reason)
            s.audit(
                AuditAction.FIX_REQUEST_SUBMITTED, "FixRequest", fix_request.id, actor_id,
                {"student_id": fix_request.student_id, "field_name": field_name},
            )
            return fix_request.to_dto()

        return self._run("submit_fix_request", work, actor_id, student_id, rejected=None)

    def process_fix_request(
        self,
        fix_request_id: UUID | str,
        processed_by: str,
        approved: bool,
        admin_notes: str | None = None,
    ) -> bool:
        def work(s: ServiceContainer) -> bool:
            applied = s.fix_requests.process(fix_request_id, processed_by, approved, admin_notes)
            s.audit(
                AuditAction.FIX_REQUEST_PROCESSED, "FixRequest", fix_request_id, processed_by,
                {"approved": approved, "applied": sorted(applied)},
            )
            return True

        return self._run("process_fix_request", work, processed_by, fix_request_id)

    # ==================================================================
    # Accessors
    # ==================================================================

    def get_student_by_id(self, student_id: UUID | str) -> StudentInfo | None:
        return self._read(lambda s: s.entities.student(student_id))

    def get_lead_by_id(self, lead_id: UUID | str) -> LeadInfo | None:
        return self._read(lambda s: s.entities.lead(lead_id))

    def get_staff_by_id(self, staff_id: UUID | str) -> StaffInfo | None:
        return self._read(lambda s: s.entities.staff(staff_id))

    def get_university_by_id(self, university_id: UUID | str) -> UniversityInfo | None:
        return self._read(lambda s: s.entities.university(university_id))

    def get_document_by_id(self, document_id: UUID | str) -> DocumentInfo | None:
        return self._read(lambda s: s.entities.document(document_id))

    def get_application_by_id(self, application_id: UUID | str) -> ApplicationInfo | None:
        return self._read(lambda s: s.entities.application(application_id))

    def get_contract_by_id(self, contract_id: UUID | str) -> ContractInfo | None:
        return self._read(lambda s: s.entities.contract(contract_id))

    def get_invoice_by_id(self, invoice_id: UUID | str) -> InvoiceInfo | None:
        return self._read(lambda s: s.entities.invoice(invoice_id))

    def get_refund_request_by_id(self, refund_id: UUID | str) -> RefundRequestInfo | None:
        return self._read(lambda s: s.entities.refund_request(refund_id))

    def get_appointment_by_id(self, appointment_id: UUID | str) -> AppointmentInfo | None:
        return self._read(lambda s: s.entities.appointment(appointment_id))

    def get_fix_request_by_id(self, fix_request_id: UUID | str) -> FixRequestInfo | None:
        return self._read(lambda s: s.entities.fix_request(fix_request_id))

    def get_commission_by_id(self, commission_id: UUID | str) -> CommissionInfo | None:
        return self._read(lambda s: s.entities.commission(commission_id))

    def get_all_leads(self) -> list[LeadInfo]:
        return self._read(lambda s: s.entities.all_leads())

    def get_all_students(self) -> list[StudentInfo]:
        return self._read(lambda s: s.entities.all_students())

    def get_documents_by_student(self, student_id: UUID | str) -> list[DocumentInfo]:
        return self._read(lambda s: s.entities.documents_by_student(student_id))

    def get_applications_by_student(self, student_id: UUID | str) -> list[ApplicationInfo]:
        return self._read(lambda s: s.entities.applications_by_student(student_id))

    def get_contracts_by_student(self, student_id: UUID | str) -> list[ContractInfo]:
        return self._read(lambda s: s.entities.contracts_by_student(student_id))

    def get_invoices_by_student(self, student_id: UUID | str) -> list[InvoiceInfo]:
        return self._read(lambda s: s.entities.invoices_by_student(student_id))

    def get_refund_requests_by_student(self, student_id: UUID | str) -> list[RefundRequestInfo]:
        return self._read(lambda s: s.entities.refunds_by_student(student_id))

    def get_appointments_by_student(self, student_id: UUID | str) -> list[AppointmentInfo]:
        return self._read(lambda s: s.entities.appointments_by_student(student_id))

    def get_appointments_by_staff(self, staff_id: UUID | str) -> list[AppointmentInfo]:
        return self._read(lambda s: s.entities.appointments_by_staff(staff_id))

    def get_fix_requests_by_student(self, student_id: UUID | str) -> list[FixRequestInfo]:
        return self._read(lambda s: s.entities.fix_requests_by_student(student_id))

    def get_commissions_by_staff(self, staff_id: UUID | str) -> list[CommissionInfo]:
        return self._read(lambda s: s.entities.commissions_by_staff(staff_id))

    def get_commissions_by_student(self, student_id: UUID | str) -> list[CommissionInfo]:
        return self._read(lambda s: s.entities.commissions_by_student(student_id))

    def get_notifications_by_user(self, user_id: UUID | str) -> list[NotificationInfo]:
        return self._read(lambda s: s.entities.notifications_by_user(user_id))

    def get_unread_notification_count(self, user_id: UUID | str) -> int:
        return self._read(lambda s: s.entities.unread_notification_count(user_id))

    def get_ledger_entries(self, student_id: UUID | str | None = None) -> list[LedgerEntryInfo]:
        return self._read(lambda s: s.ledger_reads.entries(student_id))

    def get_student_balance(self, student_id: UUID | str) -> Decimal:
        """Ledger credits minus debits for the student."""
        return self._read(lambda s: s.ledger_reads.student_balance(student_id))

    def get_audit_log(
        self,
        entity_type: str | None = None,
        entity_id: UUID | str | None = None,
    ) -> list[AuditRecord]:
        return self._read(lambda s: s.entities.audit_log(entity_type, entity_id))

    def validate_audit_chain(self) -> bool:
        """
        Raises:
            AuditChainBrokenError: a record's hash or link does not verify.
        """
        return self._read(lambda s: s.auditor.validate_chain())
