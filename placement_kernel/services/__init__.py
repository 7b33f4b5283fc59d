"""
placement_kernel.services -- Package init and public API.

Responsibility:
    Stateful services that hold the database session and the clock.  Each
    service owns the writes to one aggregate and only ever flushes;
    ``WorkflowEngine`` is the single place that commits, rolls back, writes
    the per-operation audit record and turns rejections into results.

Invariants enforced:
    - DI transparency: all service wiring for an operation is centralised
      in ``ServiceContainer``.
"""

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
from placement_kernel.services.sequence_service import SequenceService
from placement_kernel.services.settings_service import SettingsService
from placement_kernel.services.student_service import StudentService
from placement_kernel.services.workflow_engine import ServiceContainer, WorkflowEngine

__all__ = [
    "ApplicationService",
    "AppointmentService",
    "AuditorService",
    "CommissionService",
    "ContractService",
    "DocumentService",
    "FixRequestService",
    "LeadService",
    "LedgerService",
    "NotificationService",
    "PaymentService",
    "SequenceService",
    "ServiceContainer",
    "SettingsService",
    "StudentService",
    "WorkflowEngine",
]
