"""
Module: placement_kernel.services.payment_service
Responsibility: Invoices, payments and refunds, and the ledger entries
    and student money buckets they move.
Architecture position: Kernel > Services.  Delegates commission checks to
    CommissionService and ledger writes to LedgerService.

Invariants enforced:
    - An invoice is paid at most once; each payment appends exactly one
      credit/payment ledger entry.
    - A deposit payment adds to student.deposit_paid and then runs the
      commission trigger check in the same transaction, so two concurrent
      deposit payments cannot both trigger.
    - refundable_amount = max(amount - retained_costs, 0), fixed at request
      time.  An approved refund appends one debit/refund entry flagged
      is_reversal; nothing already in the ledger is edited.

Failure modes:
    - EntityNotFoundError for unknown invoices, refunds or students.
    - InvoiceAlreadyPaidError when paying a paid or refunded invoice.
    - InvalidTransitionError when processing a refund that is not pending.
    - PreconditionError for bad amounts or currencies.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from placement_kernel.db.types import InvalidCurrencyError, validate_currency
from placement_kernel.domain.settings import SystemSettings
from placement_kernel.exceptions import (
    InvalidTransitionError,
    InvoiceAlreadyPaidError,
    PreconditionError,
)
from placement_kernel.logging_config import get_logger
from placement_kernel.models.commission import Commission
from placement_kernel.models.invoice import (
    Invoice,
    InvoiceStatus,
    InvoiceType,
    RefundReason,
    RefundRequest,
    RefundStatus,
)
from placement_kernel.models.ledger import EntryCategory, EntryType
from placement_kernel.models.student import Student
from placement_kernel.services.base import BaseService
from placement_kernel.services.commission_service import CommissionService
from placement_kernel.services.ledger_service import LedgerService

logger = get_logger("services.payment")

DEFAULT_PAYMENT_TERMS = timedelta(days=14)


class PaymentService(BaseService):
    def __init__(
        self,
        session,
        clock=None,
        ledger_service: LedgerService | None = None,
        commission_service: CommissionService | None = None,
    ):
        super().__init__(session, clock)
        self.ledger = ledger_service or LedgerService(session, self.clock)
        self.commissions = commission_service or CommissionService(session, self.clock)
        self.triggered: Commission | None = None

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def create_invoice(
        self,
        student_id: UUID | str,
        type: InvoiceType | str,
        amount: Decimal | int | str,
        description: str = "",
        due_date: datetime | None = None,
        currency: str = "USD",
        created_by: str | None = None,
    ) -> Invoice:
        student = self._require(Student, student_id)
        try:
            invoice_type = InvoiceType(type)
        except ValueError as exc:
            raise PreconditionError(f"Unknown invoice type: {type}") from exc
        try:
            currency = validate_currency(currency)
        except InvalidCurrencyError as exc:
            raise PreconditionError(str(exc)) from exc
        amount = self._money(amount)
        if amount <= 0:
            raise PreconditionError(f"Invoice amount must be positive, got {amount}")

        now = self.clock.now()
        invoice = Invoice(
            student_id=student.id,
            type=invoice_type.value,
            amount=amount,
            currency=currency,
            status=InvoiceStatus.PENDING.value,
            due_date=due_date or now + DEFAULT_PAYMENT_TERMS,
            description=description or f"{invoice_type.value.replace('_', ' ').title()} invoice",
            created_by=created_by,
            created_at=now,
        )
        self.session.add(invoice)
        self.session.flush()
        logger.info(
            "invoice_created",
            extra={
                "invoice_id": str(invoice.id),
                "student_id": str(student.id),
                "type": invoice.type,
                "amount": amount,
            },
        )
        return invoice

    def record_payment(
        self,
        invoice_id: UUID | str,
        settings: SystemSettings,
        recorded_by: str = "system",
    ) -> Invoice:
        """
        Mark an invoice paid and credit the ledger.

        Postconditions:
            - invoice.status == paid, paid_at set.
            - One credit/payment ledger entry for invoice.amount.
            - Deposit invoices: deposit_paid increased and the commission
              trigger evaluated (result in ``self.triggered``).
            - Balance invoices: balance_paid increased.
        """
        invoice = self._require(Invoice, invoice_id)
        if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.REFUNDED.value):
            raise InvoiceAlreadyPaidError(str(invoice.id))
        student = self._require(Student, invoice.student_id)

        now = self.clock.now()
        invoice.status = InvoiceStatus.PAID.value
        invoice.paid_at = now
        invoice.updated_at = now

        self.ledger.append(
            type=EntryType.CREDIT,
            category=EntryCategory.PAYMENT,
            amount=invoice.amount,
            description=invoice.description,
            student_id=student.id,
            invoice_id=invoice.id,
            created_by=recorded_by,
        )

        if invoice.type == InvoiceType.DEPOSIT.value:
            student.deposit_paid += invoice.amount
            student.updated_at = now
            self.session.flush()
            self.triggered = self.commissions.trigger_if_due(student, settings)
        elif invoice.type == InvoiceType.BALANCE.value:
            student.balance_paid += invoice.amount
            student.updated_at = now
            self.session.flush()

        logger.info(
            "payment_recorded",
            extra={
                "invoice_id": str(invoice.id),
                "student_id": str(student.id),
                "type": invoice.type,
                "amount": invoice.amount,
                "deposit_paid": student.deposit_paid,
                "commission_triggered": self.triggered is not None,
            },
        )
        return invoice

    def mark_overdue(self) -> list[Invoice]:
        """Move pending invoices past their due date to overdue."""
        now = self.clock.now()
        pending = self.session.execute(
            select(Invoice).where(Invoice.status == InvoiceStatus.PENDING.value)
        ).scalars().all()
        overdue = [invoice for invoice in pending if invoice.due_date < now]
        for invoice in overdue:
            invoice.status = InvoiceStatus.OVERDUE.value
            invoice.updated_at = now
        self.session.flush()
        if overdue:
            logger.info("invoices_overdue", extra={"count": len(overdue)})
        return overdue

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def submit_refund_request(
        self,
        student_id: UUID | str,
        amount: Decimal | int | str,
        reason: RefundReason | str,
        requested_by: str,
        invoice_id: UUID | str | None = None,
        retained_costs: Decimal | int | str = Decimal("0"),
        notes: str | None = None,
    ) -> RefundRequest:
        student = self._require(Student, student_id)
        invoice = self._require(Invoice, invoice_id) if invoice_id is not None else None
        if invoice is not None and invoice.student_id != student.id:
            raise PreconditionError("Refund invoice belongs to another student")
        try:
            refund_reason = RefundReason(reason)
        except ValueError as exc:
            raise PreconditionError(f"Unknown refund reason: {reason}") from exc

        amount = self._money(amount)
        retained = self._money(retained_costs)
        if amount < 0 or retained < 0:
            raise PreconditionError("Refund amounts must not be negative")

        refund = RefundRequest(
            student_id=student.id,
            invoice_id=invoice.id if invoice else None,
            amount=amount,
            reason=refund_reason.value,
            retained_costs=retained,
            refundable_amount=max(amount - retained, Decimal("0")),
            status=RefundStatus.PENDING.value,
            requested_by=requested_by,
            notes=notes,
            created_at=self.clock.now(),
        )
        self.session.add(refund)
        self.session.flush()
        logger.info(
            "refund_requested",
            extra={
                "refund_id": str(refund.id),
                "student_id": str(student.id),
                "amount": amount,
                "refundable_amount": refund.refundable_amount,
            },
        )
        return refund

    def process_refund(
        self,
        refund_id: UUID | str,
        approved_by: str,
        approved: bool,
    ) -> RefundRequest:
        refund = self._require(RefundRequest, refund_id)
        if refund.status != RefundStatus.PENDING.value:
            target = RefundStatus.APPROVED if approved else RefundStatus.REJECTED
            raise InvalidTransitionError("RefundRequest", str(refund.id), refund.status, target.value)

        now = self.clock.now()
        refund.status = (RefundStatus.APPROVED if approved else RefundStatus.REJECTED).value
        refund.processed_by = approved_by
        refund.processed_at = now
        refund.updated_at = now

        if approved:
            self.ledger.append(
                type=EntryType.DEBIT,
                category=EntryCategory.REFUND,
                amount=refund.refundable_amount,
                description=f"Refund: {refund.reason}",
                student_id=refund.student_id,
                invoice_id=refund.invoice_id,
                refund_request_id=refund.id,
                is_reversal=True,
                created_by=approved_by,
            )
            if refund.invoice_id is not None:
                invoice = self._require(Invoice, refund.invoice_id)
                invoice.status = InvoiceStatus.REFUNDED.value
                invoice.updated_at = now
        self.session.flush()

        logger.info(
            "refund_processed",
            extra={
                "refund_id": str(refund.id),
                "approved": approved,
                "refundable_amount": refund.refundable_amount,
            },
        )
        return refund
