"""
Module: placement_kernel.services.commission_service
Responsibility: Staff commission lifecycle: trigger on a qualifying
    deposit, payout, void and clawback, with the staff member's pending,
    paid and total buckets kept in step.
Architecture position: Kernel > Services.  Called by PaymentService for the
    trigger and by the workflow engine for pay/void.

Invariants enforced:
    - At most one original (non-adjustment) commission per
      (staff, student, contract).  The check and the insert run inside the
      caller's transaction under the engine lock.
    - pending -> {paid, voided}; paid -> {clawback}.  voided and clawback
      are terminal.
    - A clawback never edits the paid record's amount; it adds a new pending
      adjustment record with amount = -original referencing the same
      staff, student and contract.
    - Commissions never touch the ledger.  The staff member's pending, paid
      and total buckets are the commission record; the ledger holds student
      money only.

Failure modes:
    - InvalidTransitionError for pay on a non-pending record, or void on a
      terminal one.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from placement_kernel.domain.pricing import DEPOSIT_AMOUNT
from placement_kernel.domain.settings import SystemSettings
from placement_kernel.domain.transitions import (
    COMMISSION_TRANSITIONS,
    CommissionStatus,
    is_allowed,
)
from placement_kernel.exceptions import EntityNotFoundError, InvalidTransitionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.commission import Commission
from placement_kernel.models.contract import Contract, ContractStatus
from placement_kernel.models.staff import Staff
from placement_kernel.models.student import Student
from placement_kernel.services.base import BaseService, coerce_id

logger = get_logger("services.commission")


class CommissionService(BaseService):
    """
    Owns Commission rows and the Staff commission buckets.

    Non-goals:
        - Does NOT decide when a deposit was paid; PaymentService calls
          ``trigger_if_due`` after crediting the deposit.
    """

    def find(self, commission_id: UUID | str) -> Commission | None:
        try:
            return self.session.get(Commission, coerce_id(commission_id, "Commission"))
        except EntityNotFoundError:
            return None

    # ------------------------------------------------------------------
    # Trigger
    # ------------------------------------------------------------------

    def _signed_contract(self, student_id: UUID) -> Contract | None:
        return self.session.execute(
            select(Contract)
            .where(Contract.student_id == student_id, Contract.status == ContractStatus.SIGNED.value)
            .order_by(Contract.signed_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _has_original(self, staff_id: UUID, student_id: UUID, contract_id: UUID) -> bool:
        existing = self.session.execute(
            select(Commission.id).where(
                Commission.staff_id == staff_id,
                Commission.student_id == student_id,
                Commission.contract_id == contract_id,
                Commission.adjusts_commission_id.is_(None),
            ).limit(1)
        ).scalar_one_or_none()
        return existing is not None

    def trigger_if_due(self, student: Student, settings: SystemSettings) -> Commission | None:
        """
        Create the pending commission for the student's staff member if the
        deposit threshold is met, a signed contract exists and no
        commission has been triggered for that contract yet.
        """
        if student.deposit_paid < DEPOSIT_AMOUNT:
            return None
        contract = self._signed_contract(student.id)
        if contract is None:
            logger.info(
                "commission_not_triggered",
                extra={"student_id": str(student.id), "reason": "no signed contract"},
            )
            return None
        if self._has_original(student.assigned_staff_id, student.id, contract.id):
            logger.debug(
                "commission_already_triggered",
                extra={"student_id": str(student.id), "contract_id": str(contract.id)},
            )
            return None

        staff = self._require(Staff, student.assigned_staff_id)
        amount = settings.commission_amount
        commission = Commission(
            staff_id=staff.id,
            student_id=student.id,
            contract_id=contract.id,
            amount=amount,
            status=CommissionStatus.PENDING.value,
            triggered_at=self.clock.now(),
        )
        self.session.add(commission)
        staff.pending_commission += amount
        staff.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "commission_triggered",
            extra={
                "commission_id": str(commission.id),
                "staff_id": str(staff.id),
                "student_id": str(student.id),
                "contract_id": str(contract.id),
                "amount": amount,
            },
        )
        return commission

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _check(self, commission: Commission, target: CommissionStatus) -> None:
        current = CommissionStatus(commission.status)
        if not is_allowed(COMMISSION_TRANSITIONS, current, target):
            raise InvalidTransitionError(
                "Commission", str(commission.id), current.value, target.value
            )

    def pay(self, commission_id: UUID | str, paid_by: str = "system") -> Commission:
        commission = self._require(Commission, commission_id)
        self._check(commission, CommissionStatus.PAID)
        staff = self._require(Staff, commission.staff_id)

        now = self.clock.now()
        commission.status = CommissionStatus.PAID.value
        commission.paid_at = now
        staff.pending_commission -= commission.amount
        staff.paid_commission += commission.amount
        staff.total_commission += commission.amount
        staff.updated_at = now

        self.session.flush()
        logger.info(
            "commission_paid",
            extra={
                "commission_id": str(commission.id),
                "staff_id": str(staff.id),
                "amount": commission.amount,
                "paid_by": paid_by,
            },
        )
        return commission

    def void(self, commission_id: UUID | str, reason: str) -> Commission:
        """
        Void a pending commission or claw back a paid one.

        Returns the record whose status changed.  A clawback also adds a
        pending adjustment (see ``find_adjustment``) that nets the staff
        member's buckets once it is paid.
        """
        commission = self._require(Commission, commission_id)
        current = CommissionStatus(commission.status)
        target = (
            CommissionStatus.CLAWBACK if current is CommissionStatus.PAID else CommissionStatus.VOIDED
        )
        self._check(commission, target)
        staff = self._require(Staff, commission.staff_id)
        now = self.clock.now()

        if target is CommissionStatus.VOIDED:
            commission.status = target.value
            commission.voided_at = now
            commission.void_reason = reason
            staff.pending_commission -= commission.amount
            staff.updated_at = now
            self.session.flush()
            logger.info(
                "commission_voided",
                extra={"commission_id": str(commission.id), "reason": reason},
            )
            return commission

        commission.status = target.value
        commission.clawback_at = now
        commission.clawback_reason = reason
        adjustment = Commission(
            staff_id=commission.staff_id,
            student_id=commission.student_id,
            contract_id=commission.contract_id,
            amount=-commission.amount,
            status=CommissionStatus.PENDING.value,
            triggered_at=now,
            adjusts_commission_id=commission.id,
        )
        self.session.add(adjustment)
        staff.pending_commission += adjustment.amount
        staff.updated_at = now
        self.session.flush()
        logger.info(
            "commission_clawback",
            extra={
                "commission_id": str(commission.id),
                "adjustment_id": str(adjustment.id),
                "amount": adjustment.amount,
                "reason": reason,
            },
        )
        return commission

    def find_adjustment(self, commission_id: UUID) -> Commission | None:
        return self.session.execute(
            select(Commission).where(Commission.adjusts_commission_id == commission_id)
        ).scalar_one_or_none()
