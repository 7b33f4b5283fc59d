"""
Module: placement_kernel.services.contract_service
Responsibility: Service agreements: creation with a seven-day signing
    window, one-time signature capture and the expiry sweep.
Architecture position: Kernel > Services.

Invariants enforced:
    - A contract is signed at most once, only from draft/pending_signature
      and only before expires_at.  After signing the row is immutable
      (ORM listener in db/immutability.py).
    - Signing moves the student from pending_contract to contract_signed;
      the student check runs before the contract is touched.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from placement_kernel.domain.pricing import (
    DEFAULT_PRICING,
    DEPOSIT_AMOUNT,
    NON_REFUNDABLE_AMOUNT,
    PricingTable,
    ScholarshipType,
)
from placement_kernel.domain.transitions import StudentStatus
from placement_kernel.exceptions import ContractNotSignableError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.contract import (
    CONTRACT_VALIDITY,
    SIGNABLE_CONTRACT_STATUSES,
    Contract,
    ContractStatus,
)
from placement_kernel.models.staff import Staff
from placement_kernel.models.student import Student
from placement_kernel.services.base import BaseService
from placement_kernel.services.student_service import StudentService

logger = get_logger("services.contract")


class ContractService(BaseService):
    def __init__(self, session, clock=None, student_service: StudentService | None = None):
        super().__init__(session, clock)
        self.students = student_service or StudentService(session, self.clock)

    def get(self, contract_id: UUID | str) -> Contract:
        return self._require(Contract, contract_id)

    def create(
        self,
        student_id: UUID | str,
        staff_id: UUID | str,
        pricing_version: int,
        amount: Decimal | None = None,
        pricing: PricingTable = DEFAULT_PRICING,
    ) -> Contract:
        """
        Draft a contract awaiting signature.

        ``amount`` defaults to the total service fee of the student's
        scholarship type, or the deposit when no type has been chosen.
        """
        student = self._require(Student, student_id)
        staff = self._require(Staff, staff_id)
        if amount is None:
            if student.scholarship_type:
                amount = pricing[ScholarshipType(student.scholarship_type)].total_service_fee
            else:
                amount = DEPOSIT_AMOUNT

        now = self.clock.now()
        contract = Contract(
            student_id=student.id,
            staff_id=staff.id,
            status=ContractStatus.PENDING_SIGNATURE.value,
            amount=self._money(amount),
            deposit_amount=DEPOSIT_AMOUNT,
            non_refundable_amount=NON_REFUNDABLE_AMOUNT,
            pricing_version=pricing_version,
            created_at=now,
            expires_at=now + CONTRACT_VALIDITY,
        )
        self.session.add(contract)
        self.session.flush()
        logger.info(
            "contract_created",
            extra={
                "contract_id": str(contract.id),
                "student_id": str(student.id),
                "amount": contract.amount,
                "expires_at": contract.expires_at,
            },
        )
        return contract

    def sign(self, contract_id: UUID | str, signature_data: str) -> Contract:
        """
        Capture the signature and advance the student.

        Raises:
            ContractNotSignableError: already signed, expired, or past
                its signing window.
            InvalidTransitionError: the student cannot reach contract_signed.
        """
        contract = self.get(contract_id)
        now = self.clock.now()
        if contract.status not in SIGNABLE_CONTRACT_STATUSES or contract.is_expired_at(now):
            raise ContractNotSignableError(str(contract.id), contract.status)

        student = self.students.get(contract.student_id)
        needs_status = self.students.check_advance(student, StudentStatus.CONTRACT_SIGNED)

        contract.status = ContractStatus.SIGNED.value
        contract.signed_at = now
        contract.signature_data = signature_data
        contract.updated_at = now
        self.session.flush()

        if needs_status:
            self.students.apply_status(student, StudentStatus.CONTRACT_SIGNED, "contract signed")

        logger.info(
            "contract_signed",
            extra={"contract_id": str(contract.id), "student_id": str(student.id)},
        )
        return contract

    def expire_due(self) -> list[Contract]:
        """Mark every unsigned contract past its window expired."""
        now = self.clock.now()
        candidates = self.session.execute(
            select(Contract).where(Contract.status.in_(sorted(SIGNABLE_CONTRACT_STATUSES)))
        ).scalars().all()
        expired = [contract for contract in candidates if contract.is_expired_at(now)]
        for contract in expired:
            contract.status = ContractStatus.EXPIRED.value
            contract.updated_at = now
        self.session.flush()
        if expired:
            logger.info("contracts_expired", extra={"count": len(expired)})
        return expired
