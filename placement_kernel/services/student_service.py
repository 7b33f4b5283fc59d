"""
Module: placement_kernel.services.student_service
Responsibility: Student status transitions, field-level profile locking,
    scholarship pricing and passport validation.
Architecture position: Kernel > Services.  Used directly by the workflow
    engine and by the application/contract/lead services for cascades.

Invariants enforced:
    - Status changes follow STUDENT_TRANSITIONS; current_step is recomputed
      from STUDENT_STEPS on every status write.
    - Locked profiles accept only keys in unlocked_fields | {status,
      offers_unlocked}; every other key is dropped silently (partial apply).
      This differs on purpose from the whole-record Document lock.
    - unlock_fields replaces the unlocked set; it never unions and never
      touches is_profile_locked.

Failure modes:
    - EntityNotFoundError for an unknown student id.
    - InvalidTransitionError for a status change not in the table.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from placement_kernel.db.types import to_utc
from placement_kernel.domain.clock import add_months
from placement_kernel.domain.pricing import DEFAULT_PRICING, PricingTable, ScholarshipType, final_balance
from placement_kernel.domain.transitions import (
    STUDENT_TRANSITIONS,
    StudentStatus,
    coerce_status,
    is_allowed,
    step_for,
)
from placement_kernel.exceptions import InvalidTransitionError, PreconditionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.staff import Staff
from placement_kernel.models.student import Student, UPDATABLE_FIELDS
from placement_kernel.services.base import BaseService

logger = get_logger("services.student")


def _parse_expiry(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    try:
        return to_utc(datetime.fromisoformat(value))
    except ValueError as exc:
        raise PreconditionError(f"Invalid passport expiry: {value}") from exc


class StudentService(BaseService):
    """
    Owns every write to a Student row.

    Contract:
        ``check_transition`` / ``check_advance`` validate without mutating so
        cascades can validate every step first; ``apply_status`` performs
        the write.
    """

    def get(self, student_id: UUID | str) -> Student:
        return self._require(Student, student_id)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def check_transition(self, student: Student, new_status: StudentStatus | str) -> StudentStatus:
        """Strict check: the destination must be in the table (no same-state no-op)."""
        target = coerce_status(StudentStatus, new_status)
        current = StudentStatus(student.status)
        if target is None or not is_allowed(STUDENT_TRANSITIONS, current, target):
            raise InvalidTransitionError(
                "Student", str(student.id), current.value, str(getattr(target, "value", new_status))
            )
        return target

    def check_advance(self, student: Student, target: StudentStatus) -> bool:
        """
        Cascade check: True if a change is needed, False if already there.

        Raises:
            InvalidTransitionError: the student is elsewhere and cannot move
                to ``target``.
        """
        if StudentStatus(student.status) == target:
            return False
        self.check_transition(student, target)
        return True

    def check_follow(self, student: Student, target: StudentStatus) -> bool:
        """
        Like ``check_advance``, but a student already at or past the stage of
        ``target`` is left where they are instead of rejected.

        A later-batch application going to review must not drag a student
        who is already at the university back to submitted_to_admin.

        Raises:
            InvalidTransitionError: the student has not reached that stage yet.
        """
        current = StudentStatus(student.status)
        if current == target:
            return False
        if is_allowed(STUDENT_TRANSITIONS, current, target):
            return True
        if step_for(current) >= step_for(target):
            logger.info(
                "student_status_kept",
                extra={
                    "student_id": str(student.id),
                    "status": current.value,
                    "skipped_status": target.value,
                },
            )
            return False
        self.check_transition(student, target)
        return True

    def apply_status(
        self,
        student: Student,
        target: StudentStatus,
        reason: str | None = None,
    ) -> tuple[str, str]:
        """Write an already-validated status; returns (from, to)."""
        from_status = student.status
        student.status = target.value
        student.current_step = step_for(target)
        student.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "student_status_changed",
            extra={
                "student_id": str(student.id),
                "from_status": from_status,
                "to_status": target.value,
                "current_step": student.current_step,
                "reason": reason,
            },
        )
        return from_status, target.value

    def change_status(
        self,
        student_id: UUID | str,
        new_status: StudentStatus | str,
        reason: str | None = None,
    ) -> tuple[str, str]:
        student = self.get(student_id)
        target = self.check_transition(student, new_status)
        return self.apply_status(student, target, reason)

    def advance(self, student: Student, target: StudentStatus) -> None:
        if self.check_advance(student, target):
            self.apply_status(student, target)

    # ------------------------------------------------------------------
    # Profile updates and locks
    # ------------------------------------------------------------------

    def update(self, student_id: UUID | str, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Apply the permitted subset of ``updates``; returns what was applied.

        Unknown keys are ignored.  A ``status`` value that is not a legal
        transition from the current status is dropped like any other
        disallowed key.
        """
        student = self.get(student_id)
        writable = student.writable_fields()

        applied: dict[str, Any] = {}
        dropped = sorted(set(updates) - writable)
        for key, value in updates.items():
            if key not in writable:
                continue
            if key == "status":
                target = coerce_status(StudentStatus, value)
                if target is None or target.value == student.status or not is_allowed(
                    STUDENT_TRANSITIONS, StudentStatus(student.status), target
                ):
                    dropped.append(key)
                    continue
                student.status = target.value
                student.current_step = step_for(target)
                applied[key] = target.value
                continue
            if key == "assigned_staff_id":
                value = self._require(Staff, value).id
            if key == "passport_expiry" and value is not None:
                value = _parse_expiry(value)
            setattr(student, key, value)
            applied[key] = value

        if applied:
            student.updated_at = self.clock.now()
            self.session.flush()

        logger.info(
            "student_updated",
            extra={
                "student_id": str(student.id),
                "applied_fields": sorted(applied),
                "dropped_fields": sorted(dropped),
                "is_profile_locked": student.is_profile_locked,
            },
        )
        return applied

    def lock_profile(self, student: Student, locked_by: str) -> None:
        student.is_profile_locked = True
        student.locked_at = self.clock.now()
        student.locked_by = locked_by
        student.unlocked_fields = []
        student.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "student_profile_locked",
            extra={"student_id": str(student.id), "locked_by": locked_by},
        )

    def unlock_profile(self, student: Student) -> None:
        student.is_profile_locked = False
        student.locked_at = None
        student.locked_by = None
        student.unlocked_fields = []
        student.updated_at = self.clock.now()
        self.session.flush()
        logger.info("student_profile_unlocked", extra={"student_id": str(student.id)})

    def unlock_fields(self, student: Student, fields: Iterable[str]) -> list[str]:
        """Replace the unlocked set; only known updatable fields are kept."""
        requested = set(fields)
        unlocked = sorted(requested & UPDATABLE_FIELDS)
        unknown = sorted(requested - UPDATABLE_FIELDS)
        if unknown:
            logger.warning(
                "unlock_fields_dropped",
                extra={"student_id": str(student.id), "dropped_fields": unknown},
            )
        student.unlocked_fields = unlocked
        student.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "student_fields_unlocked",
            extra={"student_id": str(student.id), "unlocked_fields": unlocked},
        )
        return unlocked

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def set_scholarship_type(
        self,
        student_id: UUID | str,
        scholarship_type: ScholarshipType | str,
        pricing: PricingTable = DEFAULT_PRICING,
    ) -> Decimal:
        """Set the type and overwrite total_owed with its client-pays amount."""
        student = self.get(student_id)
        try:
            parsed = ScholarshipType(scholarship_type)
        except ValueError as exc:
            raise PreconditionError(f"Unknown scholarship type: {scholarship_type}") from exc

        student.scholarship_type = parsed.value
        # Last write wins: any manual adjustment of total_owed is replaced.
        student.total_owed = pricing[parsed].client_pays
        student.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "scholarship_type_set",
            extra={
                "student_id": str(student.id),
                "scholarship_type": parsed.value,
                "total_owed": student.total_owed,
            },
        )
        return student.total_owed

    def calculate_final_balance(
        self,
        student_id: UUID | str,
        pricing: PricingTable = DEFAULT_PRICING,
    ) -> Decimal:
        student = self.get(student_id)
        return final_balance(student.scholarship_type, student.deposit_paid, pricing)

    def has_valid_passport(self, student_id: UUID | str, months: int) -> bool:
        """True iff the passport expires strictly after now + ``months``."""
        student = self.get(student_id)
        if student.passport_expiry is None:
            return False
        return student.passport_expiry > add_months(self.clock.now(), months)
