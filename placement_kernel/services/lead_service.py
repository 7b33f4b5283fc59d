"""
Module: placement_kernel.services.lead_service
Responsibility: Lead capture, contact tracking, status transitions and
    conversion of a lead into a Student.
Architecture position: Kernel > Services.

Invariants enforced:
    - Lead status changes follow LEAD_TRANSITIONS; converted and lost are
      terminal.
    - A lead converts at most once; conversion creates exactly one Student
      and writes the back-reference in the same flush.

Failure modes:
    - EntityNotFoundError for an unknown lead or staff member.
    - AlreadyConvertedError for a second conversion.
    - InvalidTransitionError for any other disallowed status change.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from placement_kernel.domain.transitions import (
    LEAD_TRANSITIONS,
    LeadStatus,
    StudentStatus,
    coerce_status,
    is_allowed,
    step_for,
)
from placement_kernel.exceptions import AlreadyConvertedError, InvalidTransitionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.lead import Lead
from placement_kernel.models.staff import Staff
from placement_kernel.models.student import Student
from placement_kernel.services.base import BaseService, coerce_id

logger = get_logger("services.lead")


class LeadService(BaseService):
    """Write operations on leads."""

    def get(self, lead_id: UUID | str) -> Lead:
        return self._require(Lead, lead_id)

    def add(
        self,
        name: str,
        email: str,
        phone: str | None = None,
        source: str = "website",
        assigned_to: UUID | str | None = None,
        **details: Any,
    ) -> Lead:
        owner_id = None
        if assigned_to is not None:
            owner_id = self._require(Staff, assigned_to).id

        lead = Lead(
            name=name,
            email=email,
            phone=phone,
            source=source,
            assigned_to=owner_id,
            status=LeadStatus.NEW.value,
            created_at=self.clock.now(),
        )
        for key, value in details.items():
            if key in Lead.EDITABLE_FIELDS:
                setattr(lead, key, value)
        self.session.add(lead)
        self.session.flush()
        logger.info(
            "lead_created",
            extra={"lead_id": str(lead.id), "source": source, "assigned_to": str(owner_id)},
        )
        return lead

    def update(self, lead_id: UUID | str, updates: dict[str, Any]) -> dict[str, Any]:
        """Apply editable fields; ``status`` and unknown keys are ignored."""
        lead = self.get(lead_id)
        applied = {}
        for key, value in updates.items():
            if key not in Lead.EDITABLE_FIELDS:
                continue
            if key == "assigned_to" and value is not None:
                value = self._require(Staff, value).id
            setattr(lead, key, value)
            applied[key] = value
        if applied:
            lead.updated_at = self.clock.now()
            self.session.flush()
        logger.info(
            "lead_updated",
            extra={"lead_id": str(lead.id), "applied_fields": sorted(applied)},
        )
        return applied

    def record_contact(self, lead_id: UUID | str) -> Lead:
        lead = self.get(lead_id)
        lead.last_contact_at = self.clock.now()
        lead.updated_at = lead.last_contact_at
        self.session.flush()
        logger.info("lead_contacted", extra={"lead_id": str(lead.id)})
        return lead

    def change_status(self, lead_id: UUID | str, new_status: LeadStatus | str) -> tuple[str, str]:
        lead = self.get(lead_id)
        current = LeadStatus(lead.status)
        target = coerce_status(LeadStatus, new_status)
        if target is None or not is_allowed(LEAD_TRANSITIONS, current, target):
            raise InvalidTransitionError(
                "Lead", str(lead.id), current.value, str(getattr(target, "value", new_status))
            )

        now = self.clock.now()
        lead.status = target.value
        lead.updated_at = now
        if target is LeadStatus.CONVERTED and lead.converted_at is None:
            lead.converted_at = now
        self.session.flush()
        logger.info(
            "lead_status_changed",
            extra={"lead_id": str(lead.id), "from_status": current.value, "to_status": target.value},
        )
        return current.value, target.value

    def convert(self, lead_id: UUID | str, staff_id: UUID | str) -> Student:
        """
        Create a Student from a lead and mark the lead converted.

        Preconditions:
            - The lead exists and has not been converted.
            - ``converted`` is reachable from the lead's status (not ``lost``).
            - The staff member exists.
        Postconditions:
            - A new Student in ``pending_contract`` at step 1.
            - lead.status == converted and lead.converted_to_student_id set.
        """
        lead = self.get(lead_id)
        current = LeadStatus(lead.status)
        if current is LeadStatus.CONVERTED or lead.converted_to_student_id is not None:
            raise AlreadyConvertedError(str(lead.id), str(lead.converted_to_student_id))
        if not is_allowed(LEAD_TRANSITIONS, current, LeadStatus.CONVERTED):
            raise InvalidTransitionError(
                "Lead", str(lead.id), current.value, LeadStatus.CONVERTED.value
            )
        staff = self._require(Staff, coerce_id(staff_id, "Staff"))

        now = self.clock.now()
        student = Student(
            lead_id=lead.id,
            name=lead.name,
            email=lead.email,
            phone=lead.phone,
            status=StudentStatus.PENDING_CONTRACT.value,
            current_step=step_for(StudentStatus.PENDING_CONTRACT),
            assigned_staff_id=staff.id,
            unlocked_fields=[],
            created_at=now,
        )
        self.session.add(student)
        self.session.flush()

        lead.status = LeadStatus.CONVERTED.value
        lead.converted_at = now
        lead.converted_to_student_id = student.id
        lead.updated_at = now
        self.session.flush()

        logger.info(
            "lead_converted",
            extra={
                "lead_id": str(lead.id),
                "student_id": str(student.id),
                "staff_id": str(staff.id),
                "from_status": current.value,
            },
        )
        return student
