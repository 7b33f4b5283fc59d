"""
Module: placement_kernel.services.fix_request_service
Responsibility: Correction requests raised against a locked student
    profile and their admin decision.
Architecture position: Kernel > Services.

An approved request is applied through StudentService.update, so the
profile lock filter still decides whether the value lands.  Approval
does not bypass the lock; an admin who wants the change applied unlocks
the field first.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from placement_kernel.exceptions import InvalidTransitionError, PreconditionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.fix_request import FixRequest, FixRequestStatus
from placement_kernel.models.student import PROFILE_FIELDS
from placement_kernel.services.base import BaseService
from placement_kernel.services.student_service import StudentService

logger = get_logger("services.fix_request")


class FixRequestService(BaseService):
    def __init__(self, session, clock=None, student_service: StudentService | None = None):
        super().__init__(session, clock)
        self.students = student_service or StudentService(session, self.clock)

    def submit(
        self,
        student_id: UUID | str,
        field_name: str,
        requested_value: str,
        reason: str,
    ) -> FixRequest:
        student = self.students.get(student_id)
        if field_name not in PROFILE_FIELDS:
            raise PreconditionError(f"Field cannot be corrected: {field_name}")

        current = getattr(student, field_name)
        fix_request = FixRequest(
            student_id=student.id,
            field_name=field_name,
            current_value=None if current is None else str(current),
            requested_value=requested_value,
            reason=reason,
            status=FixRequestStatus.PENDING.value,
            created_at=self.clock.now(),
        )
        self.session.add(fix_request)
        self.session.flush()
        logger.info(
            "fix_request_submitted",
            extra={
                "fix_request_id": str(fix_request.id),
                "student_id": str(student.id),
                "field_name": field_name,
            },
        )
        return fix_request

    def process(
        self,
        fix_request_id: UUID | str,
        processed_by: str,
        approved: bool,
        admin_notes: str | None = None,
    ) -> dict[str, Any]:
        """Decide a pending request; returns the fields actually applied."""
        fix_request = self._require(FixRequest, fix_request_id)
        target = FixRequestStatus.APPROVED if approved else FixRequestStatus.REJECTED
        if fix_request.status != FixRequestStatus.PENDING.value:
            raise InvalidTransitionError(
                "FixRequest", str(fix_request.id), fix_request.status, target.value
            )

        now = self.clock.now()
        fix_request.status = target.value
        fix_request.processed_by = processed_by
        fix_request.processed_at = now
        fix_request.admin_notes = admin_notes
        fix_request.updated_at = now
        self.session.flush()

        applied: dict[str, Any] = {}
        if approved:
            applied = self.students.update(
                fix_request.student_id,
                {fix_request.field_name: fix_request.requested_value},
            )

        logger.info(
            "fix_request_processed",
            extra={
                "fix_request_id": str(fix_request.id),
                "approved": approved,
                "applied_fields": sorted(applied),
            },
        )
        return applied
