"""
Module: placement_kernel.services.application_service
Responsibility: University applications: creation under the 2+3 batch
    strategy, admin review, submission to the university, returns,
    offers, and the cascades each step triggers on the Student and its
    documents.
Architecture position: Kernel > Services.  Composes StudentService and
    DocumentService; the workflow engine owns the transaction, audit and
    notifications.

Invariants enforced:
    - Application status follows APPLICATION_TRANSITIONS.
    - Every cascade validates all of its steps (application transition and
      student transition) before the first write.  A step that cannot be
      applied raises, and the engine rolls the whole operation back.
    - Student cascades use advance semantics: a student already in the
      target status is left alone, so several applications for one student
      can move through review without fighting over the student status.
    - Admin review never moves a student backwards.  Submitting a backup
      batch for a student who is already at the university locks the
      profile but keeps the student status, and rejecting it unlocks the
      profile without returning the student to staff.

Failure modes:
    - EntityNotFoundError for unknown applications, students or universities.
    - InvalidTransitionError for an application or student step that is not
      in its table.
    - BatchLimitExceededError / DuplicateUniversityError on creation.
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import select

from placement_kernel.domain.batch_strategy import check_batch_slot
from placement_kernel.domain.transitions import (
    APPLICATION_TRANSITIONS,
    ApplicationStatus,
    StudentStatus,
    is_allowed,
)
from placement_kernel.exceptions import InvalidTransitionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.application import University, UniversityApplication
from placement_kernel.models.student import Student
from placement_kernel.services.base import BaseService
from placement_kernel.services.document_service import DocumentService
from placement_kernel.services.student_service import StudentService

logger = get_logger("services.application")


class ApplicationService(BaseService):
    """
    Drives the application sub-state-machine.

    Every public method returns the application (or student) it changed so
    the engine can audit it and notify the right people.
    """

    def __init__(
        self,
        session,
        clock=None,
        student_service: StudentService | None = None,
        document_service: DocumentService | None = None,
    ):
        super().__init__(session, clock)
        self.students = student_service or StudentService(session, self.clock)
        self.documents = document_service or DocumentService(session, self.clock)

    def get(self, application_id: UUID | str) -> UniversityApplication:
        return self._require(UniversityApplication, application_id)

    def _check(self, application: UniversityApplication, target: ApplicationStatus) -> None:
        current = ApplicationStatus(application.status)
        if not is_allowed(APPLICATION_TRANSITIONS, current, target):
            raise InvalidTransitionError(
                "UniversityApplication", str(application.id), current.value, target.value
            )

    def _set_status(self, application: UniversityApplication, target: ApplicationStatus) -> str:
        from_status = application.status
        application.status = target.value
        application.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "application_status_changed",
            extra={
                "application_id": str(application.id),
                "student_id": str(application.student_id),
                "from_status": from_status,
                "to_status": target.value,
            },
        )
        return from_status

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(
        self,
        student_id: UUID | str,
        university_id: UUID | str,
        program: str,
        batch: int,
        priority: int = 1,
    ) -> UniversityApplication:
        student = self._require(Student, student_id)
        university = self._require(University, university_id)

        existing = self.session.execute(
            select(UniversityApplication.university_id, UniversityApplication.batch).where(
                UniversityApplication.student_id == student.id
            )
        ).all()
        check_batch_slot(student.id, university.id, batch, [tuple(row) for row in existing])

        application = UniversityApplication(
            student_id=student.id,
            university_id=university.id,
            program=program,
            batch=batch,
            priority=priority,
            status=ApplicationStatus.DRAFT.value,
            returned_fields=[],
            created_at=self.clock.now(),
        )
        self.session.add(application)
        self.session.flush()
        logger.info(
            "application_created",
            extra={
                "application_id": str(application.id),
                "student_id": str(student.id),
                "university_id": str(university.id),
                "batch": batch,
            },
        )
        return application

    # ------------------------------------------------------------------
    # Admin review
    # ------------------------------------------------------------------

    def submit_to_admin(self, application_id: UUID | str, submitted_by: str) -> UniversityApplication:
        """
        draft/rejected -> pending_admin; the whole profile is locked for
        review.  The student moves to submitted_to_admin unless they are
        already at or past that stage (a backup batch going to review).
        """
        application = self.get(application_id)
        student = self.students.get(application.student_id)
        self._check(application, ApplicationStatus.PENDING_ADMIN)
        needs_status = self.students.check_follow(student, StudentStatus.SUBMITTED_TO_ADMIN)

        self._set_status(application, ApplicationStatus.PENDING_ADMIN)
        application.submitted_to_admin_at = self.clock.now()
        application.admin_notes = None
        self.students.lock_profile(student, submitted_by)
        if needs_status:
            self.students.apply_status(student, StudentStatus.SUBMITTED_TO_ADMIN, "submitted for review")
        return application

    def approve(self, application_id: UUID | str, approved_by: str) -> UniversityApplication:
        application = self.get(application_id)
        self._check(application, ApplicationStatus.APPROVED)
        self._set_status(application, ApplicationStatus.APPROVED)
        application.approved_at = self.clock.now()
        application.approved_by = approved_by
        self.session.flush()
        return application

    def reject(self, application_id: UUID | str, reason: str) -> UniversityApplication:
        """
        pending_admin -> rejected; the profile is fully unlocked.  Only a
        student still in submitted_to_admin goes back to returned_by_admin.
        """
        application = self.get(application_id)
        student = self.students.get(application.student_id)
        self._check(application, ApplicationStatus.REJECTED)
        needs_status = student.status == StudentStatus.SUBMITTED_TO_ADMIN.value

        self._set_status(application, ApplicationStatus.REJECTED)
        application.admin_notes = reason
        self.students.unlock_profile(student)
        if needs_status:
            self.students.apply_status(student, StudentStatus.RETURNED_BY_ADMIN, reason)
        return application

    # ------------------------------------------------------------------
    # University
    # ------------------------------------------------------------------

    def submit_to_university(self, application_id: UUID | str) -> UniversityApplication:
        """approved/returned_by_school -> submitted_to_uni; documents locked."""
        application = self.get(application_id)
        student = self.students.get(application.student_id)
        self._check(application, ApplicationStatus.SUBMITTED_TO_UNI)
        needs_status = self.students.check_advance(student, StudentStatus.SUBMITTED_TO_UNI)

        self._set_status(application, ApplicationStatus.SUBMITTED_TO_UNI)
        application.submitted_to_uni_at = self.clock.now()
        self.documents.lock_all(student.id)
        if needs_status:
            self.students.apply_status(student, StudentStatus.SUBMITTED_TO_UNI, "sent to university")
        return application

    def return_from_school(
        self,
        application_id: UUID | str,
        reason: str,
        fields: Iterable[str],
    ) -> UniversityApplication:
        """
        submitted_to_uni -> returned_by_school.

        Only ``fields`` are reopened on the student profile; the profile
        stays locked for everything else.
        """
        fields = list(fields)
        application = self.get(application_id)
        student = self.students.get(application.student_id)
        self._check(application, ApplicationStatus.RETURNED_BY_SCHOOL)
        needs_status = self.students.check_advance(student, StudentStatus.RETURNED_BY_SCHOOL)

        self._set_status(application, ApplicationStatus.RETURNED_BY_SCHOOL)
        application.returned_at = self.clock.now()
        application.return_reason = reason
        application.returned_fields = sorted(set(fields))
        self.students.unlock_fields(student, fields)
        if needs_status:
            self.students.apply_status(student, StudentStatus.RETURNED_BY_SCHOOL, reason)
        return application

    def record_offer_received(self, application_id: UUID | str) -> UniversityApplication:
        application = self.get(application_id)
        student = self.students.get(application.student_id)
        self._check(application, ApplicationStatus.ACCEPTED)
        needs_status = self.students.check_advance(student, StudentStatus.OFFER_RECEIVED)

        self._set_status(application, ApplicationStatus.ACCEPTED)
        application.response_at = self.clock.now()
        if needs_status:
            self.students.apply_status(student, StudentStatus.OFFER_RECEIVED, "offer received")
        return application

    def record_offer_declined(self, application_id: UUID | str, reason: str | None = None) -> UniversityApplication:
        """The university declined; the student status is left as is."""
        application = self.get(application_id)
        self._check(application, ApplicationStatus.DECLINED)
        self._set_status(application, ApplicationStatus.DECLINED)
        application.response_at = self.clock.now()
        if reason:
            application.return_reason = reason
        self.session.flush()
        return application

    def release_offer(self, student_id: UUID | str) -> Student:
        """Reveal the offer documents and move the student to offer_released."""
        student = self.students.get(student_id)
        self.students.check_transition(student, StudentStatus.OFFER_RELEASED)

        student.offers_unlocked = True
        revealed = self.documents.reveal_offer_documents(student.id)
        self.students.apply_status(student, StudentStatus.OFFER_RELEASED, "offer released")
        logger.info(
            "offer_released",
            extra={"student_id": str(student.id), "documents_revealed": revealed},
        )
        return student
