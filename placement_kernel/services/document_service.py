"""
Module: placement_kernel.services.document_service
Responsibility: Student documents: upload, edits, verification, error
    marking and the whole-record lock used once an application has gone to
    a university.
Architecture position: Kernel > Services.

Invariants enforced:
    - Whole-record lock: while is_locked is true, an update that does not
      itself set is_locked=False is rejected in full (DocumentLockedError).
      Verification and error marking are updates for this purpose.
    - Offer documents (admission_letter, jw202) are created hidden until the
      offer is released.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select

from placement_kernel.domain.transitions import coerce_status
from placement_kernel.exceptions import DocumentLockedError, PreconditionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.document import (
    DOCUMENT_UPDATABLE_FIELDS,
    OFFER_DOCUMENT_TYPES,
    Document,
    DocumentStatus,
    DocumentType,
)
from placement_kernel.models.student import Student
from placement_kernel.services.base import BaseService

logger = get_logger("services.document")


class DocumentService(BaseService):
    def get(self, document_id: UUID | str) -> Document:
        return self._require(Document, document_id)

    def for_student(self, student_id: UUID) -> list[Document]:
        return list(
            self.session.execute(
                select(Document).where(Document.student_id == student_id).order_by(Document.created_at)
            ).scalars().all()
        )

    def add(
        self,
        student_id: UUID | str,
        type: DocumentType | str,
        name: str,
        file_url: str | None = None,
    ) -> Document:
        student = self._require(Student, student_id)
        try:
            doc_type = DocumentType(type)
        except ValueError as exc:
            raise PreconditionError(f"Unknown document type: {type}") from exc

        document = Document(
            student_id=student.id,
            type=doc_type.value,
            name=name,
            file_url=file_url,
            status=DocumentStatus.PENDING.value,
            is_locked=False,
            is_hidden=doc_type.value in OFFER_DOCUMENT_TYPES and not student.offers_unlocked,
            created_at=self.clock.now(),
        )
        self.session.add(document)
        self.session.flush()
        logger.info(
            "document_added",
            extra={
                "document_id": str(document.id),
                "student_id": str(student.id),
                "type": doc_type.value,
                "is_hidden": document.is_hidden,
            },
        )
        return document

    def _check_unlocked(self, document: Document, updates: dict[str, Any]) -> None:
        if document.is_locked and updates.get("is_locked") is not False:
            logger.warning(
                "document_update_blocked",
                extra={"document_id": str(document.id), "fields": sorted(updates)},
            )
            raise DocumentLockedError(str(document.id))

    def update(self, document_id: UUID | str, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Apply ``updates`` to a document, all or nothing.

        Raises:
            DocumentLockedError: the document is locked and the update does
                not unlock it.
        """
        document = self.get(document_id)
        self._check_unlocked(document, updates)
        if "status" in updates and coerce_status(DocumentStatus, updates["status"]) is None:
            raise PreconditionError(f"Unknown document status: {updates['status']}")

        applied = {}
        for key, value in updates.items():
            if key not in DOCUMENT_UPDATABLE_FIELDS:
                continue
            if key == "status":
                value = DocumentStatus(value).value
            setattr(document, key, value)
            applied[key] = value
        if "is_locked" in applied:
            document.locked_at = self.clock.now() if document.is_locked else None
        document.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "document_updated",
            extra={"document_id": str(document.id), "applied_fields": sorted(applied)},
        )
        return applied

    def verify(self, document_id: UUID | str, verified_by: str) -> Document:
        document = self.get(document_id)
        self._check_unlocked(document, {"status": DocumentStatus.VERIFIED.value})
        now = self.clock.now()
        document.status = DocumentStatus.VERIFIED.value
        document.verified_at = now
        document.verified_by = verified_by
        document.error_message = None
        document.updated_at = now
        self.session.flush()
        logger.info(
            "document_verified",
            extra={"document_id": str(document.id), "verified_by": verified_by},
        )
        return document

    def mark_error(self, document_id: UUID | str, error_message: str) -> Document:
        document = self.get(document_id)
        self._check_unlocked(document, {"status": DocumentStatus.ERROR.value})
        document.status = DocumentStatus.ERROR.value
        document.error_message = error_message
        document.verified_at = None
        document.verified_by = None
        document.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "document_error_marked",
            extra={"document_id": str(document.id), "error_message": error_message},
        )
        return document

    def lock_all(self, student_id: UUID) -> int:
        """Lock every document of a student; returns how many changed."""
        now = self.clock.now()
        changed = 0
        for document in self.for_student(student_id):
            if document.is_locked:
                continue
            document.is_locked = True
            document.locked_at = now
            document.updated_at = now
            changed += 1
        self.session.flush()
        logger.info("documents_locked", extra={"student_id": str(student_id), "count": changed})
        return changed

    def unlock_all(self, student_id: UUID) -> int:
        now = self.clock.now()
        changed = 0
        for document in self.for_student(student_id):
            if not document.is_locked:
                continue
            document.is_locked = False
            document.locked_at = None
            document.updated_at = now
            changed += 1
        self.session.flush()
        logger.info("documents_unlocked", extra={"student_id": str(student_id), "count": changed})
        return changed

    def reveal_offer_documents(self, student_id: UUID) -> int:
        """Un-hide admission letters and JW202 forms; returns how many changed."""
        now = self.clock.now()
        changed = 0
        for document in self.for_student(student_id):
            if document.type in OFFER_DOCUMENT_TYPES and document.is_hidden:
                document.is_hidden = False
                document.updated_at = now
                changed += 1
        self.session.flush()
        return changed
