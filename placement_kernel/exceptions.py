"""
Typed Exception Hierarchy for the Placement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The workflow engine must tell apart "the caller asked for something the
rules do not allow" from "the program is broken".  Callers of the public
engine never see the first kind: every rejection is converted into a
``False`` / ``None`` return after the unit of work is rolled back.  Inside
the engine, services signal rejections by raising one of the typed
errors below so that:

  1. Every rejection has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, log-safe)
  3. Exceptions carry structured DATA (not just a message string)

The structured formatter in ``logging_config`` copies public attributes of
these exceptions into the JSON log line, so a rejected operation is fully
diagnosable from its ``operation_rejected`` record.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PlacementKernelError (base)
    |
    +-- WorkflowRejection                 (converted to False/None by the engine)
    |   +-- EntityNotFoundError
    |   +-- InvalidTransitionError
    |   +-- PreconditionError
    |   |   +-- AlreadyConvertedError
    |   |   +-- ContractNotSignableError
    |   |   +-- InvoiceAlreadyPaidError
    |   |   +-- BatchLimitExceededError
    |   |   +-- DuplicateUniversityError
    |   |   +-- InvalidSettingsError
    |   +-- LockViolationError
    |       +-- DocumentLockedError
    |
    +-- ImmutabilityError                 (programming error; always propagates)
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                    | When Raised
------------------------|-----------------------------------------------------
ENTITY_NOT_FOUND        | Referenced lead/student/application/... missing
INVALID_TRANSITION      | Destination not in the transition table
PRECONDITION_FAILED     | Operation-specific precondition violated
ALREADY_CONVERTED       | Lead already converted to a student
CONTRACT_NOT_SIGNABLE   | Contract signed, expired, or past expiry
INVOICE_ALREADY_PAID    | Payment recorded against a paid invoice
BATCH_LIMIT_EXCEEDED    | 2+3 application batch rule violated
DUPLICATE_UNIVERSITY    | Student already applied to the university
INVALID_SETTINGS        | Unknown or invalid system settings key/value
LOCK_VIOLATION          | Update blocked by a field lock
DOCUMENT_LOCKED         | Whole-record document lock blocks an update
IMMUTABILITY_VIOLATION  | UPDATE/DELETE of an append-only or signed record
AUDIT_CHAIN_BROKEN      | Audit log hash chain validation failed
"""

from __future__ import annotations


class PlacementKernelError(Exception):
    """
    Base exception for all placement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PLACEMENT_KERNEL_ERROR"


# Workflow rejections


class WorkflowRejection(PlacementKernelError):
    """Base class for rule-driven rejections (no mutation is applied)."""

    code: str = "WORKFLOW_REJECTION"


class EntityNotFoundError(WorkflowRejection):
    """A referenced entity does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


class InvalidTransitionError(WorkflowRejection):
    """The requested status change is not in the transition table."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        from_status: str,
        to_status: str,
    ):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid {entity_type} transition for {entity_id}: "
            f"{from_status} -> {to_status}"
        )


class PreconditionError(WorkflowRejection):
    """An operation-specific precondition does not hold."""

    code: str = "PRECONDITION_FAILED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class AlreadyConvertedError(PreconditionError):
    """Lead has already been converted to a student."""

    code: str = "ALREADY_CONVERTED"

    def __init__(self, lead_id: str, student_id: str | None):
        self.lead_id = str(lead_id)
        self.student_id = str(student_id) if student_id else None
        super().__init__(f"Lead {lead_id} already converted to {student_id}")


class ContractNotSignableError(PreconditionError):
    """Contract is not awaiting signature or has expired."""

    code: str = "CONTRACT_NOT_SIGNABLE"

    def __init__(self, contract_id: str, status: str):
        self.contract_id = str(contract_id)
        self.status = status
        super().__init__(f"Contract {contract_id} cannot be signed (status={status})")


class InvoiceAlreadyPaidError(PreconditionError):
    """Payment recorded against an invoice that is already paid."""

    code: str = "INVOICE_ALREADY_PAID"

    def __init__(self, invoice_id: str):
        self.invoice_id = str(invoice_id)
        super().__init__(f"Invoice {invoice_id} is already paid")


class BatchLimitExceededError(PreconditionError):
    """The per-batch application cap has been reached."""

    code: str = "BATCH_LIMIT_EXCEEDED"

    def __init__(self, student_id: str, batch: int, limit: int):
        self.student_id = str(student_id)
        self.batch = batch
        self.limit = limit
        super().__init__(
            f"Student {student_id} already has {limit} applications in batch {batch}"
        )


class DuplicateUniversityError(PreconditionError):
    """The student already has an application for this university."""

    code: str = "DUPLICATE_UNIVERSITY"

    def __init__(self, student_id: str, university_id: str):
        self.student_id = str(student_id)
        self.university_id = str(university_id)
        super().__init__(
            f"Student {student_id} already applied to university {university_id}"
        )


class InvalidSettingsError(PreconditionError):
    """A system settings update names an unknown key or an invalid value."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Invalid setting '{key}': {reason}")


class LockViolationError(WorkflowRejection):
    """An update was blocked by a field or record lock."""

    code: str = "LOCK_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(f"{entity_type} {entity_id} is locked: {reason}")


class DocumentLockedError(LockViolationError):
    """A locked document rejects the whole update."""

    code: str = "DOCUMENT_LOCKED"

    def __init__(self, document_id: str):
        super().__init__("Document", document_id, "document is locked")


# Immutability


class ImmutabilityError(PlacementKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    LedgerEntry and AuditLog are append-only from creation; Contract is
    frozen once signed.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Audit


class AuditError(PlacementKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit log hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_id: str, expected_hash: str, actual_hash: str):
        self.audit_id = audit_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
