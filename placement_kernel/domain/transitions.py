"""
Transition tables (``placement_kernel.domain.transitions``).

Responsibility
--------------
Static, exhaustive state machines for every lifecycle the engine drives:
Lead, Student, UniversityApplication and Commission.  A transition is
allowed iff the destination appears in the source's destination set;
everything else is rejected with no special-casing.  Also owns the
Student status -> progress step mapping.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Terminal states have no outgoing edges (``converted``/``lost`` leads,
  ``completed``/``cancelled`` students, ``accepted``/``declined``
  applications, ``voided``/``clawback`` commissions).
* ``current_step`` is always ``STUDENT_STEPS[status]`` -- it is never
  stored independently of the status that determines it.
"""

from __future__ import annotations

from enum import Enum


# =========================================================================
# Lead
# =========================================================================


class LeadStatus(str, Enum):
    """Inquiry lifecycle states."""

    NEW = "new"
    HOT = "hot"
    COLD = "cold"
    CONVERTED = "converted"
    LOST = "lost"


LEAD_TRANSITIONS: dict[LeadStatus, frozenset[LeadStatus]] = {
    LeadStatus.NEW: frozenset({
        LeadStatus.HOT,
        LeadStatus.COLD,
        LeadStatus.CONVERTED,
        LeadStatus.LOST,
    }),
    LeadStatus.HOT: frozenset({
        LeadStatus.CONVERTED,
        LeadStatus.LOST,
        LeadStatus.COLD,
    }),
    LeadStatus.COLD: frozenset({
        LeadStatus.HOT,
        LeadStatus.CONVERTED,
        LeadStatus.LOST,
    }),
    # Product decision: lost leads cannot be revived.
    LeadStatus.CONVERTED: frozenset(),
    LeadStatus.LOST: frozenset(),
}

TERMINAL_LEAD_STATUSES: frozenset[LeadStatus] = frozenset({
    LeadStatus.CONVERTED,
    LeadStatus.LOST,
})


# =========================================================================
# Student
# =========================================================================


class StudentStatus(str, Enum):
    """Enrollment pipeline states."""

    PENDING_CONTRACT = "pending_contract"
    CONTRACT_SIGNED = "contract_signed"
    ACTIVE_PROFILE = "active_profile"
    SUBMITTED_TO_ADMIN = "submitted_to_admin"
    RETURNED_BY_ADMIN = "returned_by_admin"
    SUBMITTED_TO_UNI = "submitted_to_uni"
    RETURNED_BY_SCHOOL = "returned_by_school"
    OFFER_RECEIVED = "offer_received"
    OFFER_RELEASED = "offer_released"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


STUDENT_TRANSITIONS: dict[StudentStatus, frozenset[StudentStatus]] = {
    StudentStatus.PENDING_CONTRACT: frozenset({
        StudentStatus.CONTRACT_SIGNED,
        StudentStatus.CANCELLED,
    }),
    StudentStatus.CONTRACT_SIGNED: frozenset({
        StudentStatus.ACTIVE_PROFILE,
        StudentStatus.CANCELLED,
    }),
    StudentStatus.ACTIVE_PROFILE: frozenset({
        StudentStatus.SUBMITTED_TO_ADMIN,
        StudentStatus.CANCELLED,
    }),
    StudentStatus.SUBMITTED_TO_ADMIN: frozenset({
        StudentStatus.RETURNED_BY_ADMIN,
        StudentStatus.SUBMITTED_TO_UNI,
    }),
    StudentStatus.RETURNED_BY_ADMIN: frozenset({
        StudentStatus.SUBMITTED_TO_ADMIN,
        StudentStatus.CANCELLED,
    }),
    StudentStatus.SUBMITTED_TO_UNI: frozenset({
        StudentStatus.RETURNED_BY_SCHOOL,
        StudentStatus.OFFER_RECEIVED,
        StudentStatus.CANCELLED,
    }),
    StudentStatus.RETURNED_BY_SCHOOL: frozenset({
        StudentStatus.SUBMITTED_TO_UNI,
        StudentStatus.CANCELLED,
    }),
    StudentStatus.OFFER_RECEIVED: frozenset({
        StudentStatus.OFFER_RELEASED,
    }),
    StudentStatus.OFFER_RELEASED: frozenset({
        StudentStatus.COMPLETED,
    }),
    StudentStatus.COMPLETED: frozenset(),
    StudentStatus.CANCELLED: frozenset(),
}

TERMINAL_STUDENT_STATUSES: frozenset[StudentStatus] = frozenset({
    StudentStatus.COMPLETED,
    StudentStatus.CANCELLED,
})

STUDENT_STEPS: dict[StudentStatus, int] = {
    StudentStatus.CANCELLED: 0,
    StudentStatus.PENDING_CONTRACT: 1,
    StudentStatus.CONTRACT_SIGNED: 2,
    StudentStatus.ACTIVE_PROFILE: 2,
    StudentStatus.SUBMITTED_TO_ADMIN: 3,
    StudentStatus.RETURNED_BY_ADMIN: 3,
    StudentStatus.SUBMITTED_TO_UNI: 3,
    StudentStatus.RETURNED_BY_SCHOOL: 3,
    StudentStatus.OFFER_RECEIVED: 4,
    StudentStatus.OFFER_RELEASED: 5,
    StudentStatus.COMPLETED: 5,
}


# =========================================================================
# University application
# =========================================================================


class ApplicationStatus(str, Enum):
    """University application sub-state machine."""

    DRAFT = "draft"
    PENDING_ADMIN = "pending_admin"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUBMITTED_TO_UNI = "submitted_to_uni"
    ACCEPTED = "accepted"
    RETURNED_BY_SCHOOL = "returned_by_school"
    DECLINED = "declined"


APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: frozenset({ApplicationStatus.PENDING_ADMIN}),
    ApplicationStatus.PENDING_ADMIN: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    }),
    # A rejected application is corrected by the staff member and resubmitted.
    ApplicationStatus.REJECTED: frozenset({ApplicationStatus.PENDING_ADMIN}),
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.SUBMITTED_TO_UNI}),
    ApplicationStatus.SUBMITTED_TO_UNI: frozenset({
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.RETURNED_BY_SCHOOL,
        ApplicationStatus.DECLINED,
    }),
    ApplicationStatus.RETURNED_BY_SCHOOL: frozenset({
        ApplicationStatus.SUBMITTED_TO_UNI,
    }),
    ApplicationStatus.ACCEPTED: frozenset(),
    ApplicationStatus.DECLINED: frozenset(),
}

TERMINAL_APPLICATION_STATUSES: frozenset[ApplicationStatus] = frozenset({
    ApplicationStatus.ACCEPTED,
    ApplicationStatus.DECLINED,
})


# =========================================================================
# Commission
# =========================================================================


class CommissionStatus(str, Enum):
    """Staff compensation lifecycle."""

    PENDING = "pending"
    PAID = "paid"
    VOIDED = "voided"
    CLAWBACK = "clawback"


COMMISSION_TRANSITIONS: dict[CommissionStatus, frozenset[CommissionStatus]] = {
    CommissionStatus.PENDING: frozenset({
        CommissionStatus.PAID,
        CommissionStatus.VOIDED,
    }),
    CommissionStatus.PAID: frozenset({CommissionStatus.CLAWBACK}),
    CommissionStatus.VOIDED: frozenset(),
    CommissionStatus.CLAWBACK: frozenset(),
}


# =========================================================================
# Helpers
# =========================================================================


def is_allowed(
    table: dict[Enum, frozenset[Enum]],
    from_status: Enum,
    to_status: Enum,
) -> bool:
    """True iff ``to_status`` is in ``table[from_status]``."""
    return to_status in table.get(from_status, frozenset())


def step_for(status: StudentStatus | str) -> int:
    """Progress step (0-5) for a student status."""
    return STUDENT_STEPS[StudentStatus(status)]


def coerce_status(enum_cls: type[Enum], value: Enum | str) -> Enum | None:
    """Parse ``value`` into ``enum_cls``; None for unknown values."""
    try:
        return enum_cls(value)
    except ValueError:
        return None
