"""
Module: placement_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the read side of the kernel: they answer accessor and
    idle-detection queries without any mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, domain/
    (DTOs and status enums only) and models/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never call session.add(), delete(),
      flush() or commit().
    - DTO return convention: selectors return frozen dataclasses from
      ``to_dto()`` (or plain values), never live ORM instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session


def parse_id(value: UUID | str) -> UUID | None:
    """UUID for ``value``, or None when it cannot name any row."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  Lookups that miss return None or an
        empty list rather than raising.
    """

    def __init__(self, session: Session):
        self.session = session
