"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor, clock access and entity lookup for
    every write-side service.  Services receive a SQLAlchemy ``Session``
    that they use via ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Every service in
    ``placement_kernel/services/`` that performs write operations extends
    this class.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or rollback themselves.  The WorkflowEngine owns
    commit/rollback, which is what makes multi-entity cascades atomic.

Failure modes:
    - EntityNotFoundError from ``_require`` when a referenced row is absent.
    - PreconditionError from ``_money`` on a malformed amount.
"""

from __future__ import annotations

from abc import ABC
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from placement_kernel.db.base import Base
from placement_kernel.db.types import InvalidAmountError, to_money
from placement_kernel.domain.clock import Clock, SystemClock
from placement_kernel.exceptions import EntityNotFoundError, PreconditionError

ModelType = TypeVar("ModelType", bound=Base)


def coerce_id(value: UUID | str, entity_type: str = "Entity") -> UUID:
    """
    Accept a UUID or its string form.

    Raises:
        EntityNotFoundError: ``value`` is not a parseable UUID, so no
            entity can have it as an id.
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise EntityNotFoundError(entity_type, str(value)) from exc


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-only listing -- that belongs in
          ``placement_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _require(self, model: type[ModelType], entity_id: UUID | str) -> ModelType:
        """Load ``model`` by primary key or raise EntityNotFoundError."""
        entity_type = model.__name__
        instance = self.session.get(model, coerce_id(entity_id, entity_type))
        if instance is None:
            raise EntityNotFoundError(entity_type, str(entity_id))
        return instance

    @staticmethod
    def _money(value: Decimal | int | str) -> Decimal:
        try:
            return to_money(value)
        except InvalidAmountError as exc:
            raise PreconditionError(str(exc)) from exc
