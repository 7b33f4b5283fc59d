"""
Gap-free counters for the audit chain and the ledger.

``next_value`` bumps a named ``SequenceCounter`` row inside the caller's
transaction.  A rolled-back operation therefore never burns a number, and
the audit log and ledger ``seq`` columns have no holes.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from placement_kernel.logging_config import get_logger
from placement_kernel.models.audit_log import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Allocates from locked counter rows, never from ``max(seq) + 1``.

    ``with_for_update`` serializes allocation on backends with row locks;
    on SQLite the workflow engine lock does the same job.

    Non-goals:
        - Does NOT commit.
    """

    AUDIT_LOG = "audit_log"
    LEDGER = "ledger"

    def __init__(self, session: Session):
        self._session = session

    def _counter(self, name: str) -> SequenceCounter:
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if counter is None:
            counter = SequenceCounter(name=name, current_value=0)
            self._session.add(counter)
        return counter

    def next_value(self, name: str) -> int:
        """The next number for ``name``; the first allocation returns 1."""
        counter = self._counter(name)
        counter.current_value += 1
        self._session.flush()
        logger.debug("sequence_allocated", extra={"sequence": name, "value": counter.current_value})
        return counter.current_value
