"""
Append-only ledger writes.

Every money movement becomes one LedgerEntry.  Entries carry a
non-negative amount and a credit/debit side; refunds are new entries
flagged ``is_reversal``, never edits of old ones.  Each entry takes the
next number from the ``ledger`` counter, which is the order the ledger
is read back in.  The ORM listeners in ``db/immutability.py`` reject
UPDATE and DELETE on this table.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from placement_kernel.exceptions import PreconditionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.ledger import EntryCategory, EntryType, LedgerEntry
from placement_kernel.services.base import BaseService
from placement_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger")


class LedgerService(BaseService):
    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self._sequence_service = SequenceService(session)

    def append(
        self,
        type: EntryType,
        category: EntryCategory,
        amount: Decimal,
        description: str,
        student_id: UUID | None = None,
        invoice_id: UUID | None = None,
        refund_request_id: UUID | None = None,
        is_reversal: bool = False,
        created_by: str = "system",
    ) -> LedgerEntry:
        amount = self._money(amount)
        if amount < 0:
            raise PreconditionError(f"Ledger amounts are non-negative, got {amount}")

        entry = LedgerEntry(
            seq=self._sequence_service.next_value(SequenceService.LEDGER),
            type=type.value,
            category=category.value,
            amount=amount,
            description=description,
            student_id=student_id,
            invoice_id=invoice_id,
            refund_request_id=refund_request_id,
            is_reversal=is_reversal,
            created_by=created_by,
            created_at=self.clock.now(),
        )
        self.session.add(entry)
        self.session.flush()
        logger.info(
            "ledger_entry_appended",
            extra={
                "entry_id": str(entry.id),
                "seq": entry.seq,
                "type": entry.type,
                "category": entry.category,
                "amount": amount,
                "student_id": str(student_id) if student_id else None,
                "is_reversal": is_reversal,
            },
        )
        return entry
