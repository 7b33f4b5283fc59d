"""
Module: placement_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries.  A student's balance is derived
    from their ledger entries at query time; there is no stored balance.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - balance = sum(credit amounts) - sum(debit amounts) for the student.
    - Entries are returned in insertion order (ledger seq).
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from placement_kernel.domain.dtos import LedgerEntryInfo
from placement_kernel.models.ledger import LedgerEntry
from placement_kernel.selectors.base import BaseSelector, parse_id


class LedgerSelector(BaseSelector):
    """Derived views over the append-only ledger."""

    def _entries(self, student_id: UUID | str | None) -> list[LedgerEntry]:
        query = select(LedgerEntry).order_by(LedgerEntry.seq)
        if student_id is not None:
            parsed = parse_id(student_id)
            if parsed is None:
                return []
            query = query.where(LedgerEntry.student_id == parsed)
        return list(self.session.execute(query).scalars().all())

    def entries(self, student_id: UUID | str | None = None) -> list[LedgerEntryInfo]:
        return [entry.to_dto() for entry in self._entries(student_id)]

    def student_balance(self, student_id: UUID | str) -> Decimal:
        """Credits minus debits; ``Decimal("0")`` for a student with no entries."""
        return sum(
            (entry.signed_amount for entry in self._entries(student_id)),
            Decimal("0"),
        )
