"""
Module: placement_kernel.services.auditor_service
Responsibility: Append-only audit trail with hash-chain tamper evidence.
    Every mutating workflow operation records exactly one AuditLog row through
    this service, inside the operation's own transaction.
Architecture position: Kernel > Services.  Called by WorkflowEngine once per
    committed operation; never called by selectors.

Invariants enforced:
    - Append-only: AuditLog rows are protected by ORM listeners.
    - Monotonic seq via SequenceService (locked counter row).
    - hash = H(seq | actor_id | action | entity_type | entity_id | payload_hash | prev_hash).

Failure modes:
    - AuditChainBrokenError from validate_chain() on any hash or link mismatch.

Audit relevance:
    This IS the audit trail.  Records written here are also handed to the
    engine's AuditSink after commit.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from placement_kernel.domain.clock import Clock, SystemClock
from placement_kernel.exceptions import AuditChainBrokenError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.audit_log import AuditAction, AuditLog
from placement_kernel.services.sequence_service import SequenceService
from placement_kernel.utils.hashing import hash_audit_record, hash_payload, to_json_safe

logger = get_logger("services.auditor")


class AuditorService:
    """
    Writes and validates the hash-chained audit log.

    Contract:
        ``record`` flushes one AuditLog row and remembers it in ``created``
        so the engine can forward it to sinks after commit.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT interpret or act on audit records.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)
        self.created: list[AuditLog] = []

    def _get_last_hash(self) -> str | None:
        last = self._session.execute(
            select(AuditLog).order_by(AuditLog.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last.hash if last else None

    def record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        actor_id: str = "system",
        details: dict[str, Any] | None = None,
        is_override: bool = False,
    ) -> AuditLog:
        """
        Append one audit record.

        Postconditions:
            - A new AuditLog row is flushed with seq strictly greater than
              every existing row and a valid chain link.
        """
        seq = self._sequence_service.next_value(SequenceService.AUDIT_LOG)
        prev_hash = self._get_last_hash()

        payload = to_json_safe(details or {})
        payload_hash = hash_payload(payload)
        record_hash = hash_audit_record(
            seq=seq,
            actor_id=str(actor_id),
            action=action.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        audit_log = AuditLog(
            seq=seq,
            actor_id=str(actor_id),
            action=action.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            timestamp=self._clock.now(),
            details=payload,
            is_override=is_override,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=record_hash,
        )
        self._session.add(audit_log)
        self._session.flush()
        self.created.append(audit_log)

        logger.info(
            "audit_record_created",
            extra={
                "action": action.value,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "seq": seq,
            },
        )
        return audit_log

    def validate_chain(self) -> bool:
        """
        Walk the log in seq order, recomputing each hash and link.

        Raises:
            AuditChainBrokenError: at the first record whose stored hash or
                ``prev_hash`` does not match.
        """
        records = self._session.execute(select(AuditLog).order_by(AuditLog.seq)).scalars()

        previous: str | None = None
        count = 0
        for record in records:
            if record.prev_hash != previous:
                self._broken(record, previous or "None", record.prev_hash or "None")
            expected = hash_audit_record(
                seq=record.seq,
                actor_id=record.actor_id,
                action=record.action,
                entity_type=record.entity_type,
                entity_id=record.entity_id,
                payload_hash=hash_payload(record.details or {}),
                prev_hash=record.prev_hash,
            )
            if record.hash != expected:
                self._broken(record, expected, record.hash)
            previous = record.hash
            count += 1

        logger.info("audit_chain_valid", extra={"record_count": count})
        return True

    @staticmethod
    def _broken(record: AuditLog, expected: str, actual: str) -> None:
        logger.critical("audit_chain_broken", extra={"seq": record.seq, "action": record.action})
        raise AuditChainBrokenError(str(record.id), expected, actual)
