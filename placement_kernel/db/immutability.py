"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Money received, money refunded and the record of who did what must be
tamper-proof.  Ledger entries and audit records are append-only: a mistake
is corrected by a NEW entry (a reversal), never by editing history.  A
signed contract is the legal basis for the deposit and the commission it
triggers, so once signed it is frozen as well.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check the rules:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity       | When Immutable               | Allowed exception
-------------|------------------------------|-----------------------------------
LedgerEntry  | ALWAYS (from creation)       | none
AuditLog     | ALWAYS (from creation)       | none
Contract     | After status = signed        | the signing flush itself, which
             |                              | sets status/signed_at/signature_data

===============================================================================
USAGE
===============================================================================

    from placement_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup (idempotent)

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from placement_kernel.exceptions import ImmutabilityViolationError
from placement_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Audit metadata, not contract content.
_CONTRACT_METADATA_FIELDS = frozenset({"updated_at"})


def _block(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    extra = {
        "entity_type": entity_type,
        "entity_id": str(target.id),
        "operation": operation,
    }
    if field is not None:
        extra["field"] = field
    logger.error("immutability_violation_blocked", extra=extra)
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [attr.key for attr in inspect(target).attrs if attr.history.has_changes()]


def _check_ledger_entry_immutability(mapper, connection, target):
    """Ledger entries are never updated."""
    changed = _changed_fields(target)
    if not changed:
        return
    _block("LedgerEntry", target, "UPDATE", "Ledger entries are append-only", field=changed[0])


def _check_ledger_entry_delete(mapper, connection, target):
    """Ledger entries are never deleted."""
    _block("LedgerEntry", target, "DELETE", "Ledger entries are append-only")


def _check_audit_log_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if not changed:
        return
    _block("AuditLog", target, "UPDATE", "Audit records are append-only", field=changed[0])


def _check_audit_log_delete(mapper, connection, target):
    _block("AuditLog", target, "DELETE", "Audit records are append-only")


def _check_contract_immutability(mapper, connection, target):
    """
    Block changes to a contract that was already signed before this flush.

    The signing transition (pending_signature -> signed) is allowed: its
    status history shows a non-signed old value.  After that flush, status
    is unchanged and 'signed', so any changed attribute is a violation.
    """
    status_history = get_history(target, "status")

    if status_history.deleted:
        was_signed_before = status_history.deleted[0] == "signed"
    elif not status_history.added:
        was_signed_before = target.status == "signed"
    else:
        was_signed_before = False

    if not was_signed_before:
        return

    for key in _changed_fields(target):
        if key in _CONTRACT_METADATA_FIELDS:
            continue
        _block(
            "Contract",
            target,
            "UPDATE",
            f"Cannot modify field '{key}' on a signed contract",
            field=key,
        )


def _check_contract_delete(mapper, connection, target):
    if target.status == "signed":
        _block("Contract", target, "DELETE", "Signed contracts cannot be deleted")


def _listeners():
    # Inline import: models import db, db must not import models at module load.
    from placement_kernel.models.audit_log import AuditLog
    from placement_kernel.models.contract import Contract
    from placement_kernel.models.ledger import LedgerEntry

    return (
        (LedgerEntry, "before_update", _check_ledger_entry_immutability),
        (LedgerEntry, "before_delete", _check_ledger_entry_delete),
        (AuditLog, "before_update", _check_audit_log_immutability),
        (AuditLog, "before_delete", _check_audit_log_delete),
        (Contract, "before_update", _check_contract_immutability),
        (Contract, "before_delete", _check_contract_delete),
    )


def register_immutability_listeners():
    """Register all immutability enforcement event listeners (idempotent)."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
