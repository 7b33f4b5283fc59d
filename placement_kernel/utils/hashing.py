"""
Canonical JSON and the audit hash chain.

An audit record's hash covers its sequence number, actor, action, entity
and the hash of its details, then links to the previous record's hash.
Details are canonicalized (sorted keys, compact separators, normalized
decimals) so a record read back from the database hashes to the same
value it was written with.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

GENESIS = "GENESIS"


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        # 750 and 750.000000000 must hash the same
        return format(value.normalize(), "f")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Cannot canonicalize {type(value).__name__}")


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_encode)


def to_json_safe(data: dict[str, Any]) -> dict[str, Any]:
    """``data`` as it will look after a trip through a JSON column."""
    return json.loads(canonical_json(data))


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_payload(payload: dict[str, Any]) -> str:
    return _sha256(canonical_json(payload))


def hash_audit_record(
    seq: int,
    actor_id: str,
    action: str,
    entity_type: str,
    entity_id: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Chained hash of one audit record.

    The first record in the chain links to ``GENESIS``.
    """
    link = "|".join(
        (str(seq), actor_id, action, entity_type, entity_id, payload_hash, prev_hash or GENESIS)
    )
    return _sha256(link)
