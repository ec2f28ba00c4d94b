"""
Deterministic hashing utilities.

All hashing in the custody kernel must be deterministic and reproducible.
This module provides the canonical hashing functions used by the audit
trail and the SQL audit sink.
"""

import hashlib
import json
from datetime import date, datetime
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Produces a deterministic JSON representation:
    - Keys are sorted alphabetically
    - No whitespace
    - Consistent handling of special types (datetime, UUID, bytes)
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """
    Compute SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_audit_record(
    ledger_id: str,
    seq: int,
    action: str,
    actor: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Compute hash for an audit record.

    The hash includes the key fields plus the previous record's hash,
    creating a tamper-evident chain.

    Args:
        ledger_id: Ledger instance that produced the record.
        seq: Sequence number of the record within its ledger.
        action: Action being recorded.
        actor: Principal that invoked the operation.
        payload_hash: Hash of the record payload.
        prev_hash: Hash of the previous record (None for genesis).

    Returns:
        Hex-encoded SHA-256 hash.
    """
    components = [
        ledger_id,
        str(seq),
        action,
        actor,
        payload_hash,
        prev_hash or "GENESIS",
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
