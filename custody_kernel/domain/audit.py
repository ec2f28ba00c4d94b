"""
Audit record types.

An AuditRecord is the structured event every committed mutating call
leaves behind: ``{action, principals involved, amount, seq, occurred_at}``
plus the hash-chain fields that make tampering detectable.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Construction
    LEDGER_CREATED = "ledger_created"

    # Token movements
    TRANSFER = "transfer"
    APPROVAL = "approval"
    DELEGATED_TRANSFER = "delegated_transfer"
    MINT = "mint"
    BATCH_TRANSFER = "batch_transfer"

    # Custody movements
    DEPOSIT = "deposit"
    FUNDING = "funding"
    WITHDRAWAL = "withdrawal"
    EMERGENCY_WITHDRAWAL = "emergency_withdrawal"
    EXTERNAL_CALL = "external_call"

    # Administration
    ROLE_GRANTED = "role_granted"
    ROLE_REVOKED = "role_revoked"
    PAUSED = "paused"
    UNPAUSED = "unpaused"


@dataclass(frozen=True)
class AuditRecord:
    """
    One entry of a ledger's tamper-evident audit trail.

    Guarantees:
        - seq is strictly increasing within a ledger, starting at 1.
        - hash = H(ledger_id | seq | action | actor | payload_hash | prev_hash).
        - prev_hash is None only for the genesis record.
        - payload is a read-only view over a private copy, so a record
          handed to a caller cannot change the trail it came from.
    """

    ledger_id: str
    seq: int
    action: AuditAction
    actor: str
    principals: tuple[str, ...]
    amount: int | None
    occurred_at: datetime
    payload: Mapping[str, Any] = field(default_factory=dict)
    payload_hash: str = ""
    prev_hash: str | None = None
    hash: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "payload", MappingProxyType(copy.deepcopy(dict(self.payload)))
        )
        object.__setattr__(self, "principals", tuple(self.principals))

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ledger_id": self.ledger_id,
            "seq": self.seq,
            "action": self.action.value,
            "actor": self.actor,
            "principals": list(self.principals),
            "amount": self.amount,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": copy.deepcopy(dict(self.payload)),
            "payload_hash": self.payload_hash,
            "prev_hash": self.prev_hash,
            "hash": self.hash,
        }
